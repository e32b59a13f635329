"""
Pudim Score Calculator.

Formula:
    score = followers * 0.5 + total_stars * 2 + public_repos * 1

Ranks (strictly greater than the threshold):
- S+ > 1000
- S  > 500
- A  > 200
- B  > 100
- C  > 50
- D  otherwise
"""

from pudim.shared.types import GitHubStats, PudimRank, PudimScoreResult

FOLLOWER_WEIGHT = 0.5
STAR_WEIGHT = 2
REPO_WEIGHT = 1

# (threshold, rank), checked in order
RANKS: list[tuple[float, PudimRank]] = [
    (1000, {
        "rank": "S+",
        "title": "Legendary Flan",
        "description": "The texture is perfect, the caramel is divine. You are a coding god!",
        "emoji": "🍮✨",
        "color": "text-amber-500",
    }),
    (500, {
        "rank": "S",
        "title": "Master Pudim",
        "description": "A delicious result. Michelin star worthy.",
        "emoji": "🍮",
        "color": "text-yellow-600",
    }),
    (200, {
        "rank": "A",
        "title": "Tasty Pudding",
        "description": "Everyone wants a slice. Great job!",
        "emoji": "😋",
        "color": "text-orange-500",
    }),
    (100, {
        "rank": "B",
        "title": "Sweet Treat",
        "description": "Solid and dependable. A good dessert.",
        "emoji": "🍬",
        "color": "text-orange-400",
    }),
    (50, {
        "rank": "C",
        "title": "Homemade",
        "description": "Made with love, but room for improvement.",
        "emoji": "🏠",
        "color": "text-yellow-700",
    }),
]

LOWEST_RANK: PudimRank = {
    "rank": "D",
    "title": "Underbaked",
    "description": "Needs a bit more time in the oven.",
    "emoji": "🥚",
    "color": "text-zinc-500",
}

# Badge colors for the rank color tokens
RANK_COLORS = {
    "text-amber-500": "#f59e0b",
    "text-yellow-600": "#ca8a04",
    "text-orange-500": "#f97316",
    "text-orange-400": "#fb923c",
    "text-yellow-700": "#a16207",
    "text-zinc-500": "#71717a",
}
DEFAULT_RANK_COLOR = "#71717a"


def get_rank(score: float) -> PudimRank:
    """Return the rank for a score."""
    for threshold, rank in RANKS:
        if score > threshold:
            return dict(rank)
    return dict(LOWEST_RANK)


def rank_color(rank: PudimRank) -> str:
    """Hex color for a rank, for SVG rendering."""
    return RANK_COLORS.get(rank.get("color", ""), DEFAULT_RANK_COLOR)


def calculate_pudim_score(stats: GitHubStats) -> tuple[float, PudimRank]:
    """
    Calculate the pudim score and rank for a user's GitHub statistics.

    Args:
        stats: GitHubStats from the collector

    Returns:
        (score, rank)
    """
    score = (
        stats["followers"] * FOLLOWER_WEIGHT
        + stats["total_stars"] * STAR_WEIGHT
        + stats["public_repos"] * REPO_WEIGHT
    )
    return score, get_rank(score)


def score_result(stats: GitHubStats) -> PudimScoreResult:
    """Bundle stats, score and rank as returned by the score endpoint."""
    score, rank = calculate_pudim_score(stats)
    return {"stats": stats, "score": score, "rank": rank}
