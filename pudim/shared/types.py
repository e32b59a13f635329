"""
Shared Type Definitions.

TypedDicts for GitHub statistics, score records and API payloads. Field
names match the items already stored in the PudimScores table.
"""

from typing import Optional, TypedDict, Union


class LanguageEntry(TypedDict):
    name: str
    count: int
    percentage: float


class _GitHubStatsBase(TypedDict):
    username: str
    avatar_url: str
    followers: int
    total_stars: int
    public_repos: int
    created_at: str


class GitHubStats(_GitHubStatsBase, total=False):
    """Snapshot of a user's public profile, cached as JSON."""

    languages: list[LanguageEntry]


class StatsError(TypedDict):
    """Tagged upstream failure. `code` is one of errors.STATS_ERROR_CODES."""

    error: str
    code: str


StatsResult = Union[GitHubStats, StatsError]


class PudimRank(TypedDict):
    rank: str
    title: str
    description: str
    emoji: str
    color: str


class _ScoreRecordBase(TypedDict):
    username: str
    timestamp: str  # ISO-8601 UTC, sort key
    score: float
    rank: PudimRank
    stats: GitHubStats


class ScoreRecord(_ScoreRecordBase, total=False):
    leaderboard_consent: bool


class TopScoreEntry(TypedDict):
    username: str
    timestamp: str
    score: float
    rank: PudimRank
    avatar_url: str
    followers: int
    total_stars: int
    public_repos: int


class StatisticsData(TypedDict):
    total_scores: int
    total_consents: int
    unique_users: int
    rank_distribution: dict[str, int]
    language_distribution: dict[str, int]
    average_score: float


class PudimScoreResult(TypedDict):
    stats: GitHubStats
    score: float
    rank: PudimRank


def is_stats_error(result: Optional[StatsResult]) -> bool:
    """True for the tagged error variant of a fetch result."""
    return isinstance(result, dict) and "error" in result


def empty_statistics() -> StatisticsData:
    return {
        "total_scores": 0,
        "total_consents": 0,
        "unique_users": 0,
        "rank_distribution": {},
        "language_distribution": {},
        "average_score": 0,
    }
