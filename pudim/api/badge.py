"""
Badge Endpoint - GET /badge/{username}

Returns an SVG badge showing a user's pudim rank and score, similar to
shields.io badges. Designed for embedding in GitHub profile READMEs.

Lookup order:
1. Rendered badge in Redis (default style only)
2. GitHub statistics (cache-first fetcher), then render and cache the badge

Error badges are never cached in Redis and get a shorter CDN lifetime.

No authentication required - this is a public endpoint.
"""

import logging
import math
import time

from pudim.collectors.github_collector import fetch_stats
from pudim.scoring.pudim_score import calculate_pudim_score, rank_color
from pudim.shared.background import detach, run_async
from pudim.shared.cache_keys import CacheKind
from pudim.shared.clients import get_cache_client
from pudim.shared.errors import NOT_FOUND
from pudim.shared.leaderboard import round_score
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.request_utils import validate_username
from pudim.shared.response_utils import svg_response
from pudim.shared.types import is_stats_error

configure_structured_logging()
logger = logging.getLogger(__name__)

LABEL = "pudim"
COLOR_GREY = "#9f9f9f"  # errors
DEFAULT_STYLE = "flat"
STYLES = ("flat", "flat-square")

# Character width approximation for Verdana 11px
CHAR_WIDTH = 6.5
PADDING = 10  # padding on each side of label/value

# SVG template for flat style (with rounded corners and gradient)
SVG_FLAT_TEMPLATE = """\
<svg xmlns="http://www.w3.org/2000/svg" width="{total_width}" height="20" role="img" aria-label="{label}: {value}">
  <title>{label}: {value}</title>
  <linearGradient id="s" x2="0" y2="100%">
    <stop offset="0" stop-color="#bbb" stop-opacity=".1"/>
    <stop offset="1" stop-opacity=".1"/>
  </linearGradient>
  <clipPath id="r">
    <rect width="{total_width}" height="20" rx="3" fill="#fff"/>
  </clipPath>
  <g clip-path="url(#r)">
    <rect width="{label_width}" height="20" fill="#555"/>
    <rect x="{label_width}" width="{value_width}" height="20" fill="{color}"/>
    <rect width="{total_width}" height="20" fill="url(#s)"/>
  </g>
  <g fill="#fff" text-anchor="middle" font-family="Verdana,Geneva,DejaVu Sans,sans-serif" font-size="11">
    <text x="{label_x}" y="15" fill="#010101" fill-opacity=".3">{label}</text>
    <text x="{label_x}" y="14">{label}</text>
    <text x="{value_x}" y="15" fill="#010101" fill-opacity=".3">{value}</text>
    <text x="{value_x}" y="14">{value}</text>
  </g>
</svg>"""

# SVG template for flat-square style (no rounded corners, no gradient)
SVG_FLAT_SQUARE_TEMPLATE = """\
<svg xmlns="http://www.w3.org/2000/svg" width="{total_width}" height="20" role="img" aria-label="{label}: {value}">
  <title>{label}: {value}</title>
  <g>
    <rect width="{label_width}" height="20" fill="#555"/>
    <rect x="{label_width}" width="{value_width}" height="20" fill="{color}"/>
  </g>
  <g fill="#fff" text-anchor="middle" font-family="Verdana,Geneva,DejaVu Sans,sans-serif" font-size="11">
    <text x="{label_x}" y="15" fill="#010101" fill-opacity=".3">{label}</text>
    <text x="{label_x}" y="14">{label}</text>
    <text x="{value_x}" y="15" fill="#010101" fill-opacity=".3">{value}</text>
    <text x="{value_x}" y="14">{value}</text>
  </g>
</svg>"""


def _calculate_width(text):
    """Calculate pixel width for text using character width approximation."""
    return math.ceil(len(text) * CHAR_WIDTH) + PADDING * 2


def _escape_xml(text):
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def render_badge(label: str, value: str, color: str, style: str = DEFAULT_STYLE) -> str:
    """Render an SVG badge with the given label, value, and color."""
    # Widths are measured on the unescaped text
    label_width = _calculate_width(label)
    value_width = _calculate_width(value)
    total_width = label_width + value_width

    template = SVG_FLAT_SQUARE_TEMPLATE if style == "flat-square" else SVG_FLAT_TEMPLATE

    return template.format(
        total_width=total_width,
        label_width=label_width,
        value_width=value_width,
        label_x=label_width / 2,
        value_x=label_width + value_width / 2,
        label=_escape_xml(label),
        value=_escape_xml(value),
        color=color,
    )


def score_badge_value(rank: str, score: float) -> str:
    return f"{rank} | {round_score(score)}"


async def get_badge(username: str, style: str = DEFAULT_STYLE) -> tuple[str, bool]:
    """
    Build the badge SVG for a user.

    Returns:
        (svg, is_error)
    """
    cache = get_cache_client()
    cacheable = style == DEFAULT_STYLE

    if cacheable:
        cached = await cache.get(CacheKind.BADGE, username)
        if cached:
            return cached.decode("utf-8"), False

    stats = await fetch_stats(username, cache)
    if is_stats_error(stats):
        message = "not found" if stats["code"] == NOT_FOUND else "unavailable"
        return render_badge(LABEL, message, COLOR_GREY, style), True

    score, rank = calculate_pudim_score(stats)
    svg = render_badge(LABEL, score_badge_value(rank["rank"], score), rank_color(rank), style)

    if cacheable:
        detach(cache.set(CacheKind.BADGE, username, svg.encode("utf-8")), f"badge cache write for {username}")

    return svg, False


def handler(event, context):
    """
    Lambda handler for GET /badge/{username}.

    Always answers 200 with an SVG so README embeds never show a broken image.
    """
    start_time = time.time()
    set_request_id(event)

    path_params = event.get("pathParameters") or {}
    username = (path_params.get("username") or "").strip()
    if username.lower().endswith(".svg"):
        username = username[:-4]

    query_params = event.get("queryStringParameters") or {}
    style = query_params.get("style", DEFAULT_STYLE)
    if style not in STYLES:
        style = DEFAULT_STYLE

    is_valid, _ = validate_username(username)
    if not is_valid:
        response = svg_response(render_badge(LABEL, "invalid user", COLOR_GREY, style), error=True)
    else:
        try:
            svg, is_error = run_async(get_badge(username, style))
            response = svg_response(svg, error=is_error)
        except Exception as e:
            logger.exception(f"Badge generation error: {e}")
            response = svg_response(render_badge(LABEL, "error", COLOR_GREY, style), error=True)

    log_api_request(logger, "GET", f"/badge/{username}", response["statusCode"], (time.time() - start_time) * 1000)
    return response
