"""
Get Score Endpoint - GET /score/{username}

Fetches GitHub statistics (cache-first), calculates the pudim score and
records it in the leaderboard table in the background.

No authentication required.
"""

import logging
import time

from pudim.collectors.github_collector import fetch_stats
from pudim.scoring.pudim_score import score_result
from pudim.shared.background import detach, run_async
from pudim.shared.clients import get_cache_client, get_leaderboard_store
from pudim.shared.errors import APIError, InternalError, api_error_for
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.leaderboard import round_score
from pudim.shared.request_utils import get_username
from pudim.shared.response_utils import json_response
from pudim.shared.types import PudimScoreResult, is_stats_error

configure_structured_logging()
logger = logging.getLogger(__name__)


async def get_pudim_score(username: str) -> PudimScoreResult:
    """
    Score a GitHub user.

    Raises:
        APIError: If GitHub statistics could not be fetched
    """
    stats = await fetch_stats(username, get_cache_client())
    if is_stats_error(stats):
        logger.warning(
            f"[Pudim Score] Failed to get stats for user {username}",
            extra={"username": username, "code": stats["code"]},
        )
        raise api_error_for(stats)

    result = score_result(stats)
    logger.info(
        f"[Pudim Score] Calculated score for user {username}",
        extra={
            "username": username,
            "score": round_score(result["score"]),
            "rank": result["rank"]["rank"],
            "rank_title": result["rank"]["title"],
        },
    )

    store = get_leaderboard_store()
    detach(
        store.save_score(username, result["score"], result["rank"], stats),
        f"save score for {username}",
    )
    return result


def handler(event, context):
    """
    Lambda handler for GET /score/{username}.

    Returns:
        200 with {stats, score, rank}
        400 for an invalid username
        404/429/5xx for GitHub failures
    """
    start_time = time.time()
    set_request_id(event)
    path = event.get("path") or "/score"

    try:
        username = get_username(event)
        response = json_response(200, run_async(get_pudim_score(username)))
    except APIError as e:
        response = e.to_response()
    except Exception as e:
        logger.exception(f"Unexpected error calculating score: {e}")
        response = InternalError().to_response()

    log_api_request(logger, "GET", path, response["statusCode"], (time.time() - start_time) * 1000)
    return response
