"""
Leaderboard Endpoint - GET /leaderboard?limit=10

Top scores among users who opted in to the leaderboard.
"""

import logging
import time

from pudim.shared.background import run_async
from pudim.shared.clients import get_leaderboard_store
from pudim.shared.errors import APIError, InternalError
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.request_utils import get_limit
from pudim.shared.response_utils import json_response

configure_structured_logging()
logger = logging.getLogger(__name__)

MAX_LIMIT = 100


def handler(event, context):
    start_time = time.time()
    set_request_id(event)

    try:
        limit = get_limit(event, default=10, maximum=MAX_LIMIT)
        scores = run_async(get_leaderboard_store().get_top_scores(limit))
        response = json_response(200, {"scores": scores, "count": len(scores)})
    except APIError as e:
        response = e.to_response()
    except Exception as e:
        logger.exception(f"Unexpected error reading leaderboard: {e}")
        response = InternalError().to_response()

    log_api_request(logger, "GET", "/leaderboard", response["statusCode"], (time.time() - start_time) * 1000)
    return response
