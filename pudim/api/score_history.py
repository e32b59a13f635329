"""
Score History Endpoint - GET /score/{username}/history?limit=10

A user's recorded scores, newest first.
"""

import logging
import time

from pudim.shared.background import run_async
from pudim.shared.clients import get_leaderboard_store
from pudim.shared.errors import APIError, InternalError
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.request_utils import get_limit, get_username
from pudim.shared.response_utils import json_response

configure_structured_logging()
logger = logging.getLogger(__name__)

MAX_LIMIT = 100


def handler(event, context):
    start_time = time.time()
    set_request_id(event)
    path = event.get("path") or "/score/history"

    try:
        username = get_username(event)
        limit = get_limit(event, default=10, maximum=MAX_LIMIT)
        history = run_async(get_leaderboard_store().get_score_history(username, limit))
        response = json_response(200, {"username": username, "history": history, "count": len(history)})
    except APIError as e:
        response = e.to_response()
    except Exception as e:
        logger.exception(f"Unexpected error reading score history: {e}")
        response = InternalError().to_response()

    log_api_request(logger, "GET", path, response["statusCode"], (time.time() - start_time) * 1000)
    return response
