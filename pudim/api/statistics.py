"""
Statistics Endpoint - GET /statistics

Aggregate statistics over all recorded scores (cached in Redis).
"""

import logging
import time

from pudim.shared.background import run_async
from pudim.shared.clients import get_leaderboard_store
from pudim.shared.errors import InternalError
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.response_utils import json_response

configure_structured_logging()
logger = logging.getLogger(__name__)


def handler(event, context):
    start_time = time.time()
    set_request_id(event)

    try:
        statistics = run_async(get_leaderboard_store().get_statistics())
        response = json_response(200, statistics)
    except Exception as e:
        logger.exception(f"Unexpected error reading statistics: {e}")
        response = InternalError().to_response()

    log_api_request(logger, "GET", "/statistics", response["statusCode"], (time.time() - start_time) * 1000)
    return response
