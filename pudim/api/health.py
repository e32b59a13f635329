"""
Health Check Endpoint - GET /health

Returns API status and the feature flags the frontend uses to decide what
to show (leaderboard, statistics).
No authentication required.
"""

import logging
import time
from datetime import datetime, timezone

from pudim.shared.config import feature_flags
from pudim.shared.logging_utils import configure_structured_logging, log_api_request, set_request_id
from pudim.shared.response_utils import json_response

configure_structured_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def handler(event, context):
    """
    Lambda handler for health check.

    Returns:
        200 with status information
    """
    start_time = time.time()

    # Set request ID for logging correlation
    set_request_id(event)

    response = json_response(
        200,
        {
            "status": "healthy",
            "version": VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "features": feature_flags(),
        },
        headers={"Cache-Control": "no-cache"},
    )

    latency_ms = (time.time() - start_time) * 1000
    log_api_request(logger, "GET", "/health", 200, latency_ms)

    return response
