"""
Update Consent Endpoint - POST /score/{username}/consent

Body: {"consent": true|false}

Sets leaderboard consent on the user's latest score record. Users without a
recorded score are a no-op (the next score starts without consent anyway).
"""

import logging
import time

from pudim.shared.background import run_async
from pudim.shared.clients import get_leaderboard_store
from pudim.shared.errors import APIError, InternalError, InvalidRequestError
from pudim.shared.logging_utils import configure_structured_logging, error_context, log_api_request, set_request_id
from pudim.shared.request_utils import get_username, parse_json_body
from pudim.shared.response_utils import json_response

configure_structured_logging()
logger = logging.getLogger(__name__)


def handler(event, context):
    """
    Lambda handler for POST /score/{username}/consent.

    Returns:
        200 with {username, consent}
        400 for an invalid username or body
        500 if the consent change could not be persisted
    """
    start_time = time.time()
    set_request_id(event)
    path = event.get("path") or "/score/consent"

    try:
        username = get_username(event)
        body = parse_json_body(event)
        consent = body.get("consent")
        if not isinstance(consent, bool):
            raise InvalidRequestError("consent must be a boolean", details={"field": "consent"})

        try:
            run_async(get_leaderboard_store().update_consent(username, consent))
        except Exception as e:
            logger.error(
                f"Failed to update leaderboard consent for {username}",
                extra={"username": username, **error_context(e)},
            )
            raise InternalError("Failed to update leaderboard consent. Please try again.")

        response = json_response(200, {"username": username, "consent": consent})
    except APIError as e:
        response = e.to_response()
    except Exception as e:
        logger.exception(f"Unexpected error updating consent: {e}")
        response = InternalError().to_response()

    log_api_request(logger, "POST", path, response["statusCode"], (time.time() - start_time) * 1000)
    return response
