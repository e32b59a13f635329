"""
Shared request utilities for API handlers.

GitHub username rules:
- 1 to 39 characters
- Alphanumerics and hyphens only
- Cannot start or end with a hyphen, no consecutive hyphens
- Case-insensitive
"""

import base64
import json
import string
from typing import Optional, Tuple
from urllib.parse import unquote

from .errors import InvalidRequestError

MAX_USERNAME_LENGTH = 39

# Allowed characters between hyphens
_USERNAME_CHARS = frozenset(string.ascii_letters + string.digits)


def validate_username(username: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate a GitHub username.

    Returns: (is_valid, error_message)
    """
    if not username:
        return False, "Username is required"

    if len(username) > MAX_USERNAME_LENGTH:
        return False, f"Username too long: {len(username)} > {MAX_USERNAME_LENGTH}"

    for part in username.split("-"):
        if not part:
            return False, "Username cannot start or end with a hyphen or contain consecutive hyphens"
        if any(ch not in _USERNAME_CHARS for ch in part):
            return False, "Username may only contain alphanumeric characters and hyphens"

    return True, None


def get_username(event: dict) -> str:
    """
    Extract and validate the {username} path parameter.

    Raises:
        InvalidRequestError: If missing or not a valid GitHub username
    """
    path_params = event.get("pathParameters") or {}
    username = unquote(path_params.get("username") or "").strip()

    is_valid, error = validate_username(username)
    if not is_valid:
        raise InvalidRequestError(error, details={"username": username[:100]})
    return username


def get_limit(event: dict, default: int = 10, maximum: int = 100) -> int:
    """
    Parse the ?limit= query parameter.

    Raises:
        InvalidRequestError: If not an integer in 1..maximum
    """
    query_params = event.get("queryStringParameters") or {}
    raw = query_params.get("limit")
    if raw is None or raw == "":
        return default

    try:
        limit = int(raw)
    except (TypeError, ValueError):
        raise InvalidRequestError("limit must be an integer", details={"limit": str(raw)[:20]})

    if limit < 1 or limit > maximum:
        raise InvalidRequestError(f"limit must be between 1 and {maximum}", details={"limit": limit})
    return limit


def parse_json_body(event: dict) -> dict:
    """
    Decode the request body as a JSON object.

    Raises:
        InvalidRequestError: If the body is missing or not a JSON object
    """
    body = event.get("body")
    if not body:
        raise InvalidRequestError("Request body is required")

    if event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            raise InvalidRequestError("Request body is not valid base64")

    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        raise InvalidRequestError("Request body is not valid JSON")

    if not isinstance(parsed, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return parsed
