"""
Response utilities for Lambda handlers.

Provides consistent response formatting for JSON and SVG responses.
"""

import json
from decimal import Decimal
from typing import Any, Optional

# Public, CDN-cacheable responses (badges, scores)
CACHE_CONTROL_PUBLIC = "public, max-age=300, s-maxage=300, stale-while-revalidate=60"
CDN_CACHE_CONTROL_PUBLIC = "public, max-age=300"

# Error badges recover faster once GitHub is back
CACHE_CONTROL_ERROR = "public, max-age=60, s-maxage=60, stale-while-revalidate=30"
CDN_CACHE_CONTROL_ERROR = "public, max-age=60"


def decimal_default(obj: Any) -> Any:
    """JSON serializer for Decimal types from DynamoDB."""
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


def json_response(status_code: int, body: Any, headers: Optional[dict] = None) -> dict:
    """
    Create standardized JSON response.

    Args:
        status_code: HTTP status code
        body: Response body (dict or list)
        headers: Optional additional headers

    Returns:
        Lambda response dictionary
    """
    response_headers = {"Content-Type": "application/json"}
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(body, default=decimal_default),
    }


def svg_response(svg_body: str, error: bool = False) -> dict:
    """Return a raw SVG response (not JSON) with CDN cache headers."""
    return {
        "statusCode": 200,
        "headers": {
            "Content-Type": "image/svg+xml",
            "Cache-Control": CACHE_CONTROL_ERROR if error else CACHE_CONTROL_PUBLIC,
            "CDN-Cache-Control": CDN_CACHE_CONTROL_ERROR if error else CDN_CACHE_CONTROL_PUBLIC,
        },
        "body": svg_body,
        "isBase64Encoded": False,
    }
