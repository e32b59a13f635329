"""
Shared error classification for upstream HTTP calls.

Maps transport-level exceptions (raised before any HTTP status exists) to
the tagged error codes in errors.py, so callers never see raw exception text.
"""

import socket

import httpx

from .errors import DNS_ERROR, NETWORK_ERROR, TIMEOUT, UNKNOWN_ERROR

# Resolver failures surface as ConnectError with these messages
DNS_PATTERNS = [
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated with hostname",
    "enotfound",
]

TIMEOUT_PATTERNS = [
    "timeout",
    "timed out",
]


def _is_dns_failure(error: BaseException) -> bool:
    seen = set()
    cause = error
    while cause is not None and id(cause) not in seen:
        if isinstance(cause, socket.gaierror):
            return True
        seen.add(id(cause))
        cause = cause.__cause__ or cause.__context__

    error_lower = str(error).lower()
    return any(pattern in error_lower for pattern in DNS_PATTERNS)


def classify_transport_error(error: BaseException) -> str:
    """
    Classify an exception raised while talking to an upstream API.

    Returns:
        "timeout" - connect/read/write/pool timeouts
        "dns_error" - hostname could not be resolved
        "network_error" - any other transport failure
        "unknown_error" - not a transport failure at all
    """
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return TIMEOUT

    if isinstance(error, (httpx.TransportError, OSError)):
        if _is_dns_failure(error):
            return DNS_ERROR
        return NETWORK_ERROR

    error_lower = str(error).lower()
    if any(pattern in error_lower for pattern in TIMEOUT_PATTERNS):
        return TIMEOUT

    return UNKNOWN_ERROR
