"""
QloudSound API - CORS policy

The public site is served from a different origin than the API, so every
response carries cross-origin headers computed from ``API_ALLOWED_ORIGINS``
and the request's ``Origin`` header.  Preflight ``OPTIONS`` requests are
answered here directly with a 204.
"""

from typing import Dict, List, Optional

from starlette.datastructures import Headers
from starlette.responses import Response

ALLOW_METHODS = "GET,POST,OPTIONS"
DEFAULT_ALLOW_HEADERS = "Content-Type"


def resolve_allow_origin(origin: Optional[str], allowed_origins: List[str]) -> str:
    """
    Pick the ``Access-Control-Allow-Origin`` value.

    - ``*`` when the allow-list contains the wildcard
    - the request origin when it is on the allow-list
    - otherwise the first configured origin, or ``"null"`` if there is none
    """
    if "*" in allowed_origins:
        return "*"
    if origin and origin in allowed_origins:
        return origin
    return allowed_origins[0] if allowed_origins else "null"


def cors_headers(request_headers: Headers, allowed_origins: List[str]) -> Dict[str, str]:
    allow_origin = resolve_allow_origin(request_headers.get("origin"), allowed_origins)
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Vary": "Origin",
        "Access-Control-Allow-Headers": request_headers.get(
            "access-control-request-headers", DEFAULT_ALLOW_HEADERS
        ),
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        # Credentials cannot be combined with a wildcard origin.
        "Access-Control-Allow-Credentials": "false" if allow_origin == "*" else "true",
    }


def apply_cors(
    request_headers: Headers, response: Response, allowed_origins: List[str]
) -> Response:
    """Set the CORS headers on *response* in place and return it."""
    for name, value in cors_headers(request_headers, allowed_origins).items():
        response.headers[name] = value
    return response


def preflight_response(request_headers: Headers, allowed_origins: List[str]) -> Response:
    """Empty 204 answer for an ``OPTIONS`` preflight."""
    return apply_cors(request_headers, Response(status_code=204), allowed_origins)
