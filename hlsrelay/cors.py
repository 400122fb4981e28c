from __future__ import annotations

from typing import Mapping, Optional

from fastapi.responses import Response

# Sent on every relay response, preflight or not, since players fetch
# segments cross-origin without always sending an Origin header.
RELAY_CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Expose-Headers": "*",
}


def with_cors(headers: Optional[Mapping[str, str]] = None) -> dict[str, str]:
    """Return a copy of `headers` with the permissive relay CORS headers added."""
    out = dict(headers or {})
    out.update(RELAY_CORS_HEADERS)
    return out


def preflight_response() -> Response:
    """Short-circuit answer for CORS preflight requests: 200 with an empty body."""
    return Response(content=b"", status_code=200, headers=with_cors())
