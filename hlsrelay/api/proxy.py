from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger

from hlsrelay.config import (
    RELAY_PUBLIC_HOST,
    RELAY_SEGMENT_CONTENT_TYPE,
    RELAY_UPSTREAM_STATUS_PASSTHROUGH,
    RELAY_USE_TLS,
)
from hlsrelay.cors import preflight_response, with_cors
from hlsrelay.core.relay import (
    RELAY_PATH,
    ContentKind,
    FetchResult,
    RelayError,
    UpstreamHttpError,
    UpstreamStream,
    base_directory,
    classify,
    fetch,
    open_upstream,
    redact_upstream,
    rewrite_playlist,
)
from hlsrelay.core.relay.classify import has_playlist_extension


router = APIRouter()

PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
# Playlists carry live-session state and the relay host, so they are never cached.
_PLAYLIST_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
# Published segments are immutable.
_SEGMENT_HEADERS = {
    "Cache-Control": "public, max-age=31536000",
    "Accept-Ranges": "bytes",
}


def _error_response(status_code: int, payload: Mapping[str, Any]) -> JSONResponse:
    """
    Build a JSON error body that still carries the CORS headers.
    """
    return JSONResponse(dict(payload), status_code=status_code, headers=with_cors())


def _failure_status(exc: RelayError) -> int:
    """
    Map an upstream failure to the relay's response status.

    Every failure is a 500 unless RELAY_UPSTREAM_STATUS_PASSTHROUGH is on, in
    which case origin error statuses are passed through and transport or
    redirect failures become 502.
    """
    if not RELAY_UPSTREAM_STATUS_PASSTHROUGH:
        return 500
    if isinstance(exc, UpstreamHttpError) and 400 <= exc.status_code < 600:
        return exc.status_code
    return 502


def _relay_host(request: Request) -> str:
    """
    Host written into relay references: configured public host, else the inbound Host header.
    """
    return RELAY_PUBLIC_HOST or request.headers.get("host") or request.url.netloc


def _forwarded_range(request: Request, target_url: str) -> Optional[str]:
    """
    Return the client Range header when it may be forwarded upstream.

    Playlists are always fetched whole since they have to be rewritten.
    """
    rng = request.headers.get("range")
    if not rng or has_playlist_extension(target_url):
        return None
    return rng


def _is_http_target(target_url: str) -> bool:
    try:
        scheme = urlsplit(target_url).scheme
    except ValueError:
        return False
    return scheme.lower() in ("http", "https")


def _fetch_failed(target_url: str, exc: RelayError) -> JSONResponse:
    logger.error("Proxy error for {}: {}", redact_upstream(target_url), exc)
    return _error_response(
        _failure_status(exc),
        {"error": "Failed to fetch content", "message": str(exc)},
    )


def _playlist_response(
    request: Request, target_url: str, result: FetchResult
) -> Response:
    relay_host = _relay_host(request)
    base_dir = base_directory(result.final_url)
    rewritten = rewrite_playlist(
        result.text, base_dir, relay_host, use_tls=RELAY_USE_TLS
    )
    out_bytes = rewritten.encode("utf-8")
    logger.success(
        "Rewrote HLS playlist {} ({} bytes) for relay host {}",
        redact_upstream(target_url),
        len(out_bytes),
        relay_host,
    )
    headers = dict(_PLAYLIST_HEADERS)
    if request.method == "HEAD":
        headers["Content-Length"] = str(len(out_bytes))
        out_bytes = b""
    return Response(
        content=out_bytes,
        status_code=200,
        media_type=PLAYLIST_MEDIA_TYPE,
        headers=with_cors(headers),
    )


async def _read_playlist(upstream: UpstreamStream, target_url: str) -> FetchResult:
    """
    Read a whole playlist body. A ranged (206) answer only holds a fragment,
    so the playlist is fetched again without the Range header.
    """
    try:
        if upstream.status_code != 206:
            return upstream.to_result(await upstream.read())
    finally:
        await upstream.aclose()
    logger.warning(
        "Ranged request returned a partial playlist for {}; fetching it whole",
        redact_upstream(target_url),
    )
    return await fetch(target_url)


def _streaming_body(upstream: UpstreamStream):
    """
    Create an async generator that streams upstream bytes and closes resources.
    """
    async def _gen():
        try:
            async for chunk in upstream.iter_body():
                yield chunk
        finally:
            await upstream.aclose()

    return _gen()


async def _segment_response(request: Request, upstream: UpstreamStream) -> Response:
    headers = dict(_SEGMENT_HEADERS)
    if upstream.content_range:
        headers["Content-Range"] = upstream.content_range
    if upstream.content_length:
        headers["Content-Length"] = upstream.content_length
    logger.debug(
        "Relaying binary payload (status={}, length={})",
        upstream.status_code,
        upstream.content_length or "<unknown>",
    )
    if request.method == "HEAD":
        await upstream.aclose()
        return Response(
            status_code=upstream.status_code,
            media_type=RELAY_SEGMENT_CONTENT_TYPE,
            headers=with_cors(headers),
        )
    return StreamingResponse(
        _streaming_body(upstream),
        status_code=upstream.status_code,
        media_type=RELAY_SEGMENT_CONTENT_TYPE,
        headers=with_cors(headers),
    )


@router.api_route(RELAY_PATH, methods=["GET", "HEAD", "OPTIONS"])
async def relay_proxy(request: Request):
    """
    Fetch `url` on behalf of the client; playlists come back rewritten to route through the relay, anything else is streamed through unchanged.
    """
    if request.method == "OPTIONS":
        return preflight_response()

    target_url = (request.query_params.get("url") or "").strip()
    if not target_url:
        return _error_response(400, {"error": "Missing url parameter"})
    if not _is_http_target(target_url):
        logger.warning("Rejected malformed or non-HTTP relay target")
        return _error_response(400, {"error": "Invalid url parameter"})

    range_header = _forwarded_range(request, target_url)
    logger.info(
        "Relay {} upstream={} range={}",
        request.method,
        redact_upstream(target_url),
        range_header or "<none>",
    )

    try:
        upstream = await open_upstream(target_url, range_header=range_header)
    except RelayError as exc:
        return _fetch_failed(target_url, exc)

    try:
        head = await upstream.peek()
        kind = classify(target_url, upstream.final_url, upstream.content_type, head)
        if kind is ContentKind.PLAYLIST:
            result = await _read_playlist(upstream, target_url)
            return _playlist_response(request, target_url, result)
    except RelayError as exc:
        await upstream.aclose()
        return _fetch_failed(target_url, exc)

    return await _segment_response(request, upstream)
