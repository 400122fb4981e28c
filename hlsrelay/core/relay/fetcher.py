from __future__ import annotations

from typing import Any, AsyncIterator, Mapping, Optional
from urllib.parse import urljoin

import httpx
from loguru import logger

from hlsrelay.config import (
    RELAY_ACCEPT,
    RELAY_MAX_REDIRECTS,
    RELAY_UPSTREAM_CONNECT_TIMEOUT,
    RELAY_UPSTREAM_TIMEOUT,
    RELAY_USER_AGENT,
    UPSTREAM_DISABLE_CERT_VERIFY,
    UPSTREAM_PROXY_URL,
)
from .errors import TooManyRedirects, TransportError, UpstreamHttpError
from .types import FetchResult
from .urls import redact_upstream

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})
_DEFAULT_CONTENT_TYPE = "application/octet-stream"


def default_upstream_headers() -> dict[str, str]:
    """
    Browser-like request headers sent to origins that reject unknown clients.
    """
    return {
        "User-Agent": RELAY_USER_AGENT,
        "Accept": RELAY_ACCEPT,
        "Accept-Encoding": "identity",
    }


def _build_async_client() -> httpx.AsyncClient:
    """
    Build an AsyncClient for one relay request. Redirects are followed by
    `open_upstream` itself so the hop count stays bounded and observable.
    """
    logger.trace("Building upstream AsyncClient")
    timeout = httpx.Timeout(
        RELAY_UPSTREAM_TIMEOUT, connect=RELAY_UPSTREAM_CONNECT_TIMEOUT
    )
    kwargs: dict[str, Any] = {}
    if UPSTREAM_PROXY_URL:
        kwargs["proxy"] = UPSTREAM_PROXY_URL
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=False,
        trust_env=False,
        verify=not UPSTREAM_DISABLE_CERT_VERIFY,
        **kwargs,
    )


_STREAM_CHUNK_SIZE = 64 * 1024


class UpstreamStream:
    """
    An accepted upstream response whose body has not been read yet.

    Owns the response and the client that produced it; `aclose` releases both.
    The first chunk can be peeked for classification and is replayed by
    `iter_body`.
    """

    def __init__(
        self, response: httpx.Response, client: httpx.AsyncClient, final_url: str
    ) -> None:
        self.response = response
        self.client = client
        self.final_url = final_url
        self._chunks = response.aiter_bytes(chunk_size=_STREAM_CHUNK_SIZE)
        self._head: Optional[bytes] = None

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def content_type(self) -> str:
        return self.response.headers.get("content-type") or _DEFAULT_CONTENT_TYPE

    @property
    def content_range(self) -> Optional[str]:
        if self.status_code != 206:
            return None
        return self.response.headers.get("content-range")

    @property
    def content_length(self) -> Optional[str]:
        return self.response.headers.get("content-length")

    async def peek(self) -> bytes:
        """Read (once) and return the first body chunk without consuming it."""
        if self._head is None:
            try:
                self._head = await self._chunks.__anext__()
            except StopAsyncIteration:
                self._head = b""
            except httpx.RequestError as exc:
                raise _transport_error(self.final_url, exc) from exc
        return self._head

    async def iter_body(self) -> AsyncIterator[bytes]:
        head = await self.peek()
        if head:
            yield head
        try:
            async for chunk in self._chunks:
                yield chunk
        except httpx.RequestError as exc:
            raise _transport_error(self.final_url, exc) from exc

    async def read(self) -> bytes:
        return b"".join([chunk async for chunk in self.iter_body()])

    def to_result(self, body: bytes) -> FetchResult:
        return FetchResult(
            body=body,
            content_type=self.content_type,
            final_url=self.final_url,
            status_code=self.status_code,
            content_range=self.content_range,
        )

    async def aclose(self) -> None:
        await self.response.aclose()
        await self.client.aclose()


def _transport_error(url: str, exc: Exception) -> TransportError:
    logger.warning("Upstream request failed ({}): {}", redact_upstream(url), exc)
    return TransportError(str(exc) or exc.__class__.__name__)


async def open_upstream(
    url: str,
    max_redirects: Optional[int] = None,
    *,
    headers: Optional[Mapping[str, str]] = None,
    range_header: Optional[str] = None,
) -> UpstreamStream:
    """
    GET an upstream URL, following redirects up to a bounded number of hops,
    and return the accepted response with its body still unread.

    Each `Location` is resolved against the URL of the hop that produced it,
    so relative redirect targets work. The caller must `aclose()` the result.

    Parameters:
        url (str): Absolute HTTP(S) URL to fetch.
        max_redirects (int | None): Redirects to follow; defaults to RELAY_MAX_REDIRECTS.
        headers (Mapping[str, str] | None): Overrides merged onto the default upstream headers.
        range_header (str | None): Client `Range` header to forward; a 206 answer is then accepted.

    Returns:
        UpstreamStream: Open response, declared content type and the final URL after redirects.

    Raises:
        TransportError: DNS, connection, timeout or protocol failure.
        UpstreamHttpError: Origin answered with a non-success, non-redirect status.
        TooManyRedirects: More than `max_redirects` redirects were issued.
    """
    limit = RELAY_MAX_REDIRECTS if max_redirects is None else max(0, max_redirects)
    request_headers = default_upstream_headers()
    if headers:
        request_headers.update(headers)
    accepted = {200}
    if range_header:
        request_headers["Range"] = range_header
        accepted.add(206)

    current_url = url
    client = _build_async_client()
    try:
        for hop in range(limit + 1):
            logger.debug("Upstream GET hop={} {}", hop, redact_upstream(current_url))
            try:
                request = client.build_request(
                    "GET", current_url, headers=request_headers
                )
                response = await client.send(request, stream=True)
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                raise _transport_error(current_url, exc) from exc

            status = response.status_code
            if status in REDIRECT_STATUSES:
                location = response.headers.get("location")
                await response.aclose()
                if not location:
                    logger.warning("Redirect {} without Location header", status)
                    raise UpstreamHttpError(status)
                current_url = urljoin(current_url, location)
                logger.trace("Following redirect {} -> {}", status, current_url)
                continue

            if status not in accepted:
                await response.aclose()
                logger.warning(
                    "Upstream status {} for {}", status, redact_upstream(current_url)
                )
                raise UpstreamHttpError(status)

            return UpstreamStream(response, client, current_url)

        logger.warning(
            "Too many redirects (max={}) for {}", limit, redact_upstream(url)
        )
        raise TooManyRedirects(limit)
    except BaseException:
        await client.aclose()
        raise


async def fetch(
    url: str,
    max_redirects: Optional[int] = None,
    *,
    headers: Optional[Mapping[str, str]] = None,
    range_header: Optional[str] = None,
) -> FetchResult:
    """
    Like `open_upstream`, but read the whole body and release the connection.

    Text decoding is left to the caller (see `FetchResult.text`).
    """
    upstream = await open_upstream(
        url, max_redirects, headers=headers, range_header=range_header
    )
    try:
        body = await upstream.read()
    finally:
        await upstream.aclose()
    return upstream.to_result(body)
