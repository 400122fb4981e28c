from .types import ContentKind, FetchResult
from .errors import RelayError, TooManyRedirects, TransportError, UpstreamHttpError
from .urls import (
    RELAY_PATH,
    base_directory,
    build_relay_url,
    is_already_relayed,
    redact_upstream,
    relay_scheme,
    resolve_url,
)
from .classify import classify
from .hls import rewrite_hls_playlist, rewrite_playlist
from .fetcher import UpstreamStream, fetch, open_upstream


__all__ = [
    "ContentKind",
    "FetchResult",
    "RelayError",
    "TooManyRedirects",
    "TransportError",
    "UpstreamHttpError",
    "RELAY_PATH",
    "base_directory",
    "build_relay_url",
    "is_already_relayed",
    "redact_upstream",
    "relay_scheme",
    "resolve_url",
    "classify",
    "rewrite_hls_playlist",
    "rewrite_playlist",
    "UpstreamStream",
    "fetch",
    "open_upstream",
]
