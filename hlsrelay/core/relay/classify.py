from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from urllib.parse import urlsplit

from loguru import logger

from .types import ContentKind

PLAYLIST_HEADER = b"#EXTM3U"
_PLAYLIST_EXTENSION = ".m3u8"
_PLAYLIST_CONTENT_TYPE_MARKERS = ("mpegurl", "m3u8")
_UTF8_BOM = b"\xef\xbb\xbf"


@dataclass(frozen=True)
class PayloadProbe:
    """Signals available for deciding how to relay a fetched payload."""

    requested_url: str
    final_url: str
    content_type: str
    body_prefix: bytes


def has_playlist_extension(url: str) -> bool:
    """Return whether the URL path ends in `.m3u8`."""
    return urlsplit(url).path.lower().endswith(_PLAYLIST_EXTENSION)


def declares_playlist_content_type(content_type: str) -> bool:
    """Return whether a Content-Type header names an MPEG-URL playlist."""
    ct = (content_type or "").lower()
    return any(marker in ct for marker in _PLAYLIST_CONTENT_TYPE_MARKERS)


def starts_with_playlist_header(body_prefix: bytes) -> bool:
    """Return whether the body opens with `#EXTM3U` once whitespace is trimmed."""
    head = body_prefix.lstrip()
    if head.startswith(_UTF8_BOM):
        head = head[len(_UTF8_BOM) :].lstrip()
    return head.startswith(PLAYLIST_HEADER)


# Evaluated in order; the first signal that fires classifies the payload as a playlist.
_PLAYLIST_SIGNALS: tuple[tuple[str, Callable[[PayloadProbe], bool]], ...] = (
    ("requested-extension", lambda p: has_playlist_extension(p.requested_url)),
    ("final-extension", lambda p: has_playlist_extension(p.final_url)),
    ("content-type", lambda p: declares_playlist_content_type(p.content_type)),
    ("body-header", lambda p: starts_with_playlist_header(p.body_prefix)),
)


def classify(
    requested_url: str,
    final_url: str,
    content_type: str,
    body_prefix: bytes,
) -> ContentKind:
    """
    Decide whether a fetched payload is an HLS playlist or opaque binary.

    Origins are inconsistent about declaring playlist content types, so the
    URL extension, the declared type and the body header are all consulted.

    Parameters:
        requested_url (str): URL the client asked the relay for.
        final_url (str): URL the payload was served from after redirects.
        content_type (str): Content-Type declared by the origin (may be empty).
        body_prefix (bytes): Leading bytes of the body.

    Returns:
        ContentKind: PLAYLIST when any signal matches, otherwise BINARY.
    """
    probe = PayloadProbe(
        requested_url=requested_url,
        final_url=final_url,
        content_type=content_type,
        body_prefix=body_prefix,
    )
    for name, signal in _PLAYLIST_SIGNALS:
        if signal(probe):
            logger.debug("Classified payload as playlist via {}", name)
            return ContentKind.PLAYLIST
    return ContentKind.BINARY
