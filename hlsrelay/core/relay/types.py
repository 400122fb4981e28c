from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ContentKind(str, Enum):
    """How a fetched payload is relayed back to the client."""

    PLAYLIST = "playlist"
    BINARY = "binary"


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of a single upstream fetch, after redirects have been followed.
    """

    body: bytes
    content_type: str
    final_url: str
    status_code: int = 200
    content_range: Optional[str] = None

    @property
    def text(self) -> str:
        """
        Decode the body as UTF-8 for playlist inspection and rewriting.

        Returns:
            str: The decoded body; undecodable bytes are replaced rather than raising.
        """
        return self.body.decode("utf-8", errors="replace")

    def prefix(self, size: int = 64) -> bytes:
        """
        Return the leading bytes of the body, used for payload sniffing.
        """
        return self.body[:size]
