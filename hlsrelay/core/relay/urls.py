from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit

from loguru import logger

RELAY_PATH = "/api/proxy"

_ABSOLUTE_PREFIXES = ("http://", "https://")
_LOOPBACK_MARKERS = ("localhost", "127.0.0.1", "[::1]")
# RFC 3986 scheme, e.g. "skd:" (FairPlay) or "data:".
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def is_absolute(ref: str) -> bool:
    """
    Return whether a reference already carries an HTTP(S) scheme.
    """
    return ref.lower().startswith(_ABSOLUTE_PREFIXES)


def has_foreign_scheme(ref: str) -> bool:
    """
    Return whether a reference uses a non-HTTP scheme the relay cannot fetch.
    """
    return bool(_SCHEME_RE.match(ref)) and not is_absolute(ref)


def origin(url: str) -> str:
    """
    Return scheme + host (+ port) of a URL, without credentials, path or query.
    """
    parsed = urlsplit(url)
    host = parsed.netloc.rsplit("@", 1)[-1]
    return f"{parsed.scheme}://{host}"


def base_directory(url: str) -> str:
    """
    Compute the directory a playlist's relative references resolve against.

    Parameters:
        url (str): The URL the playlist was finally served from (after redirects).

    Returns:
        str: Origin plus the path with its last segment removed and no trailing slash; query and fragment are dropped.
    """
    path = urlsplit(url).path or ""
    return origin(url) + path.rsplit("/", 1)[0]


def resolve_url(ref: str, base_dir: str) -> str:
    """
    Resolve a playlist reference against a base directory.

    Absolute references are returned verbatim, root-relative ones are joined to
    the base origin only, anything else is appended to the directory.
    """
    if is_absolute(ref):
        return ref
    if ref.startswith("//"):
        return f"{urlsplit(base_dir).scheme}:{ref}"
    if ref.startswith("/"):
        return origin(base_dir) + ref
    return f"{base_dir}/{ref}"


def relay_scheme(relay_host: str, use_tls: Optional[bool] = None) -> str:
    """
    Pick the scheme for relay references.

    Parameters:
        relay_host (str): Host (and optional port) clients use to reach the relay.
        use_tls (bool | None): Explicit choice; when None a loopback-looking host gets `http`, everything else `https`.

    Returns:
        str: "http" or "https".
    """
    if use_tls is not None:
        return "https" if use_tls else "http"
    host = relay_host.lower()
    if any(marker in host for marker in _LOOPBACK_MARKERS):
        return "http"
    return "https"


def is_already_relayed(url: str, relay_host: str) -> bool:
    """
    Determine whether a URL already points at this relay's proxy endpoint.
    """
    parsed = urlsplit(url)
    relayed = (
        parsed.netloc.lower() == relay_host.lower()
        and parsed.path == RELAY_PATH
        and "url" in parse_qs(parsed.query)
    )
    logger.trace("URL already relayed? {} -> {}", url, relayed)
    return relayed


def build_relay_url(
    target_url: str, *, relay_host: str, use_tls: Optional[bool] = None
) -> str:
    """
    Construct the relay reference for an absolute upstream URL.

    If `target_url` already targets this relay it is returned unchanged, so
    rewriting an already rewritten playlist never double-wraps.

    Parameters:
        target_url (str): Absolute upstream URL.
        relay_host (str): Host (and optional port) of the relay.
        use_tls (bool | None): See `relay_scheme`.

    Returns:
        str: `<scheme>://<relay_host>/api/proxy?url=<percent-encoded target>`.
    """
    if is_already_relayed(target_url, relay_host):
        return target_url
    scheme = relay_scheme(relay_host, use_tls)
    return f"{scheme}://{relay_host}{RELAY_PATH}?{urlencode({'url': target_url})}"


def redact_upstream(url: str) -> str:
    """
    Produce a redacted identifier for logging upstream URLs.
    """
    try:
        parsed = urlsplit(url)
        host = parsed.netloc.rsplit("@", 1)[-1]
        path = parsed.path or "/"
        return f"{host}:{hash(path) & 0xFFFF_FFFF:x}"
    except ValueError:
        return "<redacted>"
