from __future__ import annotations

import re
from functools import partial
from typing import Callable, Optional

from loguru import logger

from .urls import build_relay_url, has_foreign_scheme, resolve_url

# Attribute name must be exactly URI, not a suffix of e.g. X-ALT-URI.
_URI_ATTR_RE = re.compile(r'(?<![\w-])URI="(?P<uri>[^"]*)"')
_URI_ATTR_MARKER = 'URI="'


def _rewrite_reference(
    raw_ref: str, base_dir: str, rewrite_url: Callable[[str], str]
) -> str:
    """
    Resolve a single playlist reference and route it through `rewrite_url`.

    Empty references and non-HTTP schemes (e.g. `skd://` key identifiers) are
    returned untouched since the relay cannot fetch them.
    """
    if not raw_ref or has_foreign_scheme(raw_ref):
        return raw_ref
    return rewrite_url(resolve_url(raw_ref, base_dir))


def _rewrite_uri_attr(
    line: str, base_dir: str, rewrite_url: Callable[[str], str]
) -> str:
    """
    Rewrite URI attributes found in a single HLS tag line.

    Parameters:
        line (str): An HLS tag line containing one or more `URI="..."` attributes.
        base_dir (str): Directory URL used to resolve relative URIs found in the line.
        rewrite_url (Callable[[str], str]): Function that takes an absolute URI and returns its relay form.

    Returns:
        str: The input line with each quoted URI value replaced; every other byte is preserved.
    """
    logger.trace("Rewriting HLS tag URI in line: {}", line.strip())

    def _replace(match: re.Match[str]) -> str:
        return f'URI="{_rewrite_reference(match.group("uri"), base_dir, rewrite_url)}"'

    return _URI_ATTR_RE.sub(_replace, line)


def rewrite_hls_playlist(
    playlist_text: str, *, base_dir: str, rewrite_url: Callable[[str], str]
) -> str:
    """
    Rewrite every URI in an HLS playlist using a base directory to resolve relative references and a provided URL-rewriting function.

    The playlist is split on newlines only, so line count and order are kept
    exactly, including a trailing newline and CRLF line endings.

    Parameters:
        playlist_text (str): The raw HLS playlist text to rewrite.
        base_dir (str): Directory URL (see `base_directory`) relative URIs resolve against.
        rewrite_url (Callable[[str], str]): Callable that receives an absolute URI and returns the rewritten URI.

    Returns:
        str: The playlist text with all URI attributes and standalone URI lines rewritten.
    """
    logger.debug("Rewriting HLS playlist from {}", base_dir)
    if not playlist_text:
        return playlist_text

    out_lines: list[str] = []
    for line in playlist_text.split("\n"):
        stripped = line.strip()
        if not stripped:
            out_lines.append(line)
            continue
        if stripped.startswith("#"):
            if _URI_ATTR_MARKER in stripped:
                out_lines.append(_rewrite_uri_attr(line, base_dir, rewrite_url))
            else:
                out_lines.append(line)
            continue

        logger.trace("Rewriting HLS URI line: {}", stripped)
        line_ending = "\r" if line.endswith("\r") else ""
        out_lines.append(
            _rewrite_reference(stripped, base_dir, rewrite_url) + line_ending
        )

    logger.debug("Rewrote HLS playlist ({} lines)", len(out_lines))
    return "\n".join(out_lines)


def rewrite_playlist(
    playlist_text: str,
    base_dir: str,
    relay_host: str,
    *,
    use_tls: Optional[bool] = None,
) -> str:
    """
    Rewrite a playlist so every reference is routed back through the relay at `relay_host`.
    """
    rewrite_url = partial(build_relay_url, relay_host=relay_host, use_tls=use_tls)
    return rewrite_hls_playlist(
        playlist_text, base_dir=base_dir, rewrite_url=rewrite_url
    )
