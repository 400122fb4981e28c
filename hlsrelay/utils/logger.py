import os
import sys
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def config():
    """
    Configure the global Loguru logger: a colorized stdout sink at LOG_LEVEL
    and, when RELAY_LOG_PATH is set, a plain-text file sink next to it.
    Safe to call repeatedly; existing sinks are replaced.
    """
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    logger.remove()
    logger.add(sys.stdout, level=LOG_LEVEL, colorize=True, format=_FORMAT)

    log_path = os.environ.get("RELAY_LOG_PATH", "").strip()
    if log_path:
        path = Path(log_path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(str(path), level=LOG_LEVEL, colorize=False, format=_FORMAT)


def mask_url(url: str | None) -> str:
    """Mask the password in a URL (e.g. an outbound proxy) for safe logging."""
    if not url:
        return ""
    try:
        p = urlsplit(url)
    except ValueError:
        return url
    netloc = p.netloc
    if "@" not in netloc:
        return url
    userinfo, host = netloc.split("@", 1)
    user = userinfo.split(":", 1)[0]
    return urlunsplit((p.scheme, f"{user}:****@{host}", p.path, p.query, p.fragment))
