from pathlib import Path

_DIST_NAME = "hls-relay"


def _version_file() -> Path:
    return Path(__file__).resolve().parents[1] / "VERSION"


def get_version() -> str:
    """Version from the source tree's VERSION file, else installed metadata, else 0.0.0."""
    vfile = _version_file()
    if vfile.exists():
        text = vfile.read_text().strip()
        if text:
            return text
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version(_DIST_NAME)
    except PackageNotFoundError:
        return "0.0.0"


__version__ = get_version()
