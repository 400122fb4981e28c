import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

_RELAY_ENV = (
    "RELAY_PUBLIC_HOST",
    "RELAY_USE_TLS",
    "RELAY_MAX_REDIRECTS",
    "RELAY_SEGMENT_CONTENT_TYPE",
    "RELAY_UPSTREAM_STATUS_PASSTHROUGH",
    "UPSTREAM_PROXY_URL",
)


@pytest.fixture
def client(monkeypatch):
    # Start every test from the documented defaults, not the caller's shell env
    for name in _RELAY_ENV:
        monkeypatch.delenv(name, raising=False)

    repo_root = Path(__file__).resolve().parents[1]
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))

    # Config is read at import time; drop cached modules so env changes apply
    for m in list(sys.modules):
        if m == "hlsrelay" or m.startswith("hlsrelay."):
            del sys.modules[m]

    from hlsrelay.main import app

    with TestClient(app) as c:
        yield c
