import uvicorn

from hlsrelay import cli


def _capture_run(monkeypatch):
    seen = {}

    def fake_run(app, **kwargs):
        seen["app"] = app
        seen.update(kwargs)

    monkeypatch.setattr(uvicorn, "run", fake_run)
    return seen


def test_run_server_without_reload_serves_app_object(monkeypatch):
    seen = _capture_run(monkeypatch)
    monkeypatch.setattr(cli, "RELAY_RELOAD", False)
    monkeypatch.setattr(cli, "RELAY_PORT", 9000)
    app = object()

    cli.run_server(app)

    assert seen["app"] is app
    assert seen["reload"] is False
    assert seen["port"] == 9000


def test_run_server_with_reload_imports_app_by_path(monkeypatch):
    seen = _capture_run(monkeypatch)
    monkeypatch.setattr(cli, "RELAY_RELOAD", True)

    cli.run_server(object())

    assert seen["app"] == "hlsrelay.main:app"
    assert seen["reload"] is True
