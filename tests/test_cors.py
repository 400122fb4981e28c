from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from hlsrelay.cors import RELAY_CORS_HEADERS, preflight_response, with_cors


def test_preflight_short_circuits(client) -> None:
    res = client.options(
        '/api/proxy',
        headers={
            'Origin': 'http://localhost:5173',
            'Access-Control-Request-Method': 'GET',
        },
    )

    assert res.status_code == 200
    assert res.content == b''
    assert res.headers.get('access-control-allow-origin') == '*'
    assert res.headers.get('access-control-allow-methods') == 'GET, HEAD, OPTIONS'
    assert res.headers.get('access-control-allow-headers') == '*'
    assert res.headers.get('access-control-expose-headers') == '*'


def test_options_without_origin_still_gets_cors(client) -> None:
    res = client.options('/api/proxy', params={'url': 'https://cdn.example/a.m3u8'})

    assert res.status_code == 200
    assert res.headers.get('access-control-allow-origin') == '*'


def test_with_cors_keeps_existing_headers() -> None:
    headers = with_cors({'Cache-Control': 'no-cache'})

    assert headers['Cache-Control'] == 'no-cache'
    for key, value in RELAY_CORS_HEADERS.items():
        assert headers[key] == value


def test_preflight_response_on_plain_app() -> None:
    app = FastAPI()

    @app.options('/x')
    def options_x():
        return preflight_response()

    res = TestClient(app).options('/x')

    assert res.status_code == 200
    assert res.headers.get('access-control-allow-origin') == '*'
