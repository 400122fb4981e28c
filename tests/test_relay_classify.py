import pytest

from hlsrelay.core.relay.classify import (
    classify,
    declares_playlist_content_type,
    has_playlist_extension,
    starts_with_playlist_header,
)
from hlsrelay.core.relay.types import ContentKind


def test_playlist_by_requested_extension():
    kind = classify(
        "https://cdn.example/live/master.m3u8",
        "https://cdn.example/live/master",
        "application/octet-stream",
        b"",
    )
    assert kind is ContentKind.PLAYLIST


def test_playlist_by_final_extension_after_redirect():
    kind = classify(
        "https://short.example/abc",
        "https://cdn.example/live/index.m3u8?token=1",
        "text/plain",
        b"",
    )
    assert kind is ContentKind.PLAYLIST


@pytest.mark.parametrize(
    "content_type",
    [
        "application/vnd.apple.mpegurl",
        "application/x-mpegURL; charset=utf-8",
        "audio/mpegurl",
        "application/m3u8",
    ],
)
def test_playlist_by_content_type(content_type):
    kind = classify("https://a/x", "https://a/x", content_type, b"\x47\x40")
    assert kind is ContentKind.PLAYLIST


def test_playlist_by_body_header_without_content_type():
    kind = classify("https://a/stream", "https://a/stream", "", b"  \n#EXTM3U\n#EXT")
    assert kind is ContentKind.PLAYLIST


def test_playlist_by_body_header_after_bom():
    assert starts_with_playlist_header(b"\xef\xbb\xbf#EXTM3U\n")


def test_binary_segment():
    kind = classify(
        "https://cdn.example/seg1.ts",
        "https://cdn.example/seg1.ts",
        "video/mp2t",
        b"\x47\x40\x00\x10",
    )
    assert kind is ContentKind.BINARY


def test_predicates():
    assert has_playlist_extension("https://a/B/INDEX.M3U8")
    assert not has_playlist_extension("https://a/index.m3u8.ts")
    assert not has_playlist_extension("https://a/seg.ts?next=index.m3u8")
    assert declares_playlist_content_type("application/vnd.apple.mpegurl")
    assert not declares_playlist_content_type("")
    assert not declares_playlist_content_type("video/mp2t")
    assert not starts_with_playlist_header(b"#EXTINF:6,\n")
