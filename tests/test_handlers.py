"""Tests for the relay endpoint."""

import httpx
import pytest
from conftest import ENDPOINT, decode_relay_url

from app import create_app
from core.classifier import ContentClassifier
from core.exceptions import ConfigurationError

PLAYLIST = (
    "#EXTM3U\n"
    "#EXT-X-VERSION:3\n"
    '#EXT-X-KEY:METHOD=AES-128,URI="/keys/k.bin"\n'
    "#EXTINF:10.0,\n"
    "segment1.ts\n"
    "#EXTINF:10.0,\n"
    "https://cdn.com/segment2.ts\n"
    "#EXT-X-ENDLIST\n"
)


def _serve(content: bytes, content_type: str | None = None, status: int = 200):
    headers = {"content-type": content_type} if content_type else {}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=content, headers=headers)

    return handler


def _assert_cors(response):
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET, OPTIONS"
    assert response.headers["access-control-allow-headers"] == "Content-Type"


def test_missing_url_returns_400(make_client, logger):
    client = make_client(_serve(b""))
    response = client.get(ENDPOINT)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing or invalid 'url' parameter"}
    _assert_cors(response)
    assert logger.errors[0][1] == 400


def test_empty_or_repeated_url_returns_400(make_client):
    client = make_client(_serve(b""))

    assert client.get(ENDPOINT, params={"url": ""}).status_code == 400
    response = client.get(
        ENDPOINT, params=[("url", "https://a.com/a.m3u8"), ("url", "https://a.com/b.m3u8")]
    )
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.parametrize("url", ["not a url", "a.com/index.m3u8", "ftp://a.com/x.m3u8", "http://"])
def test_invalid_url_returns_400(make_client, url):
    client = make_client(_serve(b""))
    response = client.get(ENDPOINT, params={"url": url})

    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid URL format")


def test_playlist_is_rewritten(make_client, logger):
    client = make_client(_serve(PLAYLIST.encode(), "application/vnd.apple.mpegurl"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/path/index.m3u8"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/vnd.apple.mpegurl"
    assert response.headers["cache-control"] == "no-cache"
    _assert_cors(response)

    lines = response.text.split("\n")
    assert lines[0] == "#EXTM3U"
    assert lines[1] == "#EXT-X-VERSION:3"
    key_uri = lines[2].split('URI="', 1)[1].rstrip('"')
    assert decode_relay_url(key_uri)["url"] == "https://a.com/keys/k.bin"
    assert decode_relay_url(lines[4])["url"] == "https://a.com/path/segment1.ts"
    assert decode_relay_url(lines[6])["url"] == "https://cdn.com/segment2.ts"
    assert lines[7] == "#EXT-X-ENDLIST"
    assert logger.relays == [
        ("https://a.com/path/index.m3u8", 200, "application/vnd.apple.mpegurl", True)
    ]


def test_playlist_referer_sent_upstream_and_propagated(make_client, logger):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("referer"))
        return httpx.Response(200, content=b"#EXTM3U\nseg.ts\n")

    client = make_client(handler)
    response = client.get(
        ENDPOINT,
        params={"url": "https://a.com/live/index.m3u8?token=1", "referer": "https://player.example/"},
    )

    assert seen == ["https://player.example/"]
    assert logger.requests == [("https://a.com/live/index.m3u8?token=1", "https://player.example/")]
    segment = decode_relay_url(response.text.split("\n")[1])
    assert segment == {"url": "https://a.com/live/seg.ts", "referer": "https://player.example/"}


def test_playlist_without_content_type_detected_by_extension(make_client):
    client = make_client(_serve(b"#EXTM3U\nseg.ts"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/index.m3u8"})

    assert response.headers["content-type"] == "application/vnd.apple.mpegurl"
    assert response.text.split("\n")[1].startswith(f"{ENDPOINT}?url=")


def test_relayed_playlist_followed_through_relay(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".m3u8"):
            return httpx.Response(200, content=b"#EXTM3U\nseg.ts\n")
        return httpx.Response(200, content=b"\x47\x00", headers={"content-type": "video/mp2t"})

    client = make_client(handler)
    playlist = client.get(ENDPOINT, params={"url": "https://a.com/v/index.m3u8"})
    segment = client.get(playlist.text.split("\n")[1])

    assert segment.status_code == 200
    assert segment.content == b"\x47\x00"


def test_binary_relayed_byte_for_byte(make_client, logger):
    body = bytes(range(256)) * 64
    client = make_client(_serve(body, "video/mp2t"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/path/seg.ts"})

    assert response.status_code == 200
    assert response.content == body
    assert response.headers["content-type"] == "video/mp2t"
    assert response.headers["cache-control"] == "max-age=3600"
    _assert_cors(response)
    assert logger.relays == [("https://a.com/path/seg.ts", 200, "video/mp2t", False)]


def test_undecodable_playlist_passed_through(make_client, logger):
    body = b"\xff\xfe#\x00E\x00X\x00T\x00"
    client = make_client(_serve(body, "application/x-mpegURL"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/index.m3u8"})

    assert response.status_code == 200
    assert response.content == body
    assert response.headers["content-type"] == "application/x-mpegURL"
    assert logger.skips[0][0] == "https://a.com/index.m3u8"
    assert logger.errors == []


def test_upstream_error_status_forwarded(make_client, logger):
    client = make_client(_serve(b"<html>nope</html>", "text/html", status=404))
    response = client.get(ENDPOINT, params={"url": "https://a.com/missing.m3u8"})

    assert response.status_code == 404
    assert response.json() == {"error": "Upstream responded with 404", "status": 404}
    _assert_cors(response)
    assert logger.errors == [("https://a.com/missing.m3u8", 404, "Upstream responded with 404")]


def test_unreachable_upstream_returns_500(make_client, logger):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    client = make_client(handler)
    response = client.get(ENDPOINT, params={"url": "https://a.com/index.m3u8"})

    assert response.status_code == 500
    assert response.json() == {"error": "Upstream connection error: Connection refused"}
    assert logger.errors[0][1] == 500


def test_upstream_timeout_returns_500(make_client):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = make_client(handler)
    response = client.get(ENDPOINT, params={"url": "https://a.com/index.m3u8"})

    assert response.status_code == 500
    assert response.json() == {"error": "Upstream timeout: timed out"}


def test_unexpected_error_returns_500_without_traceback(make_client, logger, monkeypatch):
    def explode(self, content_type, target_url):
        raise RuntimeError("classifier broke")

    monkeypatch.setattr(ContentClassifier, "is_playlist", explode)
    client = make_client(_serve(b"", "video/mp2t"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/seg.ts"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert logger.errors == [("https://a.com/seg.ts", 500, "RuntimeError: classifier broke")]


def test_preflight(make_client):
    client = make_client(_serve(b""))
    response = client.options(ENDPOINT)

    assert response.status_code == 204
    _assert_cors(response)


def test_custom_endpoint(config, make_client):
    config.relay.endpoint = "/relay"
    client = make_client(_serve(b"#EXTM3U\nseg.ts", "application/x-mpegURL"))
    response = client.get("/relay", params={"url": "https://a.com/index.m3u8"})

    assert response.text.split("\n")[1] == "/relay?url=https%3A%2F%2Fa.com%2Fseg.ts"


def test_endpoint_must_be_absolute_path(config, logger):
    config.relay.endpoint = "relay"
    with pytest.raises(ConfigurationError):
        create_app(config, logger)


def test_text_content_type_mirrored_verbatim(make_client):
    client = make_client(_serve(b"WEBVTT\n\n00:00.000 --> 00:01.000\nhi\n", "text/vtt"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/subs/en.vtt"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/vtt"


def test_playlist_content_type_mirrored_verbatim(make_client):
    client = make_client(_serve(b"#EXTM3U\nseg.ts", "text/plain"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/index.m3u8"})

    assert response.headers["content-type"] == "text/plain"
    assert response.text.split("\n")[1].startswith(f"{ENDPOINT}?url=")


@pytest.mark.parametrize("content_type", ["text/html; charset=utf-8", "video/mp2t"])
def test_mis_typed_playlist_still_rewritten(make_client, content_type):
    client = make_client(_serve(b"#EXTM3U\nseg.ts", content_type))
    response = client.get(ENDPOINT, params={"url": "https://a.com/live/index.m3u8"})

    assert response.headers["content-type"] == content_type
    assert decode_relay_url(response.text.split("\n")[1])["url"] == "https://a.com/live/seg.ts"


def test_audio_mpegurl_playlist_rewritten(make_client):
    client = make_client(_serve(b"#EXTM3U\nseg.ts", "audio/mpegurl"))
    response = client.get(ENDPOINT, params={"url": "https://a.com/live/playlist"})

    assert decode_relay_url(response.text.split("\n")[1])["url"] == "https://a.com/live/seg.ts"
