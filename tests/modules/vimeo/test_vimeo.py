"""
Tests for the Vimeo oEmbed client and proxy route.
"""
import httpx
import pytest

from fxdojo.integrations.vimeo.client import VimeoClient, VimeoError, extract_video_id, get_vimeo_client
from fxdojo.main import app

OEMBED = {
    "type": "video",
    "title": "London open walkthrough",
    "thumbnail_url": "https://i.vimeocdn.com/video/123_640.jpg",
    "video_id": 76979871,
}


def _client(status_code=200, body=None):
    def handler(request):
        assert request.url.params["url"] == "https://vimeo.com/76979871"
        return httpx.Response(status_code, json=OEMBED if body is None else body)

    return VimeoClient(oembed_url="https://vimeo.test/api/oembed.json", transport=httpx.MockTransport(handler))


@pytest.mark.parametrize(
    "value, expected",
    [
        ("76979871", "76979871"),
        ("https://vimeo.com/76979871", "76979871"),
        ("https://player.vimeo.com/video/76979871?h=abc", "76979871"),
        ("vimeo.com/76979871", "76979871"),
        ("https://youtube.com/watch?v=76979871", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_video_id(value, expected):
    assert extract_video_id(value) == expected


class TestVimeoClient:
    def test_get_thumbnail(self):
        assert _client().get_thumbnail("https://vimeo.com/76979871") == OEMBED["thumbnail_url"]

    def test_thumbnail_is_none_on_error(self):
        assert _client(status_code=404, body={}).get_thumbnail("76979871") is None

    def test_thumbnail_for_unknown_url(self):
        assert _client().get_thumbnail("not a video") is None

    def test_get_oembed_raises(self):
        with pytest.raises(VimeoError):
            _client(status_code=500, body={}).get_oembed("76979871")


class TestOembedRoute:
    @pytest.fixture
    def use_vimeo(self):
        def install(vimeo_client):
            app.dependency_overrides[get_vimeo_client] = lambda: vimeo_client

        yield install
        app.dependency_overrides.pop(get_vimeo_client, None)

    def test_proxies_oembed(self, client, use_vimeo):
        use_vimeo(_client())

        response = client.get("/api/v1/vimeo/oembed", params={"url": "https://vimeo.com/76979871"})

        assert response.status_code == 200
        assert response.json()["title"] == "London open walkthrough"

    def test_invalid_url(self, client, use_vimeo):
        use_vimeo(_client())
        response = client.get("/api/v1/vimeo/oembed", params={"url": "https://example.com/clip"})
        assert response.status_code == 400

    def test_upstream_failure(self, client, use_vimeo):
        use_vimeo(_client(status_code=503, body={}))
        response = client.get("/api/v1/vimeo/oembed", params={"url": "https://vimeo.com/76979871"})
        assert response.status_code == 502
