"""Tests for cssextract.server module."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from cssextract.errors import BrowserProtocolError
from cssextract.server import create_app, target_url
from cssextract.service import CssService


@pytest.fixture
def client_for():
    def build(service):
        return TestClient(create_app(service=service))

    return build


class TestTargetUrl:
    def test_plain(self):
        assert target_url("https://example.com/a") == "https://example.com/a"

    def test_query_appended(self):
        assert target_url("https://example.com/a", "x=1") == "https://example.com/a?x=1"

    def test_collapsed_scheme_slashes(self):
        assert target_url("https:/example.com") == "https://example.com"

    def test_bare_host(self):
        assert target_url("example.com") == "example.com"


class TestServer:
    def test_returns_css(self, client_for, make_provider, make_page):
        page = make_page(
            sheets=[("https://example.com/site.css", "a{color:red}")],
            programmatic="b{color:blue}",
            inline=["color:green"],
        )
        service = CssService(make_provider(page))

        with client_for(service) as client:
            response = client.get("/https://example.com")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/css")
        assert response.text == (
            "a{color:red}\nb{color:blue}\n[x-inline-style-fda9cc] { color:green }"
        )

    def test_query_string_is_part_of_key(self, client_for, make_provider):
        service = CssService(make_provider())
        with client_for(service) as client:
            response = client.get("/https://example.com/page?b=2&a=1")

        assert response.status_code == 200
        assert service.cache.keys() == ["https://example.com/page?a=1&b=2"]

    def test_encoded_space_in_target_path(self, client_for, make_provider):
        provider = make_provider()
        service = CssService(provider)
        with client_for(service) as client:
            response = client.get("/https://example.com/my%20page")

        assert response.status_code == 200
        assert provider.current.goto_calls[0][0] == "https://example.com/my%20page"

    def test_encoded_question_mark_stays_in_path(self, client_for, make_provider):
        provider = make_provider()
        service = CssService(provider)
        with client_for(service) as client:
            response = client.get("/https://example.com/a%3Fb")

        assert response.status_code == 200
        assert provider.current.goto_calls[0][0] == "https://example.com/a%3Fb"
        assert service.cache.keys() == ["https://example.com/a%3Fb"]

    def test_invalid_url(self, client_for, make_provider):
        with client_for(CssService(make_provider())) as client:
            response = client.get("/not%20a%20url")

        assert response.status_code == 406
        assert response.headers["content-type"] == "application/json"
        assert response.json() == {"message": "The provided URL is not valid"}

    def test_navigation_error(self, client_for, make_provider, make_page):
        service = CssService(make_provider(make_page(status=404, status_text="Not Found")))
        with client_for(service) as client:
            response = client.get("/https://example.com/missing")

        assert response.status_code == 500
        body = response.json()
        assert body["name"] == "NavigationError"
        assert body["status"] == 404
        assert body["url"] == "https://example.com/missing"
        assert len(service.cache) == 0

    def test_browser_error(self, client_for):
        service = MagicMock()
        service.get_css = AsyncMock(side_effect=BrowserProtocolError("crashed", url="u"))
        with client_for(service) as client:
            response = client.get("/https://example.com")

        assert response.status_code == 500
        assert response.json() == {
            "name": "BrowserProtocolError",
            "message": "crashed",
            "url": "u",
        }

    def test_unexpected_error(self, client_for):
        service = MagicMock()
        service.get_css = AsyncMock(side_effect=KeyError("boom"))
        with client_for(service) as client:
            response = client.get("/https://example.com")

        assert response.status_code == 500
        assert response.json()["name"] == "KeyError"

    def test_health(self, client_for, make_provider):
        service = CssService(make_provider())
        service.cache.set("https://example.com", "a{}")
        with client_for(service) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "cached": 1}
