from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from cssextract import mcp_server
from cssextract.errors import NavigationError


def _service(**kwargs) -> MagicMock:
    service = MagicMock()
    service.get_css = AsyncMock(**kwargs)
    return service


@pytest.mark.asyncio
async def test_extract_css_returns_css(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(return_value="a{color:red}")
    monkeypatch.setattr(mcp_server, "_get_service", AsyncMock(return_value=service))

    result = await mcp_server._extract_css_text("https://example.com")

    assert result == "a{color:red}"
    service.get_css.assert_awaited_once_with("https://example.com")


@pytest.mark.asyncio
async def test_extract_css_reports_errors_as_json(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    service = _service(
        side_effect=NavigationError("https://example.com/missing", 404, "Not Found")
    )
    monkeypatch.setattr(mcp_server, "_get_service", AsyncMock(return_value=service))

    result = json.loads(await mcp_server._extract_css_text("https://example.com/missing"))

    assert result["error"]["name"] == "NavigationError"
    assert result["error"]["status"] == 404
    assert result["error"]["url"] == "https://example.com/missing"


@pytest.mark.asyncio
async def test_unexpected_errors_propagate(monkeypatch: pytest.MonkeyPatch) -> None:
    service = _service(side_effect=RuntimeError("boom"))
    monkeypatch.setattr(mcp_server, "_get_service", AsyncMock(return_value=service))

    with pytest.raises(RuntimeError):
        await mcp_server._extract_css_text("https://example.com")


@pytest.mark.asyncio
async def test_service_created_once(monkeypatch: pytest.MonkeyPatch) -> None:
    starts = []

    class DummySession:
        def __init__(self, settings):
            self.settings = settings

        async def start(self):
            starts.append(self)
            return MagicMock()

    monkeypatch.setattr(mcp_server, "BrowserSession", DummySession)
    monkeypatch.setattr(mcp_server, "_SERVICE", None)
    monkeypatch.setattr(mcp_server, "_SESSION", None)

    first = await mcp_server._get_service()
    second = await mcp_server._get_service()

    assert first is second
    assert len(starts) == 1


@pytest.mark.asyncio
async def test_close_service_closes_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    session = MagicMock()
    session.close = AsyncMock()
    service = MagicMock()
    service.close = AsyncMock()
    monkeypatch.setattr(mcp_server, "_SESSION", session)
    monkeypatch.setattr(mcp_server, "_SERVICE", service)

    await mcp_server._close_service()

    session.close.assert_awaited_once()
    service.close.assert_awaited_once()
    assert mcp_server._SESSION is None
    assert mcp_server._SERVICE is None


@pytest.mark.asyncio
async def test_close_service_without_browser(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(mcp_server, "_SESSION", None)
    monkeypatch.setattr(mcp_server, "_SERVICE", None)

    await mcp_server._close_service()

    assert mcp_server._SESSION is None


def test_main_closes_browser_after_server_stops(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fake_mcp = MagicMock()
    fake_mcp.run_async = AsyncMock()
    close = AsyncMock()
    monkeypatch.setattr(mcp_server, "mcp", fake_mcp)
    monkeypatch.setattr(mcp_server, "_close_service", close)

    mcp_server.main(["--transport", "http", "--port", "9000"])

    fake_mcp.run_async.assert_awaited_once_with(
        transport="http", host="127.0.0.1", port=9000
    )
    close.assert_awaited_once()


def test_main_closes_browser_when_server_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    fake_mcp = MagicMock()
    fake_mcp.run_async = AsyncMock(side_effect=RuntimeError("transport closed"))
    close = AsyncMock()
    monkeypatch.setattr(mcp_server, "mcp", fake_mcp)
    monkeypatch.setattr(mcp_server, "_close_service", close)

    with pytest.raises(RuntimeError):
        mcp_server.main([])

    fake_mcp.run_async.assert_awaited_once_with(transport="stdio")
    close.assert_awaited_once()
