from __future__ import annotations

import httpx
import pytest

from src.pipeline.fetchers.static import BROWSER_UA, FetchError, StaticFetcher


class _MockTransport(httpx.BaseTransport):
    def __init__(self, routes: dict[str, tuple[int, dict[str, str], bytes]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def handle_request(self, request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        self.requests.append(request)
        url = str(request.url)
        status, headers, body = self.routes.get(url, (404, {"Content-Type": "text/plain"}, b"Not Found"))
        return httpx.Response(status, headers=headers, content=body, request=request)


def _fetcher(routes) -> tuple[StaticFetcher, _MockTransport]:
    transport = _MockTransport(routes)
    fetcher = StaticFetcher()
    # Patch client to use mock transport, keeping the fetcher's headers
    fetcher._client = httpx.Client(
        transport=transport,
        headers={"User-Agent": fetcher.user_agent},
        follow_redirects=True,
    )
    return fetcher, transport


def test_static_fetch_returns_html_and_final_url():
    page = (200, {"Content-Type": "text/html; charset=utf-8"}, b"<html>OK</html>")
    fetcher, transport = _fetcher({"https://example.com/": page})

    res = fetcher.fetch("https://example.com/")
    assert res.status_code == 200
    assert res.mime == "text/html"
    assert res.html == "<html>OK</html>"
    assert res.final_url == "https://example.com/"
    assert res.redirected is False
    assert transport.requests[0].headers["User-Agent"] == BROWSER_UA


def test_static_fetch_follows_redirects_and_reports_final_url():
    routes = {
        "http://example.com/": (301, {"Location": "https://www.example.com/contact"}, b""),
        "https://www.example.com/contact": (200, {"Content-Type": "text/html"}, b"<p>hi</p>"),
    }
    fetcher, _ = _fetcher(routes)

    res = fetcher.fetch("http://example.com/")
    assert res.url == "http://example.com/"
    assert res.final_url == "https://www.example.com/contact"
    assert res.redirected is True
    assert res.html == "<p>hi</p>"


def test_static_fetch_http_error_raises():
    fetcher, _ = _fetcher({})
    with pytest.raises(FetchError) as exc:
        fetcher.fetch("https://example.com/missing")
    assert exc.value.status_code == 404
    assert exc.value.url == "https://example.com/missing"
    assert "HTTP 404" in str(exc.value)


def test_static_fetch_network_error_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    fetcher = StaticFetcher()
    fetcher._client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(FetchError) as exc:
        fetcher.fetch("https://does-not-resolve.invalid/")
    assert exc.value.status_code == 0
    assert "ConnectError" in str(exc.value)


def test_static_fetch_invalid_url_raises():
    fetcher = StaticFetcher()
    with pytest.raises(FetchError):
        fetcher.fetch("not a url")
    fetcher.close()


def test_default_client_sends_browser_user_agent():
    fetcher = StaticFetcher(timeout_s=3.0)
    assert fetcher._client.headers["User-Agent"] == BROWSER_UA
    assert fetcher._client.follow_redirects is True
    fetcher.close()


def test_static_fetch_malformed_host_raises_fetch_error():
    url = "http://a..b.com"
    fetcher = StaticFetcher()
    with pytest.raises(FetchError) as exc:
        fetcher.fetch(url)
    assert exc.value.url == url
    assert exc.value.status_code == 0
    fetcher.close()
