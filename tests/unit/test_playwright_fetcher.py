import pytest
from unittest.mock import patch, MagicMock

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from src.pipeline.fetchers.playwright import LAUNCH_ARGS, PlaywrightFetcher, PlaywrightResult, RenderContext
from src.pipeline.fetchers.static import BROWSER_UA


def _started_context(mock_browser):
    context = RenderContext()
    context._browser = mock_browser
    return context


def _browser_with_page(mock_page):
    mock_browser = MagicMock()
    mock_browser.new_page.return_value = mock_page
    return mock_browser


@patch('src.pipeline.fetchers.playwright.sync_playwright')
def test_render_context_lifecycle(mock_sync_playwright):
    mock_playwright = MagicMock()
    mock_browser = MagicMock()
    mock_playwright.chromium.launch.return_value = mock_browser
    mock_sync_playwright.return_value.start.return_value = mock_playwright

    with RenderContext() as ctx:
        assert ctx.started is True
        assert ctx.browser is mock_browser

    mock_playwright.chromium.launch.assert_called_once_with(headless=True, args=LAUNCH_ARGS)
    mock_browser.close.assert_called_once()
    mock_playwright.stop.assert_called_once()
    assert ctx.started is False


@patch('src.pipeline.fetchers.playwright.sync_playwright')
def test_render_context_start_is_idempotent(mock_sync_playwright):
    mock_playwright = MagicMock()
    mock_sync_playwright.return_value.start.return_value = mock_playwright

    ctx = RenderContext()
    ctx.start()
    ctx.start()
    assert mock_playwright.chromium.launch.call_count == 1
    ctx.close()


@patch('src.pipeline.fetchers.playwright.sync_playwright')
def test_render_context_launch_failure_stops_driver(mock_sync_playwright):
    mock_playwright = MagicMock()
    mock_playwright.chromium.launch.side_effect = PlaywrightError("Executable doesn't exist")
    mock_sync_playwright.return_value.start.return_value = mock_playwright

    ctx = RenderContext()
    with pytest.raises(PlaywrightError):
        ctx.start()
    mock_playwright.stop.assert_called_once()
    assert ctx.started is False


def test_render_context_requires_start():
    with pytest.raises(RuntimeError):
        RenderContext().browser


def test_playwright_fetcher_success():
    # Arrange
    mock_page = MagicMock()
    mock_response = MagicMock()
    mock_response.status = 200
    mock_page.goto.return_value = mock_response
    mock_page.content.return_value = "<html><body>Test</body></html>"
    mock_page.title.return_value = "Test Page"
    mock_browser = _browser_with_page(mock_page)

    fetcher = PlaywrightFetcher(_started_context(mock_browser))
    url = "http://example.com"

    # Act
    result = fetcher.fetch(url)

    # Assert
    assert isinstance(result, PlaywrightResult)
    assert result.status_code == 200
    assert result.html == "<html><body>Test</body></html>"
    assert result.page_title == "Test Page"
    assert result.error is None
    mock_browser.new_page.assert_called_once_with(user_agent=BROWSER_UA)
    mock_page.goto.assert_called_once_with(url, wait_until="networkidle", timeout=30000)
    mock_page.close.assert_called_once()


def test_playwright_fetcher_no_response_still_returns_content():
    mock_page = MagicMock()
    mock_page.goto.return_value = None
    mock_page.content.return_value = "<html></html>"
    mock_page.title.return_value = ""
    mock_browser = _browser_with_page(mock_page)

    result = PlaywrightFetcher(_started_context(mock_browser)).fetch("http://example.com")

    assert result.status_code == 0
    assert result.html == "<html></html>"
    assert result.error is None
    mock_page.close.assert_called_once()


def test_playwright_fetcher_timeout_reported_and_page_closed():
    mock_page = MagicMock()
    mock_page.goto.side_effect = PlaywrightTimeoutError("Timeout 30000ms exceeded.")
    mock_browser = _browser_with_page(mock_page)

    result = PlaywrightFetcher(_started_context(mock_browser)).fetch("http://slow.example.com")

    assert result.html is None
    assert result.status_code == 0
    assert "Timeout 30000ms exceeded" in result.error
    mock_page.content.assert_not_called()
    mock_page.close.assert_called_once()


def test_playwright_fetcher_navigation_error_reported_and_page_closed():
    mock_page = MagicMock()
    mock_page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
    mock_browser = _browser_with_page(mock_page)

    result = PlaywrightFetcher(_started_context(mock_browser)).fetch("http://nope.invalid")

    assert "ERR_NAME_NOT_RESOLVED" in result.error
    mock_page.close.assert_called_once()


def test_playwright_fetcher_custom_settings():
    mock_page = MagicMock()
    mock_page.goto.return_value = MagicMock(status=200)
    mock_page.content.return_value = "<html></html>"
    mock_browser = _browser_with_page(mock_page)

    fetcher = PlaywrightFetcher(
        _started_context(mock_browser), timeout_ms=5000, wait_until="load", user_agent="UA/1.0"
    )
    fetcher.fetch("http://example.com")

    mock_browser.new_page.assert_called_once_with(user_agent="UA/1.0")
    mock_page.goto.assert_called_once_with("http://example.com", wait_until="load", timeout=5000)
