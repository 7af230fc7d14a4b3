from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from playwright.sync_api import sync_playwright, Browser, Page, Playwright
from playwright.sync_api import Error as PlaywrightError

from .static import BROWSER_UA


LAUNCH_ARGS = [
    '--disable-dev-shm-usage',     # Prevent /dev/shm issues in containers
    '--disable-gpu',                # Disable GPU for headless
    '--disable-extensions',         # No browser extensions
    '--disable-plugins',            # No plugins
    '--no-first-run',               # Skip first run setup
    '--disable-default-apps',       # No default apps
    '--disable-background-timer-throttling',  # Consistent timing
]


@dataclass(frozen=True)
class PlaywrightResult:
    url: str
    status_code: int
    html: str | None
    page_title: str | None
    error: str | None = None


class RenderContext:
    """Process-wide headless browser handle.

    Started once before a batch and closed once after it. Pages are opened
    from it per URL by PlaywrightFetcher; the handle itself is never used
    by more than one page at a time in the sequential runner.
    """

    def __init__(self, *, headless: bool = True) -> None:
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def started(self) -> bool:
        return self._browser is not None

    @property
    def browser(self) -> Browser:
        if self._browser is None:
            raise RuntimeError("RenderContext used before start()")
        return self._browser

    def start(self) -> "RenderContext":
        if self._browser is not None:
            return self
        self._playwright = sync_playwright().start()
        try:
            # Sandbox stays enabled (no --no-sandbox)
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
        except Exception:
            self._playwright.stop()
            self._playwright = None
            raise
        return self

    def close(self) -> None:
        try:
            if self._browser is not None:
                self._browser.close()
        finally:
            self._browser = None
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None

    def __enter__(self) -> "RenderContext":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.close()


class PlaywrightFetcher:
    """Headless render fallback for script-built pages.

    Opens one isolated page per fetch (own browser context, browser-like UA),
    waits for network idle up to ``timeout_ms`` and returns the rendered DOM.
    The page is closed on every exit path. Navigation errors and timeouts
    are reported in ``PlaywrightResult.error`` instead of being raised.
    """

    def __init__(
        self,
        context: RenderContext,
        *,
        timeout_ms: int = 30000,
        wait_until: str = "networkidle",
        user_agent: str = BROWSER_UA,
    ) -> None:
        self.context = context
        self.timeout_ms = timeout_ms
        self.wait_until = wait_until
        self.user_agent = user_agent

    @contextmanager
    def _open_page(self) -> Iterator[Page]:
        page = self.context.browser.new_page(user_agent=self.user_agent)
        try:
            yield page
        finally:
            # Closing a page from Browser.new_page also closes its context
            page.close()

    def fetch(self, url: str) -> PlaywrightResult:
        """Render ``url`` and return the materialized HTML."""
        try:
            with self._open_page() as page:
                response = page.goto(url, wait_until=self.wait_until, timeout=self.timeout_ms)
                html = page.content()
                title = page.title()
        except PlaywrightError as e:
            return PlaywrightResult(url=url, status_code=0, html=None, page_title=None, error=str(e))

        return PlaywrightResult(
            url=url,
            status_code=response.status if response else 0,
            html=html,
            page_title=title,
            error=None,
        )
