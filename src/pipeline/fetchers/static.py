from __future__ import annotations

from dataclasses import dataclass

import httpx


# Sent on every outbound request (source table, target pages, headless navigation)
BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/114.0.0.0 Safari/537.36"
)


class FetchError(Exception):
    """Static fetch failed outright (network, DNS, protocol or HTTP >= 400)."""

    def __init__(self, url: str, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class FetchResult:
    url: str
    final_url: str
    status_code: int
    mime: str | None
    content_length: int
    html: str | None
    headers: dict[str, str]

    @property
    def redirected(self) -> bool:
        return self.final_url != self.url


class StaticFetcher:
    """Lightweight HTML fetcher.

    - Uses httpx for network IO, redirects followed automatically
    - Sends a browser-like User-Agent
    - Does NOT execute JavaScript
    - No retries; failures raise FetchError
    """

    def __init__(
        self,
        *,
        timeout_s: float = 15.0,
        user_agent: str = BROWSER_UA,
    ) -> None:
        self.timeout_s = timeout_s
        self.user_agent = user_agent
        self._client = httpx.Client(
            timeout=self.timeout_s,
            headers={"User-Agent": self.user_agent},
            follow_redirects=True,
        )

    def close(self) -> None:
        self._client.close()

    def fetch(self, url: str) -> FetchResult:
        try:
            resp = self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            # Malformed host (empty or over-long IDNA label)
            raise FetchError(url, f"{type(e).__name__}: {e}") from e
        if resp.status_code >= 400:
            raise FetchError(url, f"HTTP {resp.status_code}", status_code=resp.status_code)
        mime = resp.headers.get("Content-Type")
        mime_main = None
        if mime:
            mime_main = mime.split(";")[0].strip().lower()
        return FetchResult(
            url=url,
            final_url=str(resp.url),
            status_code=resp.status_code,
            mime=mime_main,
            content_length=len(resp.content or b""),
            html=resp.text,
            headers={k: v for k, v in resp.headers.items()},
        )
