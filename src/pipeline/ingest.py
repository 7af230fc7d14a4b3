from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional
import json
import os
import sys
import time

from .fetchers.static import StaticFetcher, FetchError
from .fetchers.playwright import PlaywrightFetcher
from .extractors import EmailExtractor


@dataclass
class IngestResult:
    """Result of resolving one URL: final address list or a failure."""
    url: str
    method: str  # "static" or "playwright"
    success: bool
    final_url: str | None = None
    status_code: int = 0
    emails: List[str] = field(default_factory=list)
    error: Optional[str] = None    # static fetch failed, no emails
    warning: Optional[str] = None  # render fallback failed, treated as no emails


class IngestPipeline:
    """Per-URL resolver: static fetch first, headless render only when empty.

    State per URL:
      static fetch failed   -> success=False (no render attempt)
      static found emails   -> done, method="static"
      static found nothing  -> render the post-redirect URL, method="playwright";
                               a render error is a warning, emails stay empty
    """

    def __init__(
        self,
        *,
        static_fetcher: Optional[StaticFetcher] = None,
        playwright_fetcher: Optional[PlaywrightFetcher] = None,
        email_extractor: Optional[EmailExtractor] = None,
        enable_headless: bool = True,
    ):
        self.static_fetcher = static_fetcher or StaticFetcher()
        self.playwright_fetcher = playwright_fetcher
        self.email_extractor = email_extractor or EmailExtractor()
        # Escalation needs a fetcher bound to a started RenderContext
        self.enable_headless = bool(enable_headless) and playwright_fetcher is not None
        # OPS logging toggle (env or runner flag)
        self.ops_json_enabled = False
        self.last_ops_record: dict | None = None

    def _record_ops(self, result: IngestResult, t0: float, t_static: float, t_render: float) -> None:
        record = {
            "url": result.url,
            "final_url": result.final_url,
            "method": result.method,
            "success": result.success,
            "status_code": result.status_code,
            "durations": {
                "fetch_static_s": round(t_static, 4),
                "render_s": round(t_render, 4),
                "total_s": round(max(0.0, time.perf_counter() - t0), 4),
            },
            "counts": {"emails": len(result.emails)},
            "error": result.error,
            "warning": result.warning,
        }
        self.last_ops_record = record
        if os.environ.get("MAILSCOUT_OPS_JSON", "0") == "1" or self.ops_json_enabled:
            print(json.dumps(record, ensure_ascii=False))

    def ingest(self, url: str) -> IngestResult:
        """Resolve ``url`` to its list of canonical contact emails."""
        t0 = time.perf_counter()
        t_render = 0.0

        # Step 1: lightweight fetch; a failure here is final for this URL
        try:
            static_result = self.static_fetcher.fetch(url)
        except FetchError as e:
            t_static = time.perf_counter() - t0
            result = IngestResult(
                url=url,
                method="static",
                success=False,
                status_code=e.status_code,
                error=str(e),
            )
            self._record_ops(result, t0, t_static, t_render)
            return result
        t_static = time.perf_counter() - t0

        final_url = static_result.final_url
        if static_result.redirected:
            print(f"↪ {url} → redirected to {final_url}")

        # Step 2: extract from static HTML
        emails = self.email_extractor.extract(static_result.html or "")

        # Step 3: non-empty (or no headless available) → done
        if emails or not self.enable_headless:
            result = IngestResult(
                url=url,
                method="static",
                success=True,
                final_url=final_url,
                status_code=static_result.status_code,
                emails=list(emails),
            )
            self._record_ops(result, t0, t_static, t_render)
            return result

        # Step 4: escalate on the post-redirect URL
        print(f"→ No emails via fetch; rendering {final_url} in headless browser…")
        t_pw_start = time.perf_counter()
        pw = self.playwright_fetcher.fetch(final_url)
        t_render = time.perf_counter() - t_pw_start

        warning = None
        rendered: List[str] = []
        if pw.error:
            warning = f"Playwright error on {final_url}: {pw.error}"
            print(f"⚠️  {warning}", file=sys.stderr)
        else:
            rendered = list(self.email_extractor.extract(pw.html or ""))

        result = IngestResult(
            url=url,
            method="playwright",
            success=True,
            final_url=final_url,
            status_code=pw.status_code or static_result.status_code,
            emails=rendered,
            warning=warning,
        )
        self._record_ops(result, t0, t_static, t_render)
        return result
