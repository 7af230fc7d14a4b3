"""
Input table source: local CSV files, CSV URLs and Google Sheets.

Google Sheets edit links are turned into their gviz CSV export. All remote
reads go through StaticFetcher so they carry the same browser User-Agent as
page fetches.
"""
from __future__ import annotations

import csv
import io
import re
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .document import HtmlDocument
from .fetchers.static import StaticFetcher, FetchError


SHEETS_HOST_RE = re.compile(r"^https?://docs\.google\.com/spreadsheets/d/[^/]+", re.IGNORECASE)
GID_RE = re.compile(r"[#?&]gid=(\d+)")
SHEETS_TITLE_SUFFIX_RE = re.compile(r"\s*-\s*Google Sheets$")
DEFAULT_OUTPUT_NAME = "output.csv"

Record = Dict[str, str]


class SourceUnavailable(Exception):
    """Input table could not be retrieved or parsed."""


class EmptySource(Exception):
    """Input table has a header but no data rows."""


def is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def is_google_sheet(source: str) -> bool:
    return SHEETS_HOST_RE.match(source) is not None


def to_csv_export_url(source: str) -> str:
    """Map a Google Sheets link to its CSV export; other URLs pass through."""
    m = SHEETS_HOST_RE.match(source)
    if not m:
        return source
    gid_match = GID_RE.search(source)
    gid = gid_match.group(1) if gid_match else "0"
    return f"{m.group(0)}/gviz/tq?tqx=out:csv&gid={gid}"


def parse_csv_text(text: str) -> Tuple[List[str], List[Record]]:
    """Parse CSV text into (headers, records).

    - leading BOM stripped
    - headers and values trimmed
    - blank lines skipped
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    try:
        rows = list(csv.reader(io.StringIO(text)))
    except csv.Error as e:
        raise SourceUnavailable(f"CSV parse error: {e}") from e

    rows = [r for r in rows if r and any(cell.strip() for cell in r)]
    if not rows:
        return [], []

    headers = [h.strip() for h in rows[0]]
    records: List[Record] = []
    for lineno, row in enumerate(rows[1:], start=2):
        if len(row) > len(headers):
            raise SourceUnavailable(
                f"CSV row {lineno} has {len(row)} fields, header has {len(headers)}"
            )
        values = [v.strip() for v in row] + [""] * (len(headers) - len(row))
        records.append(dict(zip(headers, values)))
    return headers, records


def read_source_text(source: str, fetcher: StaticFetcher) -> str:
    if is_remote(source):
        url = to_csv_export_url(source)
        try:
            return fetcher.fetch(url).html or ""
        except FetchError as e:
            raise SourceUnavailable(f"Could not fetch {url}: {e}") from e
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceUnavailable(f"Could not read {path}: {e}") from e


def load_records(source: str, fetcher: StaticFetcher) -> Tuple[List[str], List[Record]]:
    """Load the input table; raises SourceUnavailable / EmptySource."""
    headers, records = parse_csv_text(read_source_text(source, fetcher))
    if not records:
        raise EmptySource(f"No data found in CSV: {source}")
    return headers, records


def fetch_sheet_title(url: str, fetcher: StaticFetcher) -> Optional[str]:
    """Document title of a Google Sheet, without the ' - Google Sheets' suffix."""
    result = fetcher.fetch(url)
    title = HtmlDocument(result.html).title()
    if not title:
        return None
    return SHEETS_TITLE_SUFFIX_RE.sub("", title).strip() or None


def _safe_filename(name: str) -> str:
    return re.sub(r'[\\/:*?"<>|]+', "_", name).strip() or DEFAULT_OUTPUT_NAME


def output_filename_for(source: str, fetcher: StaticFetcher) -> str:
    """Pick the output CSV name for ``source``.

    Google Sheet → '<sheet title>.csv' (default name if the title is unavailable);
    other URLs → default name; local file → '<stem>_emails.csv'.
    """
    if is_google_sheet(source):
        try:
            title = fetch_sheet_title(source, fetcher)
        except FetchError as e:
            print(f"⚠️  Could not fetch sheet title; using default filename: {DEFAULT_OUTPUT_NAME} ({e})", file=sys.stderr)
            return DEFAULT_OUTPUT_NAME
        if not title:
            return DEFAULT_OUTPUT_NAME
        return _safe_filename(f"{title}.csv")
    if is_remote(source):
        return DEFAULT_OUTPUT_NAME
    return _safe_filename(f"{Path(source).stem}_emails.csv")
