from __future__ import annotations

import sys
from typing import List, Optional

from .ingest import IngestPipeline
from .sheets import Record
from ..ops_logger import OpsLogger
from ..schemas import EmailStatus, SiteEmails


EMAILS_COLUMN = "emails"


class BatchDriver:
    """Runs the resolver over every input record, in input order.

    Each record gets an ``emails`` cell written back at its own index:
    JSON array of addresses, ``[]`` for a blank website, ``ERROR`` when the
    static fetch failed. One bad URL never stops the batch.
    """

    def __init__(
        self,
        pipeline: IngestPipeline,
        *,
        website_column: str = "website",
        ops_logger: Optional[OpsLogger] = None,
    ) -> None:
        self.pipeline = pipeline
        self.website_column = website_column
        self.ops_logger = ops_logger

    def resolve_record(self, index: int, record: Record) -> SiteEmails:
        url = (record.get(self.website_column) or "").strip()
        if not url:
            return SiteEmails(row_index=index, website="", status=EmailStatus.MISSING_URL)

        try:
            result = self.pipeline.ingest(url)
        except Exception as e:
            error = f"Pipeline error: {type(e).__name__}: {e}"
            print(f"✖ {url} failed: {error}", file=sys.stderr)
            return SiteEmails(row_index=index, website=url, status=EmailStatus.ERROR, error=error)
        if self.ops_logger and self.pipeline.last_ops_record:
            self.ops_logger.emit({"row_index": index, **self.pipeline.last_ops_record})

        if not result.success:
            print(f"✖ {url} failed: {result.error}", file=sys.stderr)
            return SiteEmails(
                row_index=index,
                website=url,
                status=EmailStatus.ERROR,
                final_url=result.final_url,
                method=result.method,
                error=result.error,
            )

        print(f"✔ {url} → {len(result.emails)} email(s)")
        return SiteEmails(
            row_index=index,
            website=url,
            status=EmailStatus.FOUND if result.emails else EmailStatus.EMPTY,
            emails=result.emails,
            final_url=result.final_url,
            method=result.method,
            warning=result.warning,
        )

    def run(self, records: List[Record]) -> List[SiteEmails]:
        results: List[SiteEmails] = []
        for index in range(len(records)):
            outcome = self.resolve_record(index, records[index])
            records[index][EMAILS_COLUMN] = outcome.cell_value()
            results.append(outcome)
        return results
