"""
Mailscout - Pydantic Data Schemas

Per-record email lookup result and the run configuration loaded from YAML.
"""

import json
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .pipeline.fetchers.static import BROWSER_UA


ERROR_MARKER = "ERROR"


class EmailStatus(str, Enum):
    """Outcome of resolving one input record."""
    FOUND = "found"              # at least one address
    EMPTY = "empty"              # page(s) read, no address
    ERROR = "error"              # static fetch failed outright
    MISSING_URL = "missing_url"  # blank website cell, nothing fetched


class SiteEmails(BaseModel):
    """Email lookup result for a single record."""

    row_index: int = Field(..., ge=0, description="Position of the record in the input table")
    website: str = Field("", description="Website cell as read from the input")
    status: EmailStatus
    emails: List[str] = Field(default_factory=list)
    final_url: Optional[str] = Field(None, description="URL reached after redirects")
    method: Optional[str] = Field(None, description="'static' or 'playwright'")
    error: Optional[str] = None
    warning: Optional[str] = None

    @field_validator('emails')
    @classmethod
    def validate_emails(cls, v):
        """Emails must already be canonical: lower-case and unique."""
        seen = set()
        for email in v:
            if '@' not in email:
                raise ValueError(f'Invalid email address: {email}')
            if email != email.lower():
                raise ValueError(f'Email is not canonical (lower-case): {email}')
            if email in seen:
                raise ValueError(f'Duplicate email: {email}')
            seen.add(email)
        return v

    def cell_value(self) -> str:
        """Value written into the ``emails`` column."""
        if self.status == EmailStatus.ERROR:
            return ERROR_MARKER
        return json.dumps(self.emails)


class SourceConfig(BaseModel):
    website_column: str = "website"


class FetchConfig(BaseModel):
    user_agent: str = BROWSER_UA
    static_timeout_s: float = Field(15.0, gt=0)


class RenderConfig(BaseModel):
    enabled: bool = True
    timeout_ms: int = Field(30000, gt=0)
    wait_until: str = "networkidle"

    @field_validator('wait_until')
    @classmethod
    def validate_wait_until(cls, v):
        allowed = {"load", "domcontentloaded", "networkidle", "commit"}
        if v not in allowed:
            raise ValueError(f'wait_until must be one of {sorted(allowed)}')
        return v


class OutputConfig(BaseModel):
    dir: str = "."
    filename: Optional[str] = None


class OpsConfig(BaseModel):
    ops_json: bool = False


class RunConfig(BaseModel):
    """Top-level YAML configuration (all sections optional)."""

    source: SourceConfig = Field(default_factory=SourceConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    render: RenderConfig = Field(default_factory=RenderConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    ops: OpsConfig = Field(default_factory=OpsConfig)
