"""Data models for the Markdown Docs converter.

Pydantic models representing Drive documents, classification verdicts,
per-document conversion outcomes, OAuth payloads and API responses.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class DriveFile(BaseModel):
    """Candidate document returned by the Drive listing API."""

    id: str = Field(..., description="Drive file ID")
    name: str = Field(..., description="Document title")
    mime_type: str | None = Field(None, alias="mimeType", description="Drive MIME type")

    model_config = {"populate_by_name": True}


class ClassificationVerdict(BaseModel):
    """Outcome of the markdown-likeness heuristic."""

    is_markdown: bool = Field(..., description="True when the text looks like Markdown source")
    signals: list[str] = Field(default_factory=list, description="Names of matched signals")


class MarkdownDocument(BaseModel):
    """Document listed by the scan endpoint."""

    id: str = Field(..., description="Drive file ID")
    name: str = Field(..., description="Document title")
    signals: list[str] = Field(default_factory=list, description="Matched Markdown signals")


class ConversionStatus(str, Enum):
    """Per-document batch status."""

    CONVERTED = "converted"
    SKIPPED = "skipped"
    FAILED = "failed"


class ConversionOutcome(BaseModel):
    """Result of processing one source document."""

    original_file_name: str = Field(..., description="Source document title")
    file_id: str = Field(..., description="Source Drive file ID")
    status: ConversionStatus = Field(..., description="Processing status")
    converted_file_name: str | None = Field(None, description="Archive entry name (converted only)")
    document_id: str | None = Field(None, description="ID of the created Google Doc, if any")
    reason: str | None = Field(None, description="Why the document was skipped")
    error: str | None = Field(None, description="Underlying error message (failed only)")

    @classmethod
    def converted(cls, source: DriveFile, converted_file_name: str, document_id: str) -> "ConversionOutcome":
        return cls(
            original_file_name=source.name,
            file_id=source.id,
            status=ConversionStatus.CONVERTED,
            converted_file_name=converted_file_name,
            document_id=document_id,
        )

    @classmethod
    def skipped(cls, source: DriveFile, reason: str) -> "ConversionOutcome":
        return cls(
            original_file_name=source.name,
            file_id=source.id,
            status=ConversionStatus.SKIPPED,
            reason=reason,
        )

    @classmethod
    def failed(cls, source: DriveFile, error: str, document_id: str | None = None) -> "ConversionOutcome":
        return cls(
            original_file_name=source.name,
            file_id=source.id,
            status=ConversionStatus.FAILED,
            error=error,
            document_id=document_id,
        )


class ConversionResult(BaseModel):
    """Response of the batch conversion endpoint."""

    total_files: int = Field(..., description="Number of listed documents")
    converted_count: int = Field(default=0, description="Documents converted")
    skipped_count: int = Field(default=0, description="Documents skipped")
    failed_count: int = Field(default=0, description="Documents that failed")
    converted_files: list[ConversionOutcome] = Field(default_factory=list, description="Outcomes in listing order")
    job_id: str | None = Field(None, description="Archive job identifier")
    zip_download_link: str | None = Field(None, description="Relative archive download link")

    @classmethod
    def from_outcomes(
        cls, outcomes: list[ConversionOutcome], job_id: str | None = None, zip_download_link: str | None = None
    ) -> "ConversionResult":
        counts = {status: 0 for status in ConversionStatus}
        for outcome in outcomes:
            counts[outcome.status] += 1
        return cls(
            total_files=len(outcomes),
            converted_count=counts[ConversionStatus.CONVERTED],
            skipped_count=counts[ConversionStatus.SKIPPED],
            failed_count=counts[ConversionStatus.FAILED],
            converted_files=outcomes,
            job_id=job_id,
            zip_download_link=zip_download_link,
        )


class TokenResponse(BaseModel):
    """OAuth token exchange or refresh result."""

    message: str = Field(default="Authentication successful", description="Status message")
    access_token: str = Field(..., description="Google access token")
    refresh_token: str | None = Field(None, description="Google refresh token")
    expires_at: datetime | None = Field(None, description="Access token expiry (UTC)")
    user: dict[str, Any] = Field(default_factory=dict, description="OAuth2 userinfo payload")


class AuthUrlResponse(BaseModel):
    """Authorization URL for the consent screen."""

    auth_url: str = Field(..., description="Google consent URL")


class ErrorResponse(BaseModel):
    """Structured error response."""

    error: str = Field(..., description="Error kind")
    detail: str = Field(..., description="Human-readable error message")
