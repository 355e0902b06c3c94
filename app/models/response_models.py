"""Response models for API endpoints."""

from typing import Any, List, Optional
from pydantic import BaseModel, Field
from app.models.record_models import DraftRecord, SavedResumeRecord, SavedResumeSummary
from app.models.resume_models import CamelModel, ResumeData


class ErrorResponse(BaseModel):
    """Error response model."""

    detail: str = Field(
        ...,
        description="Error message describing what went wrong",
        examples=["For FORMAT_EXISTING you must provide either an attachment or resume text."]
    )


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(
        ...,
        description="Service status",
        examples=["ok"]
    )


class RootResponse(BaseModel):
    """Root endpoint response model."""

    message: str = Field(
        ...,
        description="API name and version information",
        examples=["ResumeForge API"]
    )
    version: str = Field(
        ...,
        description="API version",
        examples=["1.0.0"]
    )


class ParsedResponse(CamelModel):
    """
    Sections decoded from one generation reply.

    Every field is optional; ``raw`` always holds the untouched reply text.
    """

    resume_json: Optional[Any] = Field(None, alias="json")
    gap_and_fix: Optional[List[str]] = None
    resume_ats: Optional[str] = None
    resume_human: Optional[str] = None
    resume_targeted: Optional[str] = None
    resume_photo: Optional[str] = None
    cover_letter_full: Optional[str] = None
    cover_letter_short: Optional[str] = None
    cold_email: Optional[str] = None
    raw: str = ""

    class Config:
        frozen = True
        populate_by_name = True

    def recovered_sections(self) -> List[str]:
        """Return the names of the sections that were found in the reply."""
        return [
            name
            for name, value in self
            if name != "raw" and value is not None
        ]


class TemplateInfo(CamelModel):
    """Template catalog entry."""

    id: str
    name: str
    tag: str
    description: str
    layout: str


class TemplateCatalogResponse(CamelModel):
    """Template catalog listing."""

    default_template_id: str
    templates: List[TemplateInfo]


class ImportResponse(CamelModel):
    """Decoded reply mapped back into editor fields."""

    data: ResumeData
    parsed: ParsedResponse


class DraftResponse(CamelModel):
    """Latest draft lookup result."""

    draft: Optional[DraftRecord] = None


class OkResponse(BaseModel):
    """Acknowledgement response."""

    ok: bool = True


class SaveResumeResponse(BaseModel):
    """Saved resume id."""

    id: str


class ResumeListResponse(CamelModel):
    """Saved resumes, newest first."""

    resumes: List[SavedResumeSummary]


class ResumeResponse(CamelModel):
    """A single saved resume."""

    resume: SavedResumeRecord


class CoverLetterResponse(CamelModel):
    """Generated cover letter outputs."""

    title: str
    template_id: Optional[str] = None
    cover_letter_full: str
    cover_letter_short: str = ""
    cold_email: str = ""
    raw: str = ""
