"""Request models for API endpoints."""

from enum import Enum
from typing import Any, Optional
from pydantic import Field
from app.models.resume_models import CamelModel, InlineData, ResumeData


class GenerationMode(str, Enum):
    """Supported generation modes."""

    FORMAT_EXISTING = "MODE_A"
    CREATE_SCRATCH = "MODE_B"


class RenderRequest(CamelModel):
    """Request model for rendering a resume preview or export."""

    data: ResumeData
    template_id: Optional[str] = Field(
        None,
        description="Template identifier. Unknown or missing ids fall back to the default layout.",
        examples=["modern_tech"]
    )


class GenerateRequest(CamelModel):
    """Request model for resume generation with the LLM."""

    data: ResumeData
    mode: GenerationMode = Field(
        GenerationMode.CREATE_SCRATCH,
        description="MODE_A formats an existing resume (attachment or text), MODE_B creates from the structured data",
        examples=["MODE_B"]
    )
    attachment: Optional[InlineData] = Field(
        None,
        description="Existing resume document (PDF or image) as base64, passed through unmodified",
    )
    resume_text: Optional[str] = Field(
        None,
        description="Existing resume pasted as plain text",
    )


class DraftSaveRequest(CamelModel):
    """Request model for autosaving the editor state."""

    template_id: Optional[str] = None
    content: ResumeData


class SaveResumeRequest(CamelModel):
    """Request model for saving a resume to the library."""

    template_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    content: Any = None


class UpdateResumeRequest(CamelModel):
    """Request model for overwriting parts of a saved resume."""

    template_id: Optional[str] = Field(None, min_length=1)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[Any] = None


class CoverLetterGenerateRequest(CamelModel):
    """Request model for cover letter generation with the LLM."""

    job_description: str = Field(
        ...,
        min_length=20,
        max_length=20000,
        description="Job description the letter is tailored to",
        examples=["We are looking for a Senior Backend Developer with Python and FastAPI experience..."]
    )
    template_id: Optional[str] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    resume_json: Optional[Any] = Field(
        None,
        description="Latest structured resume JSON used to ground achievements",
    )
