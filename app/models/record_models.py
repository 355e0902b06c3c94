"""Pydantic models for records held by the persistence collaborator."""

from datetime import datetime
from typing import Any, Dict
from pydantic import Field
from app.models.resume_models import CamelModel


class DraftRecord(CamelModel):
    """Autosaved editor state for one (account, template bucket)."""

    id: str
    template_id: str = Field("", description="Template bucket; empty string for the default bucket")
    content: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    version: int = 1


class SavedResumeSummary(CamelModel):
    """Saved resume listing entry."""

    id: str
    template_id: str
    title: str
    created_at: datetime


class SavedResumeRecord(SavedResumeSummary):
    """Saved resume with its content (a ParsedResponse or ResumeData document)."""

    content: Any = None
