"""Pydantic models for the normalized resume editing data."""

import uuid
from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


def new_item_id() -> str:
    """Generate a client-style unique id for list items."""
    return uuid.uuid4().hex


def split_full_name(full_name: Optional[str]) -> Tuple[str, str]:
    """
    Split a full name on its first space.

    Example: "Jane Mary Doe" -> ("Jane", "Mary Doe"), "Madonna" -> ("Madonna", "")

    Args:
        full_name: Full display name

    Returns:
        Tuple[str, str]: First name and remainder (last name)
    """
    if not full_name:
        return "", ""
    first, _, rest = full_name.strip().partition(" ")
    return first, rest.strip()


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class AccountIdentity(CamelModel):
    """Signed-in account identity used for rendering fallbacks."""

    id: str = ""
    name: str = ""
    email: str = ""


class InlineData(CamelModel):
    """Binary payload carried inline as base64 with its declared mime type."""

    mime_type: str
    data: str = Field(..., description="Base64 encoded content")

    def as_data_uri(self) -> str:
        """Return the payload as a ``data:`` URI."""
        return f"data:{self.mime_type};base64,{self.data}"


class PersonalDetails(CamelModel):
    """Personal details block. No format validation happens at this layer."""

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    summary: str = ""


class ExperienceItem(CamelModel):
    """Work experience entry."""

    id: str = Field(default_factory=new_item_id)
    role: str = ""
    company: str = ""
    dates: str = ""
    description: str = ""


class EducationItem(CamelModel):
    """Education entry."""

    id: str = Field(default_factory=new_item_id)
    degree: str = ""
    school: str = ""
    dates: str = ""


class SkillItem(CamelModel):
    """Skill group; ``items`` is a free-text comma separated list."""

    id: str = Field(default_factory=new_item_id)
    category: str = ""
    items: str = ""


class Preferences(CamelModel):
    """Output preferences selected in the editor."""

    pages: Literal["1-page", "2-page"] = "1-page"
    tone: Literal["conservative", "modern", "bold"] = "modern"
    region: Literal["US", "EU"] = "US"
    photo: bool = False


class ResumeData(CamelModel):
    """Template-agnostic resume data edited in a live session."""

    target_role: str = ""
    job_description: str = ""
    personal_details: PersonalDetails = Field(default_factory=PersonalDetails)
    experience_items: List[ExperienceItem] = Field(default_factory=list)
    education_items: List[EducationItem] = Field(default_factory=list)
    skill_items: List[SkillItem] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    profile_image_data: Optional[InlineData] = None
    template_id: Optional[str] = None

    @classmethod
    def for_account(cls, account: AccountIdentity, template_id: Optional[str] = None) -> "ResumeData":
        """
        Create fresh editing data with defaults taken from the account.

        Args:
            account: Signed-in account identity
            template_id: Selected template (optional)

        Returns:
            ResumeData: New instance with name and email prefilled
        """
        first_name, last_name = split_full_name(account.name)
        return cls(
            personal_details=PersonalDetails(
                first_name=first_name,
                last_name=last_name,
                email=account.email or "",
            ),
            template_id=template_id,
        )

    def to_content(self) -> dict:
        """Serialize to the JSON document stored by the persistence layer."""
        return self.model_dump(mode="json", by_alias=True)
