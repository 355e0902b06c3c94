"""Map the decoded ``RESUME_JSON`` payload back into editor fields."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from app.models.resume_models import (
    EducationItem,
    ExperienceItem,
    PersonalDetails,
    ResumeData,
    SkillItem,
    split_full_name,
)


class ResumeImport(BaseModel):
    """Editor fields recovered from a generated resume JSON."""

    target_role: str = ""
    personal_details: PersonalDetails = Field(default_factory=PersonalDetails)
    experience_items: List[ExperienceItem] = Field(default_factory=list)
    education_items: List[EducationItem] = Field(default_factory=list)
    skill_items: List[SkillItem] = Field(default_factory=list)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def format_date_range(start: Any, end: Any) -> str:
    """
    Join a start/end pair into a single dates string.

    Example: ("2020", "Present") -> "2020 - Present", ("2020", None) -> "2020"
    """
    start, end = _text(start), _text(end)
    if start and end:
        return f"{start} - {end}"
    return start


def join_highlights(highlights: Any) -> str:
    """Join highlight bullets (objects with ``bullet`` or plain strings) with newlines."""
    bullets = []
    for highlight in _as_list(highlights):
        if isinstance(highlight, dict):
            bullets.append(_text(highlight.get("bullet")))
        else:
            bullets.append(_text(highlight))
    return "\n".join(bullets)


def map_skills(skills: Any) -> List[SkillItem]:
    """Create one skill group per non-empty category, with a capitalized label."""
    items = []
    for category, values in _as_dict(skills).items():
        if isinstance(values, list) and values:
            label = category[:1].upper() + category[1:]
            items.append(SkillItem(category=label, items=", ".join(_text(v) for v in values)))
    return items


def map_resume_json(resume_json: Optional[Any]) -> ResumeImport:
    """
    Map an LLM-controlled resume JSON into editor fields.

    Every access is tolerant: missing or mistyped keys become empty strings
    or empty lists instead of errors.

    Args:
        resume_json: Decoded ``RESUME_JSON`` payload

    Returns:
        ResumeImport: Fields to merge into the editing session
    """
    payload = _as_dict(resume_json)
    header = _as_dict(payload.get("header"))

    location_parts = _text(header.get("location")).split(",")
    city = location_parts[0].strip() if len(location_parts) > 0 else ""
    state = location_parts[1].strip() if len(location_parts) > 1 else ""

    first_name, last_name = split_full_name(_text(header.get("name")))

    personal_details = PersonalDetails(
        first_name=first_name,
        last_name=last_name,
        email=_text(header.get("email")),
        phone=_text(header.get("phone")),
        # Street addresses are rarely recovered by the parser
        address="",
        city=city,
        state=state,
        country="",
        summary=_text(payload.get("summary")),
    )

    experience_items = []
    for entry in _as_list(payload.get("experience")):
        entry = _as_dict(entry)
        experience_items.append(ExperienceItem(
            role=_text(entry.get("role")),
            company=_text(entry.get("company")),
            dates=format_date_range(entry.get("start"), entry.get("end")),
            description=join_highlights(entry.get("highlights")),
        ))

    education_items = []
    for entry in _as_list(payload.get("education")):
        entry = _as_dict(entry)
        education_items.append(EducationItem(
            degree=_text(entry.get("degree")),
            school=_text(entry.get("school")),
            dates=format_date_range(entry.get("start"), entry.get("end")),
        ))

    return ResumeImport(
        target_role=_text(header.get("title")),
        personal_details=personal_details,
        experience_items=experience_items,
        education_items=education_items,
        skill_items=map_skills(payload.get("skills")),
    )


def merge_import(data: ResumeData, imported: ResumeImport) -> ResumeData:
    """
    Return a copy of ``data`` with the imported fields applied.

    Personal details and the item lists are replaced wholesale; the target
    role only when one was recovered. Job description, preferences, photo
    and template are kept.
    """
    merged = data.model_copy(deep=True)
    if imported.target_role:
        merged.target_role = imported.target_role
    merged.personal_details = imported.personal_details.model_copy()
    merged.experience_items = [item.model_copy() for item in imported.experience_items]
    merged.education_items = [item.model_copy() for item in imported.education_items]
    merged.skill_items = [item.model_copy() for item in imported.skill_items]
    return merged
