"""Helper functions for Jinja2 resume layouts."""

from dataclasses import dataclass, field
from typing import List, Optional
from app.models.resume_models import (
    AccountIdentity,
    PersonalDetails,
    ResumeData,
    split_full_name,
)

DEFAULT_SUMMARY = (
    "Experienced professional with a proven track record of success in delivering "
    "high-quality results. Skilled in adapting to new challenges and utilizing "
    "industry best practices to drive efficiency and growth."
)


@dataclass(frozen=True)
class SkillGroup:
    """Skill category with its individual tags."""

    category: str
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ResumeView:
    """Values derived from ResumeData that every layout shares."""

    first_name: str
    last_name: str
    display_name: str
    display_email: str
    phone: str
    full_address: str
    summary: str
    skill_groups: List[SkillGroup]
    all_skill_tags: List[str]
    photo_src: Optional[str]


def split_skill_tags(items: str) -> List[str]:
    """
    Split a comma separated skills string into trimmed tags.

    Example: "Python, SQL ,Go" -> ["Python", "SQL", "Go"]

    Items containing a literal comma are split too; that is a known limit
    of the free-text field.
    """
    if not items:
        return []
    return [tag.strip() for tag in items.split(",") if tag.strip()]


def format_full_address(details: PersonalDetails) -> str:
    """
    Join address, city, state and country, skipping empty parts.

    Example: ("", "Austin", "TX", "") -> "Austin, TX"
    """
    parts = [details.address, details.city, details.state, details.country]
    return ", ".join(part.strip() for part in parts if part and part.strip())


def resolve_display_name(details: PersonalDetails, account: AccountIdentity):
    """
    Resolve first and last name for display.

    Names typed in the editor win when either one is set; otherwise the
    account name is split on its first space.

    Returns:
        Tuple[str, str, str]: first name, last name and full display name
    """
    if details.first_name or details.last_name:
        first_name, last_name = details.first_name, details.last_name
    else:
        first_name, last_name = split_full_name(account.name)
    display_name = f"{first_name} {last_name}".strip() or account.name
    return first_name, last_name, display_name


def resolve_summary(data: ResumeData) -> str:
    """Summary text, falling back to the job description and then a canned sentence."""
    return data.personal_details.summary or data.job_description or DEFAULT_SUMMARY


def resolve_photo_src(data: ResumeData) -> Optional[str]:
    """Data URI of the profile photo, only when the photo preference is on."""
    if data.preferences.photo and data.profile_image_data is not None:
        return data.profile_image_data.as_data_uri()
    return None


def build_resume_view(data: ResumeData, account: AccountIdentity) -> ResumeView:
    """
    Compute the layout-independent derivations for a render.

    Args:
        data: Resume data (read only)
        account: Signed-in account used for name/email fallbacks

    Returns:
        ResumeView: Derived display values
    """
    details = data.personal_details
    first_name, last_name, display_name = resolve_display_name(details, account)

    skill_groups = [
        SkillGroup(category=skill.category, tags=split_skill_tags(skill.items))
        for skill in data.skill_items
    ]

    return ResumeView(
        first_name=first_name,
        last_name=last_name,
        display_name=display_name,
        display_email=details.email or account.email,
        phone=details.phone,
        full_address=format_full_address(details),
        summary=resolve_summary(data),
        skill_groups=skill_groups,
        all_skill_tags=[tag for group in skill_groups for tag in group.tags],
        photo_src=resolve_photo_src(data),
    )
