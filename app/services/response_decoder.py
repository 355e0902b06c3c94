"""Decode marker-delimited generation replies into named sections."""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional
from app.models.response_models import ParsedResponse

logger = logging.getLogger(__name__)

# Canonical marker order; the generator may omit any of them
SECTION_MARKERS = (
    "RESUME_JSON:",
    "GAP_AND_FIX_LIST:",
    "RESUME_ATS:",
    "RESUME_HUMAN:",
    "RESUME_TARGETED:",
    "RESUME_WITH_PHOTO:",
    "COVER_LETTER_FULL:",
    "COVER_LETTER_SHORT:",
    "COLD_EMAIL:",
)

# Plain text sections: marker -> ParsedResponse field
TEXT_SECTIONS = {
    "RESUME_ATS:": "resume_ats",
    "RESUME_HUMAN:": "resume_human",
    "RESUME_TARGETED:": "resume_targeted",
    "RESUME_WITH_PHOTO:": "resume_photo",
    "COVER_LETTER_FULL:": "cover_letter_full",
    "COVER_LETTER_SHORT:": "cover_letter_short",
    "COLD_EMAIL:": "cold_email",
}

_CODE_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
_CODE_FENCE_CLOSE = re.compile(r"\n?```\s*$")


def _canonical_successor(marker: str) -> Optional[str]:
    position = SECTION_MARKERS.index(marker)
    if position + 1 < len(SECTION_MARKERS):
        return SECTION_MARKERS[position + 1]
    return None


def _earliest_marker(raw_text: str, start: int, markers: Iterable[str] = SECTION_MARKERS) -> int:
    """Position of the first known marker at or after ``start``, or -1."""
    positions = [raw_text.find(marker, start) for marker in markers]
    positions = [p for p in positions if p != -1]
    return min(positions) if positions else -1


def extract_section(raw_text: str, start_marker: str, end_marker: Optional[str] = None) -> Optional[str]:
    """
    Extract the trimmed content that follows ``start_marker``.

    The content ends at ``end_marker`` when it occurs after the content start;
    otherwise at the earliest of any known marker; otherwise at end of text.

    Args:
        raw_text: Full reply text (never modified)
        start_marker: Marker opening the section, e.g. ``"RESUME_ATS:"``
        end_marker: Preferred marker closing the section (optional)

    Returns:
        Optional[str]: Section content, or None when the start marker is absent
    """
    start_index = raw_text.find(start_marker)
    if start_index == -1:
        return None

    content_start = start_index + len(start_marker)
    content_end = -1
    if end_marker:
        content_end = raw_text.find(end_marker, content_start)
    if content_end == -1:
        content_end = _earliest_marker(raw_text, content_start)
    if content_end == -1:
        content_end = len(raw_text)

    return raw_text[content_start:content_end].strip()


def strip_code_fence(text: str) -> str:
    """
    Remove a surrounding Markdown code fence.

    Example: "```json\\n{...}\\n```" -> "{...}"
    """
    text = text.strip()
    text = _CODE_FENCE_OPEN.sub("", text)
    text = _CODE_FENCE_CLOSE.sub("", text)
    return text.strip()


def parse_json_section(section: str) -> Optional[Any]:
    """
    Parse the ``RESUME_JSON:`` section.

    Parse failures are logged and reported as None so the rest of the reply
    can still be decoded.
    """
    try:
        return json.loads(strip_code_fence(section))
    except (ValueError, RecursionError) as e:
        logger.warning("Failed to parse RESUME_JSON section (%d chars): %s", len(section), e)
        return None


def split_gap_list(section: str) -> List[str]:
    """Split the gap-and-fix section into non-empty trimmed lines."""
    return [line.strip() for line in section.splitlines() if line.strip()]


def decode(raw_text: Optional[str], expected_sections: Optional[Iterable[str]] = None) -> ParsedResponse:
    """
    Decode one generation reply into its sections.

    Never raises for malformed or partial input. Each section is extracted by
    re-scanning the original text.

    Args:
        raw_text: Reply text returned by the generation service
        expected_sections: Markers the caller asked for; a warning is logged
            for each one that could not be recovered (optional)

    Returns:
        ParsedResponse: Decoded sections plus the untouched ``raw`` text
    """
    raw_text = raw_text or ""
    fields: Dict[str, Any] = {"raw": raw_text}

    json_section = extract_section(raw_text, "RESUME_JSON:", _canonical_successor("RESUME_JSON:"))
    if json_section:
        fields["resume_json"] = parse_json_section(json_section)

    gap_section = extract_section(raw_text, "GAP_AND_FIX_LIST:", _canonical_successor("GAP_AND_FIX_LIST:"))
    if gap_section:
        fields["gap_and_fix"] = split_gap_list(gap_section)

    for marker, field_name in TEXT_SECTIONS.items():
        fields[field_name] = extract_section(raw_text, marker, _canonical_successor(marker))

    parsed = ParsedResponse(**fields)

    if expected_sections:
        missing = [marker for marker in expected_sections if marker not in raw_text]
        if missing:
            logger.warning(
                "Generation reply is missing %d of the expected sections: %s",
                len(missing), ", ".join(missing)
            )

    return parsed
