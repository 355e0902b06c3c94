"""Assemble generation requests and decode the replies."""

import logging
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel
from app.exceptions import GenerationServiceError, InputContractError, ResumeImportError
from app.models.request_models import GenerationMode
from app.models.resume_models import InlineData, ResumeData
from app.models.response_models import ParsedResponse
from app.services.llm_service import LLMService, inline_part, text_part
from app.services.prompt_library import PromptLibrary, get_prompt_library
from app.services.resume_importer import ResumeImport, map_resume_json
from app.services.response_decoder import SECTION_MARKERS, decode

logger = logging.getLogger(__name__)

# Sections every resume generation is expected to return
RESUME_SECTIONS = (
    "RESUME_JSON:",
    "GAP_AND_FIX_LIST:",
    "RESUME_ATS:",
    "RESUME_HUMAN:",
)


class GenerationRequest(BaseModel):
    """Assembled request for the generation service."""

    mode: GenerationMode
    parts: List[Dict[str, Any]]
    prompt: str


class GenerationOrchestrator:
    """Build requests for the generation service and decode its replies."""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        prompts: Optional[PromptLibrary] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            llm_service: Generation collaborator (creates one if None)
            prompts: Prompt library (loads the default one if None)
        """
        self.llm_service = llm_service or LLMService()
        self.prompts = prompts or get_prompt_library()

    def build_request(
        self,
        data: ResumeData,
        mode: GenerationMode,
        attachment: Optional[InlineData] = None,
        resume_text: Optional[str] = None
    ) -> GenerationRequest:
        """
        Assemble the content parts for one generation call.

        Args:
            data: Current resume data
            mode: FORMAT_EXISTING or CREATE_SCRATCH
            attachment: Existing resume document (FORMAT_EXISTING)
            resume_text: Existing resume as pasted text (FORMAT_EXISTING)

        Returns:
            GenerationRequest: Parts in send order, text prompt last

        Raises:
            InputContractError: If FORMAT_EXISTING lacks exactly one source
        """
        resume_text = (resume_text or "").strip()
        parts: List[Dict[str, Any]] = []
        preferences = data.preferences

        lines = [
            f"Mode: {mode.value}",
            f'Template ID: "{data.template_id or "None (Default)"}"',
            f"Preferences: Pages={preferences.pages}, Tone={preferences.tone}, "
            f"Region={preferences.region}, Photo={'Yes' if preferences.photo else 'No'}",
        ]

        if data.job_description:
            lines.append(f"Job description:\n{data.job_description}")

        # The photo is auxiliary context; it goes before any document
        if preferences.photo and data.profile_image_data is not None:
            parts.append(text_part("User Profile Photo (for context/verification only):"))
            parts.append(inline_part(data.profile_image_data.mime_type, data.profile_image_data.data))

        if mode == GenerationMode.FORMAT_EXISTING:
            if attachment is not None and resume_text:
                raise InputContractError(
                    "For FORMAT_EXISTING provide either an uploaded resume file or resume text, not both."
                )
            if attachment is not None:
                parts.append(text_part("Existing resume document:"))
                parts.append(inline_part(attachment.mime_type, attachment.data))
                lines.append(
                    "The existing resume is attached as a file above. "
                    "Extract all information from it to build the new resume."
                )
            elif resume_text:
                lines.append(f"Existing resume text:\n{resume_text}")
            else:
                raise InputContractError(
                    "For FORMAT_EXISTING you must provide either an uploaded resume file or resume text."
                )
        else:
            lines.extend(self._scratch_lines(data))

        prompt = "\n".join(lines) + "\n"
        parts.append(text_part(prompt))
        return GenerationRequest(mode=mode, parts=parts, prompt=prompt)

    def _scratch_lines(self, data: ResumeData) -> List[str]:
        lines = ["", "CREATE FROM SCRATCH DATA:", f"Target Role: {data.target_role or 'Not specified'}"]

        if data.experience_items:
            lines.extend(["", "WORK EXPERIENCE:"])
            for item in data.experience_items:
                lines.append(
                    f"- Role: {item.role} at {item.company} ({item.dates}). Details: {item.description}"
                )

        if data.education_items:
            lines.extend(["", "EDUCATION:"])
            for item in data.education_items:
                lines.append(f"- {item.degree} from {item.school} ({item.dates})")

        if data.skill_items:
            lines.extend(["", "SKILLS & OTHER SECTIONS:"])
            for item in data.skill_items:
                lines.append(f"- Category: {item.category}. Items: {item.items}")

        return lines

    async def generate(
        self,
        data: ResumeData,
        mode: GenerationMode,
        attachment: Optional[InlineData] = None,
        resume_text: Optional[str] = None
    ) -> ParsedResponse:
        """
        Generate resume content and decode it into sections.

        Args:
            data: Current resume data (not modified)
            mode: FORMAT_EXISTING or CREATE_SCRATCH
            attachment: Existing resume document (FORMAT_EXISTING)
            resume_text: Existing resume text (FORMAT_EXISTING)

        Returns:
            ParsedResponse: Decoded sections

        Raises:
            InputContractError: Before any network call, on a bad request
            GenerationServiceError: If the generation service fails
        """
        request = self.build_request(data, mode, attachment=attachment, resume_text=resume_text)

        try:
            raw_text = await self.llm_service.generate(parts=request.parts, system=self.prompts.system)
        except GenerationServiceError as e:
            logger.error("Generation failed mode=%s: %s", mode.value, e)
            raise

        expected = list(RESUME_SECTIONS)
        if data.job_description:
            expected.append("COVER_LETTER_FULL:")
        parsed = decode(raw_text, expected_sections=expected)

        logger.info(
            "Generation decoded mode=%s sections=%d/%d",
            mode.value, len(parsed.recovered_sections()), len(SECTION_MARKERS)
        )
        return parsed

    async def import_resume(
        self,
        data: ResumeData,
        attachment: Optional[InlineData] = None,
        resume_text: Optional[str] = None
    ) -> Tuple[ResumeImport, ParsedResponse]:
        """
        Parse an existing resume and map it back into editor fields.

        Raises:
            ResumeImportError: If the reply has no structured resume JSON
        """
        parsed = await self.generate(
            data, GenerationMode.FORMAT_EXISTING, attachment=attachment, resume_text=resume_text
        )
        if not isinstance(parsed.resume_json, dict):
            raise ResumeImportError("Could not parse resume data structure.")
        return map_resume_json(parsed.resume_json), parsed
