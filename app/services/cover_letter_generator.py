"""Service for generating cover letters using LLM."""

import json
import logging
from typing import Any, Optional
from app.exceptions import InputContractError
from app.models.resume_models import AccountIdentity
from app.models.response_models import CoverLetterResponse
from app.services.llm_service import LLMService, text_part
from app.services.prompt_library import PromptLibrary, get_prompt_library
from app.services.response_decoder import extract_section

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Cover Letter"
MIN_JOB_DESCRIPTION = 20
MAX_JOB_DESCRIPTION = 20000
MAX_TITLE = 200


class CoverLetterGenerator:
    """Service for generating cover letters using LLM."""

    def __init__(
        self,
        llm_service: Optional[LLMService] = None,
        prompts: Optional[PromptLibrary] = None
    ):
        """Initialize cover letter generator."""
        self.llm_service = llm_service or LLMService()
        self.prompts = prompts or get_prompt_library()

    def build_prompt(
        self,
        account: AccountIdentity,
        job_description: str,
        template_id: Optional[str] = None,
        resume_json: Optional[Any] = None
    ) -> str:
        """
        Build the cover-letter-only user prompt.

        The account, job description and latest resume JSON are appended as a
        JSON context block so the model can ground achievements in them.
        """
        context = {
            "name": account.name,
            "email": account.email,
            "templateId": template_id,
            "jobDescription": job_description,
            "resumeJson": resume_json,
        }
        return (
            f"{self.prompts.cover_letter.rstrip()}\n\n"
            f"USER_CONTEXT_JSON:\n{json.dumps(context, indent=2, ensure_ascii=False)}"
        )

    async def generate_cover_letter(
        self,
        account: AccountIdentity,
        job_description: str,
        template_id: Optional[str] = None,
        title: Optional[str] = None,
        resume_json: Optional[Any] = None
    ) -> CoverLetterResponse:
        """
        Generate a cover letter, short letter and cold email.

        Args:
            account: Signed-in account (name and email go into the prompt)
            job_description: Job posting text, 20 to 20000 characters
            template_id: Template the letter should visually match (optional)
            title: Title for the letter (defaults to "Cover Letter")
            resume_json: Latest structured resume JSON (optional)

        Returns:
            CoverLetterResponse: Decoded outputs; the full letter falls back to
            the whole reply when its marker is missing

        Raises:
            InputContractError: If the job description length is out of range
            GenerationServiceError: If the generation service fails
        """
        job_description = (job_description or "").strip()
        if not MIN_JOB_DESCRIPTION <= len(job_description) <= MAX_JOB_DESCRIPTION:
            raise InputContractError(
                f"job_description must be between {MIN_JOB_DESCRIPTION} and "
                f"{MAX_JOB_DESCRIPTION} characters"
            )

        prompt = self.build_prompt(account, job_description, template_id, resume_json)
        raw = await self.llm_service.generate(
            parts=[text_part(prompt)],
            system=self.prompts.system
        )

        full = extract_section(raw, "COVER_LETTER_FULL:", "COVER_LETTER_SHORT:")
        if full is None:
            logger.warning("Cover letter reply had no COVER_LETTER_FULL section; using raw reply")
            full = raw.strip()

        return CoverLetterResponse(
            title=(title or DEFAULT_TITLE)[:MAX_TITLE],
            template_id=template_id,
            cover_letter_full=full,
            cover_letter_short=extract_section(raw, "COVER_LETTER_SHORT:", "COLD_EMAIL:") or "",
            cold_email=extract_section(raw, "COLD_EMAIL:") or "",
            raw=raw,
        )
