"""Tests for generation request assembly, decoding and cover letters."""

import pytest
from app.exceptions import GenerationServiceError, InputContractError, ResumeImportError
from app.models.request_models import GenerationMode
from app.models.resume_models import (
    AccountIdentity,
    EducationItem,
    ExperienceItem,
    InlineData,
    Preferences,
    ResumeData,
    SkillItem,
)
from app.services.cover_letter_generator import CoverLetterGenerator
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.prompt_library import PromptLibrary, load_prompt_library

PHOTO = InlineData(mime_type="image/jpeg", data="cGhvdG8=")
RESUME_PDF = InlineData(mime_type="application/pdf", data="JVBERi0xLjQ=")
PROMPTS = PromptLibrary(system="SYSTEM PROMPT", cover_letter="COVER LETTER PROMPT")

REPLY = """RESUME_JSON:
{"header": {"name": "Jane Doe", "title": "Staff Engineer", "location": "Austin, TX"},
 "skills": {"languages": ["Python"]}}
GAP_AND_FIX_LIST:
Add metrics
RESUME_ATS:
ats
RESUME_HUMAN:
human
"""


class FakeLLMService:
    """LLM service stand-in returning a canned reply."""

    def __init__(self, reply: str = REPLY, error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, parts, system=None, temperature=None):
        self.calls.append({"parts": parts, "system": system})
        if self.error:
            raise self.error
        return self.reply


def scratch_data(**overrides) -> ResumeData:
    values = dict(
        target_role="Backend Engineer",
        job_description="Hiring a Python developer",
        experience_items=[ExperienceItem(role="Engineer", company="Acme", dates="2020 - Present", description="APIs")],
        education_items=[EducationItem(degree="BSc", school="UT", dates="2016")],
        skill_items=[SkillItem(category="Languages", items="Python, Go")],
        template_id="modern_tech",
    )
    values.update(overrides)
    return ResumeData(**values)


def test_prompt_library_loads():
    """Test loading the packaged prompts."""
    prompts = load_prompt_library()

    assert "RESUME_JSON:" in prompts.system
    assert "COLD_EMAIL:" in prompts.cover_letter


def test_create_scratch_serializes_structured_data():
    """Test the CREATE_SCRATCH request payload."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    request = orchestrator.build_request(scratch_data(), GenerationMode.CREATE_SCRATCH)

    assert len(request.parts) == 1
    prompt = request.parts[0]["text"]
    assert "Mode: MODE_B" in prompt
    assert 'Template ID: "modern_tech"' in prompt
    assert "Target Role: Backend Engineer" in prompt
    assert "- Role: Engineer at Acme (2020 - Present). Details: APIs" in prompt
    assert "- BSc from UT (2016)" in prompt
    assert "- Category: Languages. Items: Python, Go" in prompt
    assert "Hiring a Python developer" in prompt


def test_format_existing_requires_a_source():
    """Test that FORMAT_EXISTING without input is rejected."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    with pytest.raises(InputContractError):
        orchestrator.build_request(scratch_data(), GenerationMode.FORMAT_EXISTING)
    with pytest.raises(InputContractError):
        orchestrator.build_request(scratch_data(), GenerationMode.FORMAT_EXISTING, resume_text="   ")


def test_format_existing_rejects_both_sources():
    """Test that FORMAT_EXISTING with both a file and text is rejected."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    with pytest.raises(InputContractError, match="not both"):
        orchestrator.build_request(
            scratch_data(), GenerationMode.FORMAT_EXISTING, attachment=RESUME_PDF, resume_text="Jane Doe"
        )


def test_format_existing_passes_attachment_through():
    """Test that the attachment is sent unmodified before the prompt."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    request = orchestrator.build_request(scratch_data(), GenerationMode.FORMAT_EXISTING, attachment=RESUME_PDF)

    assert {"inlineData": {"mimeType": "application/pdf", "data": "JVBERi0xLjQ="}} in request.parts
    assert "text" in request.parts[-1]
    assert "CREATE FROM SCRATCH" not in request.prompt


def test_format_existing_with_text():
    """Test FORMAT_EXISTING with pasted text."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    request = orchestrator.build_request(scratch_data(), GenerationMode.FORMAT_EXISTING, resume_text="Jane Doe\nEngineer")

    assert len(request.parts) == 1
    assert "Existing resume text:\nJane Doe\nEngineer" in request.prompt


def test_photo_is_auxiliary_context():
    """Test that the profile photo is labeled as context and precedes the document."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)
    data = scratch_data(preferences=Preferences(photo=True), profile_image_data=PHOTO)

    request = orchestrator.build_request(data, GenerationMode.FORMAT_EXISTING, attachment=RESUME_PDF)

    assert "context/verification only" in request.parts[0]["text"]
    assert request.parts[1] == {"inlineData": {"mimeType": "image/jpeg", "data": "cGhvdG8="}}
    assert request.parts[3] == {"inlineData": {"mimeType": "application/pdf", "data": "JVBERi0xLjQ="}}


def test_photo_omitted_when_preference_off():
    """Test that the photo is not sent when the preference is off."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)
    data = scratch_data(preferences=Preferences(photo=False), profile_image_data=PHOTO)

    request = orchestrator.build_request(data, GenerationMode.CREATE_SCRATCH)

    assert all("inlineData" not in part for part in request.parts)


@pytest.mark.asyncio
async def test_generate_decodes_reply():
    """Test a full generation round."""
    llm = FakeLLMService()
    orchestrator = GenerationOrchestrator(llm_service=llm, prompts=PROMPTS)
    data = scratch_data()
    before = data.model_dump()

    parsed = await orchestrator.generate(data, GenerationMode.CREATE_SCRATCH)

    assert parsed.resume_ats == "ats"
    assert parsed.gap_and_fix == ["Add metrics"]
    assert parsed.raw == REPLY
    assert llm.calls[0]["system"] == "SYSTEM PROMPT"
    assert data.model_dump() == before


@pytest.mark.asyncio
async def test_input_error_happens_before_network_call():
    """Test that contract errors never reach the LLM."""
    llm = FakeLLMService()
    orchestrator = GenerationOrchestrator(llm_service=llm, prompts=PROMPTS)

    with pytest.raises(InputContractError):
        await orchestrator.generate(scratch_data(), GenerationMode.FORMAT_EXISTING)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_transport_error_propagates():
    """Test that generation failures propagate once, without retries."""
    llm = FakeLLMService(error=GenerationServiceError("unreachable"))
    orchestrator = GenerationOrchestrator(llm_service=llm, prompts=PROMPTS)

    with pytest.raises(GenerationServiceError, match="unreachable"):
        await orchestrator.generate(scratch_data(), GenerationMode.CREATE_SCRATCH)
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_import_resume_maps_json():
    """Test the import flow."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(), prompts=PROMPTS)

    imported, parsed = await orchestrator.import_resume(scratch_data(), resume_text="Jane Doe, Staff Engineer")

    assert imported.target_role == "Staff Engineer"
    assert imported.personal_details.city == "Austin"
    assert imported.skill_items[0].category == "Languages"
    assert parsed.resume_human == "human"


@pytest.mark.asyncio
async def test_import_resume_without_json():
    """Test the import flow when the reply has no usable JSON."""
    orchestrator = GenerationOrchestrator(llm_service=FakeLLMService(reply="RESUME_ATS:\nats"), prompts=PROMPTS)

    with pytest.raises(ResumeImportError):
        await orchestrator.import_resume(scratch_data(), resume_text="Jane Doe")


@pytest.mark.asyncio
async def test_cover_letter_sections():
    """Test decoding the cover-letter-only reply."""
    reply = "COVER_LETTER_FULL:\nDear team,\nHello.\nCOVER_LETTER_SHORT:\nShort.\nCOLD_EMAIL:\nHi!"
    llm = FakeLLMService(reply=reply)
    generator = CoverLetterGenerator(llm_service=llm, prompts=PROMPTS)
    account = AccountIdentity(id="acct-1", name="Jane Doe", email="jane@example.com")

    letter = await generator.generate_cover_letter(
        account, "We are hiring a senior Python developer to build APIs.", resume_json={"summary": "APIs"}
    )

    assert letter.cover_letter_full == "Dear team,\nHello."
    assert letter.cover_letter_short == "Short."
    assert letter.cold_email == "Hi!"
    assert letter.title == "Cover Letter"
    prompt = llm.calls[0]["parts"][0]["text"]
    assert prompt.startswith("COVER LETTER PROMPT")
    assert '"name": "Jane Doe"' in prompt
    assert '"summary": "APIs"' in prompt


@pytest.mark.asyncio
async def test_cover_letter_falls_back_to_raw():
    """Test that a reply without markers becomes the full letter."""
    generator = CoverLetterGenerator(llm_service=FakeLLMService(reply="  Just a letter.  "), prompts=PROMPTS)

    letter = await generator.generate_cover_letter(
        AccountIdentity(), "We are hiring a senior Python developer.", title="Acme"
    )

    assert letter.cover_letter_full == "Just a letter."
    assert letter.cover_letter_short == ""
    assert letter.cold_email == ""
    assert letter.title == "Acme"


@pytest.mark.asyncio
async def test_cover_letter_rejects_short_job_description():
    """Test job description length validation."""
    llm = FakeLLMService()
    generator = CoverLetterGenerator(llm_service=llm, prompts=PROMPTS)

    with pytest.raises(InputContractError):
        await generator.generate_cover_letter(AccountIdentity(), "too short")
    assert llm.calls == []
