"""Tests for FastAPI endpoints."""

import time
import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from app import main
from app.exceptions import GenerationServiceError
from app.main import app, get_cover_letter_generator, get_orchestrator, get_store
from app.services.cover_letter_generator import CoverLetterGenerator
from app.services.draft_store import InMemoryResumeStore
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.prompt_library import PromptLibrary

HEADERS = {
    "X-Account-Id": "acct-1",
    "X-Account-Name": "Jane Doe",
    "X-Account-Email": "jane@example.com",
}
PROMPTS = PromptLibrary(system="SYSTEM", cover_letter="COVER LETTER")

REPLY = """RESUME_JSON:
```json
{"header": {"name": "Ada Lovelace", "title": "Analyst", "location": "London, UK"},
 "experience": [{"company": "Engines Ltd", "role": "Analyst", "start": "1842", "highlights": ["Notes"]}]}
```
GAP_AND_FIX_LIST:
Add dates
RESUME_ATS:
ATS version
RESUME_HUMAN:
Human version
"""


class FakeLLMService:
    """LLM service stand-in returning a canned reply."""

    def __init__(self, reply: str = REPLY, error: Exception = None):
        self.reply = reply
        self.error = error
        self.calls = 0

    async def generate(self, parts, system=None, temperature=None):
        self.calls += 1
        if self.error:
            raise self.error
        return self.reply


@pytest.fixture
def llm():
    return FakeLLMService()


@pytest.fixture(autouse=True)
def overrides(llm):
    store = InMemoryResumeStore()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_orchestrator] = lambda: GenerationOrchestrator(llm_service=llm, prompts=PROMPTS)
    app.dependency_overrides[get_cover_letter_generator] = lambda: CoverLetterGenerator(llm_service=llm, prompts=PROMPTS)
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", headers=HEADERS) as client:
        yield client


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Test root endpoint."""
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "ResumeForge API"


@pytest.mark.asyncio
async def test_health_endpoint(client):
    """Test health endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_list_templates(client):
    """Test the template catalog endpoint."""
    response = await client.get("/api/v1/templates")
    assert response.status_code == 200
    body = response.json()
    assert body["defaultTemplateId"] == "classic_pro"
    assert len(body["templates"]) == 6
    assert {"id", "name", "tag", "description", "layout"} <= set(body["templates"][0])


@pytest.mark.asyncio
async def test_render_preview(client):
    """Test rendering with the account fallbacks."""
    response = await client.post(
        "/api/v1/resume/render",
        json={"templateId": "executive_lead", "data": {"personalDetails": {"city": "Austin", "state": "TX"}}}
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert response.headers["x-resume-template"] == "executive_lead"
    assert "Jane Doe" in response.text
    assert "jane@example.com" in response.text
    assert "Austin, TX" in response.text


@pytest.mark.asyncio
async def test_render_unknown_template_falls_back(client):
    """Test that unknown templates render the default layout."""
    response = await client.post(
        "/api/v1/resume/render",
        json={"templateId": "nonexistent_template_xyz", "data": {}}
    )
    assert response.status_code == 200
    assert response.headers["x-resume-template"] == "classic_pro"


@pytest.mark.asyncio
async def test_render_rejects_invalid_preferences(client):
    """Test validation of the preferences enums."""
    response = await client.post(
        "/api/v1/resume/render",
        json={"data": {"preferences": {"region": "Mars"}}}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generate_resume(client):
    """Test generation returns decoded sections."""
    response = await client.post("/api/v1/resume/generate", json={"mode": "MODE_B", "data": {"targetRole": "Analyst"}})
    assert response.status_code == 200
    body = response.json()
    assert body["resumeAts"] == "ATS version"
    assert body["gapAndFix"] == ["Add dates"]
    assert body["json"]["header"]["name"] == "Ada Lovelace"
    assert body["coldEmail"] is None


@pytest.mark.asyncio
async def test_generate_format_existing_without_input(client, llm):
    """Test the input contract error."""
    response = await client.post("/api/v1/resume/generate", json={"mode": "MODE_A", "data": {}})
    assert response.status_code == 400
    assert llm.calls == 0


@pytest.mark.asyncio
async def test_generate_transport_error(client, llm):
    """Test that generation failures map to 502."""
    llm.error = GenerationServiceError("upstream unavailable")
    response = await client.post("/api/v1/resume/generate", json={"data": {}})
    assert response.status_code == 502
    assert response.json()["detail"] == "upstream unavailable"


@pytest.mark.asyncio
async def test_import_resume(client):
    """Test importing into editor fields."""
    response = await client.post(
        "/api/v1/resume/import",
        json={
            "resumeText": "Ada Lovelace, Analyst",
            "data": {"jobDescription": "Keep me", "preferences": {"tone": "bold"}}
        }
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["personalDetails"]["firstName"] == "Ada"
    assert data["personalDetails"]["lastName"] == "Lovelace"
    assert data["personalDetails"]["city"] == "London"
    assert data["experienceItems"][0]["dates"] == "1842"
    assert data["jobDescription"] == "Keep me"
    assert data["preferences"]["tone"] == "bold"


@pytest.mark.asyncio
async def test_import_without_json(client, llm):
    """Test the import of a reply with no structured resume."""
    llm.reply = "RESUME_ATS:\nonly text"
    response = await client.post("/api/v1/resume/import", json={"resumeText": "Ada", "data": {}})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_draft_roundtrip(client):
    """Test saving and fetching drafts."""
    empty = await client.get("/api/v1/resume/latest-draft")
    assert empty.json() == {"draft": None}

    saved = await client.post(
        "/api/v1/resume/draft",
        json={"templateId": "modern_tech", "content": {"targetRole": "Analyst"}}
    )
    assert saved.status_code == 200

    latest = await client.get("/api/v1/resume/latest-draft", params={"templateId": "modern_tech"})
    draft = latest.json()["draft"]
    assert draft["templateId"] == "modern_tech"
    assert draft["content"]["targetRole"] == "Analyst"

    other = await client.get("/api/v1/resume/latest-draft", params={"templateId": "classic_pro"})
    assert other.json()["draft"] is None

    any_template = await client.get("/api/v1/resume/latest-draft")
    assert any_template.json()["draft"]["id"] == draft["id"]


@pytest.mark.asyncio
async def test_resume_library(client):
    """Test the saved resume CRUD endpoints."""
    created = await client.post(
        "/api/v1/resumes",
        json={"templateId": "classic_pro", "title": "First", "content": {"resumeAts": "ats"}}
    )
    assert created.status_code == 201
    first_id = created.json()["id"]

    second = await client.post("/api/v1/resumes", json={"templateId": "compact_grid", "title": "Second"})
    second_id = second.json()["id"]

    listing = (await client.get("/api/v1/resumes")).json()["resumes"]
    assert [r["id"] for r in listing] == [second_id, first_id]

    nothing = await client.put(f"/api/v1/resumes/{first_id}", json={})
    assert nothing.status_code == 400

    updated = await client.put(f"/api/v1/resumes/{first_id}", json={"title": "Renamed"})
    assert updated.status_code == 200

    fetched = (await client.get(f"/api/v1/resumes/{first_id}")).json()["resume"]
    assert fetched["title"] == "Renamed"
    assert fetched["content"] == {"resumeAts": "ats"}

    listing = (await client.get("/api/v1/resumes")).json()["resumes"]
    assert listing[0]["id"] == first_id

    deleted = await client.delete(f"/api/v1/resumes/{first_id}")
    assert deleted.status_code == 200
    assert (await client.get(f"/api/v1/resumes/{first_id}")).status_code == 404
    assert (await client.put(f"/api/v1/resumes/{first_id}", json={"title": "x"})).status_code == 404


@pytest.mark.asyncio
async def test_resume_library_is_per_account(client):
    """Test that other accounts cannot see saved resumes."""
    created = await client.post("/api/v1/resumes", json={"templateId": "classic_pro", "title": "Mine"})
    resume_id = created.json()["id"]

    other = await client.get(f"/api/v1/resumes/{resume_id}", headers={"X-Account-Id": "someone-else"})
    assert other.status_code == 404


@pytest.mark.asyncio
async def test_generate_cover_letter(client, llm):
    """Test cover letter generation."""
    llm.reply = "COVER_LETTER_FULL:\nDear team\nCOVER_LETTER_SHORT:\nShort\nCOLD_EMAIL:\nHi"
    response = await client.post(
        "/api/v1/cover-letter/generate",
        json={"jobDescription": "We are looking for a Senior Backend Developer with Python."}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["coverLetterFull"] == "Dear team"
    assert body["coverLetterShort"] == "Short"
    assert body["coldEmail"] == "Hi"
    assert body["title"] == "Cover Letter"


@pytest.mark.asyncio
async def test_cover_letter_job_description_too_short(client):
    """Test job description validation."""
    response = await client.post("/api/v1/cover-letter/generate", json={"jobDescription": "short"})
    assert response.status_code == 422


def test_live_editor_session(monkeypatch, overrides):
    """Test a live editing session with preview, autosave and generation."""
    monkeypatch.setattr(main.settings, "autosave_quiet_period", 0.05)

    with TestClient(app) as client:
        with client.websocket_connect("/api/v1/editor/live?templateId=modern_tech", headers=HEADERS) as ws:
            hello = ws.receive_json()
            assert hello["type"] == "draft"
            assert hello["restored"] is False
            assert hello["data"]["personalDetails"]["firstName"] == "Jane"

            ws.send_json({"type": "edit", "data": {"targetRole": "Analyst", "personalDetails": {"firstName": "Ada"}}})
            preview = ws.receive_json()
            assert preview["type"] == "preview"
            assert preview["templateId"] == "modern_tech"
            assert "Ada" in preview["html"]

            time.sleep(0.3)

            ws.send_json({"type": "generate", "mode": "MODE_B"})
            result = ws.receive_json()
            assert result["type"] == "result"
            assert result["parsed"]["resumeAts"] == "ATS version"

            ws.send_json({"type": "generate", "mode": "MODE_A"})
            error = ws.receive_json()
            assert error["type"] == "error"

        latest = client.get("/api/v1/resume/latest-draft", params={"templateId": "modern_tech"}, headers=HEADERS)
        draft = latest.json()["draft"]
        assert draft["content"]["targetRole"] == "Analyst"
        assert draft["content"]["personalDetails"]["firstName"] == "Ada"


def test_live_editor_restores_draft(overrides):
    """Test that a new session is seeded from the latest draft."""
    with TestClient(app) as client:
        client.post(
            "/api/v1/resume/draft",
            json={"templateId": "compact_grid", "content": {"targetRole": "Restored role"}},
            headers=HEADERS
        )
        with client.websocket_connect("/api/v1/editor/live?templateId=compact_grid", headers=HEADERS) as ws:
            hello = ws.receive_json()
            assert hello["type"] == "draft"
            assert hello["restored"] is True
            assert hello["data"]["targetRole"] == "Restored role"

            preview = ws.receive_json()
            assert preview["type"] == "preview"
            assert "Restored role" in preview["html"]


def test_live_editor_import_and_views(overrides):
    """Test importing over the live session and suppressing autosave in other views."""
    with TestClient(app) as client:
        with client.websocket_connect("/api/v1/editor/live", headers=HEADERS) as ws:
            assert ws.receive_json()["type"] == "draft"

            ws.send_json({"type": "view", "view": "upload"})
            ws.send_json({"type": "import", "resumeText": "Ada Lovelace"})
            imported = ws.receive_json()
            assert imported["type"] == "imported"
            assert imported["data"]["personalDetails"]["firstName"] == "Ada"
            assert imported["parsed"]["resumeHuman"] == "Human version"
            assert ws.receive_json()["type"] == "preview"

            ws.send_json({"type": "bogus"})
            assert ws.receive_json()["type"] == "error"

        # Import happened outside the editor view, so nothing was autosaved
        latest = client.get("/api/v1/resume/latest-draft", headers=HEADERS)
        assert latest.json()["draft"] is None
