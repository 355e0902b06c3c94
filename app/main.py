"""FastAPI application for ResumeForge."""

import asyncio
import logging
from io import BytesIO
from typing import Any, Dict, Optional
from fastapi import Depends, FastAPI, Header, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import ValidationError
from app.config import get_settings
from app.exceptions import (
    DraftStoreError,
    GenerationServiceError,
    InputContractError,
    ResumeImportError,
)
from app.models.request_models import (
    CoverLetterGenerateRequest,
    DraftSaveRequest,
    GenerateRequest,
    GenerationMode,
    RenderRequest,
    SaveResumeRequest,
    UpdateResumeRequest,
)
from app.models.resume_models import AccountIdentity, InlineData, ResumeData
from app.models.response_models import (
    CoverLetterResponse,
    DraftResponse,
    ErrorResponse,
    HealthResponse,
    ImportResponse,
    OkResponse,
    ParsedResponse,
    ResumeListResponse,
    ResumeResponse,
    RootResponse,
    SaveResumeResponse,
    TemplateCatalogResponse,
)
from app.services.cover_letter_generator import CoverLetterGenerator
from app.services.draft_coordinator import DraftCoordinator, EditorSession, EditorView
from app.services.draft_store import UNSET, InMemoryResumeStore
from app.services.generation_orchestrator import GenerationOrchestrator
from app.services.llm_service import LLMService
from app.services.pdf_generator import PDFGenerator
from app.services.resume_importer import merge_import
from app.services.template_catalog import TemplateCatalog, get_template_catalog
from app.services.template_renderer import TemplateRenderer
from app.utils.logging_config import configure_logging

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="""API for building resumes with a live preview and AI generation.

## Features

* **Live preview**: Renders the resume data with one of six layouts (unknown ids use the default)
* **PDF export**: Downloads exactly the HTML shown in the preview
* **AI generation**: Formats an existing resume (MODE_A) or creates one from scratch (MODE_B)
* **Import**: Maps a parsed resume back into the editor fields
* **Drafts**: Autosaves the editor state per template and restores the latest one
* **Library**: Saves, lists, updates and deletes generated resumes
* **Cover letters**: Generates a full letter, a short letter and a cold email

## Usage

1. Use `/api/v1/templates` to list the available layouts
2. Use `/api/v1/resume/render` to preview the resume data with a layout
3. Use `/api/v1/resume/generate` to run a generation and receive the decoded sections
4. Connect to `/api/v1/editor/live` for a live-editing session with debounced autosave

The caller's account is identified by the `X-Account-Id`, `X-Account-Name` and
`X-Account-Email` headers.""",
    version=settings.app_version,
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT"
    },
    servers=[
        {
            "url": "http://localhost:8000",
            "description": "Local development server"
        }
    ],
    tags_metadata=[
        {
            "name": "health",
            "description": "Health check and status endpoints"
        },
        {
            "name": "templates",
            "description": "Template catalog, preview rendering and PDF export"
        },
        {
            "name": "resume",
            "description": "Resume generation and import endpoints"
        },
        {
            "name": "drafts",
            "description": "Editor autosave endpoints"
        },
        {
            "name": "library",
            "description": "Saved resume endpoints"
        },
        {
            "name": "cover-letter",
            "description": "Cover letter generation endpoints"
        },
        {
            "name": "editor",
            "description": "Live editing session over WebSocket"
        }
    ]
)

# Services, created on first use
_services: Dict[str, Any] = {}


def _service(name: str, factory):
    if name not in _services:
        _services[name] = factory()
    return _services[name]


def get_catalog() -> TemplateCatalog:
    return get_template_catalog(default_id=settings.default_template_id)


def get_renderer() -> TemplateRenderer:
    return _service("renderer", lambda: TemplateRenderer(catalog=get_catalog()))


def get_pdf_generator() -> PDFGenerator:
    return _service("pdf", lambda: PDFGenerator(renderer=get_renderer()))


def get_llm_service() -> LLMService:
    return _service("llm", LLMService)


def get_orchestrator() -> GenerationOrchestrator:
    return _service("orchestrator", lambda: GenerationOrchestrator(llm_service=get_llm_service()))


def get_cover_letter_generator() -> CoverLetterGenerator:
    return _service("cover_letter", lambda: CoverLetterGenerator(llm_service=get_llm_service()))


def get_store() -> InMemoryResumeStore:
    return _service("store", InMemoryResumeStore)


async def get_account(
    x_account_id: str = Header("anonymous", description="Account identifier"),
    x_account_name: str = Header("", description="Account display name"),
    x_account_email: str = Header("", description="Account email"),
) -> AccountIdentity:
    """Account identity supplied by the authenticating proxy."""
    return AccountIdentity(id=x_account_id, name=x_account_name, email=x_account_email)


def _generation_error(e: GenerationServiceError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@app.get(
    "/",
    response_model=RootResponse,
    status_code=status.HTTP_200_OK,
    summary="Root endpoint",
    description="Returns API information including name and version",
    tags=["health"]
)
async def root():
    """
    Root endpoint.

    Returns basic API information including name and version.
    """
    return RootResponse(message=settings.app_name, version=settings.app_version)


@app.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Checks if the API service is running and healthy",
    tags=["health"]
)
async def health():
    """
    Health check endpoint.

    Use this endpoint to verify the service is running correctly.
    """
    return HealthResponse(status="ok")


@app.get(
    "/api/v1/templates",
    response_model=TemplateCatalogResponse,
    response_model_by_alias=True,
    summary="List templates",
    description="Returns the closed template catalog and the default template id",
    tags=["templates"]
)
async def list_templates(catalog: TemplateCatalog = Depends(get_catalog)):
    """List the template catalog."""
    return TemplateCatalogResponse(
        default_template_id=catalog.default_id,
        templates=catalog.templates,
    )


@app.post(
    "/api/v1/resume/render",
    response_class=HTMLResponse,
    status_code=status.HTTP_200_OK,
    summary="Render resume preview",
    description="""
    Renders the resume data with the requested layout and returns the HTML document.

    Unknown or missing template ids render the default layout. The resolved id is
    returned in the `X-Resume-Template` header.
    """,
    tags=["templates"],
    responses={
        200: {
            "description": "Rendered HTML document",
            "headers": {
                "X-Resume-Template": {
                    "description": "Template actually used",
                    "schema": {"type": "string", "example": "classic_pro"}
                }
            }
        }
    }
)
async def render_resume(
    request: RenderRequest,
    account: AccountIdentity = Depends(get_account),
    renderer: TemplateRenderer = Depends(get_renderer),
):
    """
    Render resume preview.

    **Example:**
    ```json
    {
      "templateId": "modern_tech",
      "data": {"targetRole": "Backend Engineer", "personalDetails": {"firstName": "Jane"}}
    }
    ```
    """
    template_id = request.template_id or request.data.template_id
    rendered = renderer.render_document(request.data, template_id, account)
    return HTMLResponse(
        content=rendered.html,
        headers={"X-Resume-Template": rendered.template_id}
    )


@app.post(
    "/api/v1/resume/render/pdf",
    response_class=StreamingResponse,
    status_code=status.HTTP_200_OK,
    summary="Export resume as PDF",
    description="Renders the same HTML as the preview and converts it to an A4 PDF",
    tags=["templates"],
    responses={
        200: {
            "description": "Resume PDF file",
            "content": {
                "application/pdf": {
                    "schema": {
                        "type": "string",
                        "format": "binary"
                    }
                }
            }
        },
        500: {
            "description": "Internal server error - PDF generation failed",
            "model": ErrorResponse
        }
    }
)
async def export_resume_pdf(
    request: RenderRequest,
    account: AccountIdentity = Depends(get_account),
    pdf_generator: PDFGenerator = Depends(get_pdf_generator),
):
    """
    Export resume PDF.

    **Returns:**
    - PDF file as binary stream with filename `Resume_{templateId}.pdf`
    """
    template_id = request.template_id or request.data.template_id
    resolved = pdf_generator.renderer.catalog.resolve(template_id).id
    try:
        pdf_bytes = pdf_generator.generate_pdf(request.data, template_id, account)
    except (ImportError, OSError) as e:
        raise HTTPException(status_code=500, detail=f"PDF export unavailable: {str(e)}")

    return StreamingResponse(
        BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="Resume_{resolved}.pdf"',
            "X-Resume-Template": resolved
        }
    )


@app.post(
    "/api/v1/resume/generate",
    response_model=ParsedResponse,
    response_model_by_alias=True,
    summary="Generate resume with LLM",
    description="""
    Sends the resume data to the generation service and returns the decoded sections.

    **Modes:**
    - `MODE_A`: format an existing resume, given as exactly one of `attachment` or `resumeText`
    - `MODE_B`: create from the structured editor data

    When `preferences.photo` is on and a profile image is present, the image is sent
    as auxiliary context only. Missing sections come back as `null`.
    """,
    tags=["resume"],
    responses={
        400: {
            "description": "Bad request - Input contract violated",
            "model": ErrorResponse
        },
        502: {
            "description": "Generation service failed",
            "model": ErrorResponse
        }
    }
)
async def generate_resume(
    request: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Generate resume sections.

    **Example:**
    ```json
    {
      "mode": "MODE_A",
      "resumeText": "Jane Doe - Backend Engineer ...",
      "data": {"jobDescription": "We are hiring a Python developer..."}
    }
    ```

    **Note:** Generation typically takes 20-60 seconds.
    """
    try:
        return await orchestrator.generate(
            request.data,
            request.mode,
            attachment=request.attachment,
            resume_text=request.resume_text
        )
    except InputContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationServiceError as e:
        raise _generation_error(e)


@app.post(
    "/api/v1/resume/import",
    response_model=ImportResponse,
    response_model_by_alias=True,
    summary="Import an existing resume",
    description="""
    Parses an existing resume (attachment or pasted text) and maps the structured
    result back into the editor fields. Personal details and the item lists are
    replaced; job description, preferences and photo are kept.
    """,
    tags=["resume"],
    responses={
        400: {
            "description": "Bad request - Input contract violated",
            "model": ErrorResponse
        },
        422: {
            "description": "The reply carried no usable resume structure",
            "model": ErrorResponse
        },
        502: {
            "description": "Generation service failed",
            "model": ErrorResponse
        }
    }
)
async def import_resume(
    request: GenerateRequest,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Import an existing resume into editor fields."""
    try:
        imported, parsed = await orchestrator.import_resume(
            request.data,
            attachment=request.attachment,
            resume_text=request.resume_text
        )
    except ResumeImportError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except InputContractError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationServiceError as e:
        raise _generation_error(e)

    return ImportResponse(data=merge_import(request.data, imported), parsed=parsed)


@app.post(
    "/api/v1/resume/draft",
    response_model=DraftResponse,
    response_model_by_alias=True,
    summary="Save draft",
    description="Upserts the editor state for the account and template bucket (last write wins)",
    tags=["drafts"]
)
async def save_draft(
    request: DraftSaveRequest,
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Save the editor draft."""
    coordinator = DraftCoordinator(store, account.id)
    try:
        record = await coordinator.save_draft(request.template_id, request.content)
    except DraftStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return DraftResponse(draft=record)


@app.get(
    "/api/v1/resume/latest-draft",
    response_model=DraftResponse,
    response_model_by_alias=True,
    summary="Fetch latest draft",
    description="""
    Returns the most recently updated draft for the template bucket, or `null`.
    Without `templateId` the latest draft across all templates is returned.
    """,
    tags=["drafts"]
)
async def latest_draft(
    template_id: Optional[str] = Query(None, alias="templateId"),
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Fetch the latest editor draft."""
    coordinator = DraftCoordinator(store, account.id)
    try:
        record = await coordinator.get_latest_draft(template_id)
    except DraftStoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return DraftResponse(draft=record)


@app.post(
    "/api/v1/resumes",
    response_model=SaveResumeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Save resume",
    description="Saves a generated resume payload to the account library",
    tags=["library"]
)
async def create_resume(
    request: SaveResumeRequest,
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Save a resume to the library."""
    content = request.content if request.content is not None else {}
    record = await store.create_resume(account.id, request.template_id, request.title, content)
    logger.info("Resume saved account=%s id=%s template=%s", account.id, record.id, record.template_id)
    return SaveResumeResponse(id=record.id)


@app.get(
    "/api/v1/resumes",
    response_model=ResumeListResponse,
    response_model_by_alias=True,
    summary="List saved resumes",
    description="Lists the account's saved resumes, most recently written first",
    tags=["library"]
)
async def list_resumes(
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """List saved resumes."""
    return ResumeListResponse(resumes=await store.list_resumes(account.id))


@app.get(
    "/api/v1/resumes/{resume_id}",
    response_model=ResumeResponse,
    response_model_by_alias=True,
    summary="Get saved resume",
    tags=["library"],
    responses={
        404: {
            "description": "Not found",
            "model": ErrorResponse
        }
    }
)
async def get_resume(
    resume_id: str,
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Fetch a single saved resume with its content."""
    record = await store.get_resume(account.id, resume_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Resume not found: {resume_id}")
    return ResumeResponse(resume=record)


@app.put(
    "/api/v1/resumes/{resume_id}",
    response_model=OkResponse,
    summary="Update saved resume",
    description="Overwrites any of template id, title and content",
    tags=["library"],
    responses={
        400: {
            "description": "Nothing to update",
            "model": ErrorResponse
        },
        404: {
            "description": "Not found",
            "model": ErrorResponse
        }
    }
)
async def update_resume(
    resume_id: str,
    request: UpdateResumeRequest,
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Update a saved resume."""
    content = request.content if "content" in request.model_fields_set else UNSET
    if not request.template_id and not request.title and content is UNSET:
        raise HTTPException(status_code=400, detail="Nothing to update")
    if content is None:
        content = {}

    updated = await store.update_resume(
        account.id,
        resume_id,
        template_id=request.template_id,
        title=request.title,
        content=content,
    )
    if not updated:
        raise HTTPException(status_code=404, detail=f"Resume not found: {resume_id}")

    logger.info("Resume updated account=%s id=%s", account.id, resume_id)
    return OkResponse()


@app.delete(
    "/api/v1/resumes/{resume_id}",
    response_model=OkResponse,
    summary="Delete saved resume",
    tags=["library"]
)
async def delete_resume(
    resume_id: str,
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
):
    """Delete a saved resume (no error when it does not exist)."""
    await store.delete_resume(account.id, resume_id)
    return OkResponse()


@app.post(
    "/api/v1/cover-letter/generate",
    response_model=CoverLetterResponse,
    response_model_by_alias=True,
    summary="Generate cover letter with LLM",
    description="""
    Generates a full cover letter, a short version and a cold email for a job description.

    The latest resume JSON, when given, grounds the letter in real achievements.
    If the reply has no `COVER_LETTER_FULL:` section the whole reply is used as the letter.
    """,
    tags=["cover-letter"],
    responses={
        400: {
            "description": "Bad request - Invalid job description",
            "model": ErrorResponse
        },
        502: {
            "description": "Generation service failed",
            "model": ErrorResponse
        }
    }
)
async def generate_cover_letter(
    request: CoverLetterGenerateRequest,
    account: AccountIdentity = Depends(get_account),
    generator: CoverLetterGenerator = Depends(get_cover_letter_generator),
):
    """
    Generate cover letter.

    **Example:**
    ```json
    {
      "jobDescription": "We are looking for a Senior Backend Developer...",
      "title": "Acme application"
    }
    ```
    """
    try:
        return await generator.generate_cover_letter(
            account,
            request.job_description,
            template_id=request.template_id,
            title=request.title,
            resume_json=request.resume_json
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationServiceError as e:
        raise _generation_error(e)


class LiveEditor:
    """Message loop of one live-editing WebSocket connection."""

    def __init__(
        self,
        websocket: WebSocket,
        session: EditorSession,
        renderer: TemplateRenderer,
        orchestrator: GenerationOrchestrator,
    ):
        self.websocket = websocket
        self.session = session
        self.renderer = renderer
        self.orchestrator = orchestrator
        self._send_lock = asyncio.Lock()

    async def send(self, message: Dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json(message)

    async def send_preview(self) -> None:
        rendered = self.renderer.render_document(
            self.session.data, self.session.template_id, self.session.account
        )
        await self.send({
            "type": "preview",
            "templateId": rendered.template_id,
            "html": rendered.html,
        })

    async def restore_draft(self) -> None:
        restored = await self.session.restore_latest_draft()
        await self.send({
            "type": "draft",
            "restored": restored,
            "data": self.session.data.model_dump(mode="json", by_alias=True),
        })
        if restored:
            await self.send_preview()

    async def handle(self, message: Dict[str, Any]) -> None:
        kind = message.get("type")

        if kind == "edit":
            self.session.update(ResumeData.model_validate(message.get("data") or {}))
            await self.send_preview()
        elif kind == "view":
            self.session.set_view(EditorView(message.get("view", EditorView.CREATE.value)))
        elif kind == "template":
            self.session.select_template(message.get("templateId"))
            await self.send_preview()
        elif kind == "import":
            parsed = await self.session.import_resume(
                self.orchestrator,
                attachment=self._attachment(message),
                resume_text=message.get("resumeText"),
            )
            await self.send({
                "type": "imported",
                "data": self.session.data.model_dump(mode="json", by_alias=True),
                "parsed": parsed.model_dump(mode="json", by_alias=True),
            })
            await self.send_preview()
        elif kind == "generate":
            parsed = await self.session.generate(
                self.orchestrator,
                GenerationMode(message.get("mode", GenerationMode.CREATE_SCRATCH.value)),
                attachment=self._attachment(message),
                resume_text=message.get("resumeText"),
            )
            await self.send({"type": "result", "parsed": parsed.model_dump(mode="json", by_alias=True)})
        else:
            raise InputContractError(f"Unknown message type: {kind!r}")

    @staticmethod
    def _attachment(message: Dict[str, Any]) -> Optional[InlineData]:
        attachment = message.get("attachment")
        return InlineData.model_validate(attachment) if attachment else None


@app.websocket("/api/v1/editor/live")
async def live_editor(
    websocket: WebSocket,
    template_id: Optional[str] = Query(None, alias="templateId"),
    account: AccountIdentity = Depends(get_account),
    store: InMemoryResumeStore = Depends(get_store),
    renderer: TemplateRenderer = Depends(get_renderer),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
):
    """
    Live-editing session.

    Client messages: `edit` (full ResumeData), `view` (create / upload /
    cover_letter), `template`, `import`, `generate`. Server messages: `draft`
    (sent once the latest draft was fetched), `preview`, `imported`, `result`
    and `error`. Failures are reported as `error` messages and leave the
    session data as it was.
    """
    await websocket.accept()
    session = EditorSession(
        account,
        DraftCoordinator(store, account.id),
        template_id=template_id,
        quiet_period=settings.autosave_quiet_period,
    )
    editor = LiveEditor(websocket, session, renderer, orchestrator)
    restore_task = asyncio.ensure_future(editor.restore_draft())

    try:
        while True:
            message = await websocket.receive_json()
            if not isinstance(message, dict):
                await editor.send({"type": "error", "detail": "Messages must be JSON objects"})
                continue
            try:
                await editor.handle(message)
            except (ValidationError, ValueError, GenerationServiceError) as e:
                logger.warning("Live editor request failed type=%s: %s", message.get("type"), e)
                await editor.send({"type": "error", "detail": str(e)})
    except WebSocketDisconnect:
        logger.info("Live editor disconnected account=%s", account.id)
    finally:
        restore_task.cancel()
        await asyncio.gather(restore_task, return_exceptions=True)
        await session.close()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, log_level=settings.log_level.lower())
