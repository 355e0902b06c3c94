"""Draft persistence and debounced autosave for live editing sessions."""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Set
from pydantic import ValidationError
from app.exceptions import DraftStoreError, ResumeForgeError
from app.models.record_models import DraftRecord
from app.models.request_models import GenerationMode
from app.models.resume_models import AccountIdentity, InlineData, ResumeData
from app.models.response_models import ParsedResponse
from app.services.draft_store import DraftRepository
from app.services.resume_importer import ResumeImport, merge_import

logger = logging.getLogger(__name__)

DEFAULT_QUIET_PERIOD = 1.2


class EditorView(str, Enum):
    """Views of the editor; only CREATE autosaves."""

    CREATE = "create"
    UPLOAD = "upload"
    COVER_LETTER = "cover_letter"


class DraftCoordinator:
    """Save and fetch drafts for one account, keyed by template bucket."""

    def __init__(self, repository: DraftRepository, account_id: str):
        """
        Initialize the coordinator.

        Args:
            repository: Persistence collaborator
            account_id: Owner of the drafts
        """
        self.repository = repository
        self.account_id = account_id

    async def save_draft(self, template_id: Optional[str], content: ResumeData) -> DraftRecord:
        """
        Upsert the draft for the template bucket (last write wins).

        Args:
            template_id: Template bucket; None or "" is the default bucket
            content: Full editor state

        Returns:
            DraftRecord: Stored record

        Raises:
            DraftStoreError: If the repository fails
        """
        bucket = template_id or ""
        try:
            record = await self.repository.upsert_draft(self.account_id, bucket, content.to_content())
        except ResumeForgeError:
            raise
        except Exception as e:
            raise DraftStoreError(f"Failed to save draft: {e}") from e

        logger.info(
            "Draft saved account=%s template=%s version=%d",
            self.account_id, bucket or "default", record.version
        )
        return record

    async def get_latest_draft(self, template_id: Optional[str] = None) -> Optional[DraftRecord]:
        """
        Most recently updated draft for the bucket, or None.

        Raises:
            DraftStoreError: If the repository fails
        """
        try:
            return await self.repository.latest_draft(self.account_id, template_id or "")
        except ResumeForgeError:
            raise
        except Exception as e:
            raise DraftStoreError(f"Failed to fetch draft: {e}") from e

    async def fetch_latest_or_none(self, template_id: Optional[str] = None) -> Optional[DraftRecord]:
        """Like get_latest_draft, but any failure means "start empty"."""
        try:
            return await self.get_latest_draft(template_id)
        except DraftStoreError as e:
            logger.warning("Draft fetch failed, starting empty: %s", e)
            return None


class AutosaveDebouncer:
    """
    Persist the latest snapshot once edits pause for ``quiet_period`` seconds.

    Each change restarts the timer. Nothing is scheduled while suppressed
    (generation in flight or a non-editor view); saves already running are
    left to finish. Save errors are logged and dropped.
    """

    def __init__(
        self,
        save: Callable[[ResumeData], Awaitable[Any]],
        quiet_period: float = DEFAULT_QUIET_PERIOD
    ):
        self._save = save
        self.quiet_period = quiet_period
        self.view = EditorView.CREATE
        self.generating = False
        self._pending: Optional[ResumeData] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def suppressed(self) -> bool:
        return self.view != EditorView.CREATE or self.generating

    @property
    def has_pending_save(self) -> bool:
        return self._timer is not None

    def notify_change(self, data: ResumeData) -> None:
        """Record a new snapshot and restart the quiet period."""
        self._pending = data.model_copy(deep=True)
        self._reschedule()

    def set_view(self, view: EditorView) -> None:
        self.view = view
        self._reschedule()

    def set_generating(self, generating: bool) -> None:
        self.generating = generating
        self._reschedule()

    def cancel(self) -> None:
        """Drop the scheduled save, if any."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def drain(self) -> None:
        """Wait for saves that are already running."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def _reschedule(self) -> None:
        self.cancel()
        if self.suppressed or self._pending is None:
            return
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.quiet_period, self._fire)

    def _fire(self) -> None:
        self._timer = None
        snapshot, self._pending = self._pending, None
        if snapshot is None or self.suppressed:
            return
        task = asyncio.ensure_future(self._run_save(snapshot))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _run_save(self, snapshot: ResumeData) -> None:
        try:
            await self._save(snapshot)
        except Exception as e:
            logger.warning("Autosave failed: %s", e)


class EditorSession:
    """
    One live editing session: the resume data, its drafts and autosave.

    Data imported during the session always wins over a draft fetched from
    storage, even when the fetch resolves afterwards.
    """

    def __init__(
        self,
        account: AccountIdentity,
        coordinator: DraftCoordinator,
        template_id: Optional[str] = None,
        quiet_period: float = DEFAULT_QUIET_PERIOD
    ):
        self.account = account
        self.coordinator = coordinator
        self.template_id = template_id
        self.data = ResumeData.for_account(account, template_id)
        self.imported = False
        self.autosave = AutosaveDebouncer(self._save_snapshot, quiet_period)

    async def _save_snapshot(self, snapshot: ResumeData) -> None:
        await self.coordinator.save_draft(self.template_id, snapshot)

    async def restore_latest_draft(self) -> bool:
        """
        Seed the session from the latest stored draft.

        Returns:
            bool: True when the draft replaced the in-memory data
        """
        draft = await self.coordinator.fetch_latest_or_none(self.template_id)
        if self.imported:
            logger.info("Skipping draft restore; imported data already loaded")
            return False
        if draft is None:
            return False

        try:
            restored = ResumeData.model_validate(draft.content)
        except ValidationError as e:
            logger.warning("Ignoring unreadable draft %s: %s", draft.id, e)
            return False

        restored.template_id = self.template_id or restored.template_id
        self.data = restored
        return True

    def update(self, data: ResumeData) -> None:
        """Replace the editor state after a user edit."""
        data.template_id = self.template_id
        self.data = data
        self.autosave.notify_change(self.data)

    def apply_import(self, imported: ResumeImport) -> None:
        """Merge fields recovered from an imported resume into the editor."""
        self.data = merge_import(self.data, imported)
        self.imported = True
        self.autosave.notify_change(self.data)

    def select_template(self, template_id: Optional[str]) -> None:
        self.template_id = template_id
        self.data.template_id = template_id
        self.autosave.notify_change(self.data)

    def set_view(self, view: EditorView) -> None:
        self.autosave.set_view(view)

    async def generate(
        self,
        orchestrator,
        mode: GenerationMode,
        attachment: Optional[InlineData] = None,
        resume_text: Optional[str] = None
    ) -> ParsedResponse:
        """
        Run a generation with autosave suppressed.

        Errors propagate; the session data is left untouched either way.
        """
        self.autosave.set_generating(True)
        try:
            return await orchestrator.generate(
                self.data, mode, attachment=attachment, resume_text=resume_text
            )
        finally:
            self.autosave.set_generating(False)

    async def import_resume(
        self,
        orchestrator,
        attachment: Optional[InlineData] = None,
        resume_text: Optional[str] = None
    ) -> ParsedResponse:
        """
        Parse an existing resume and load it into the editor.

        Raises:
            InputContractError: If neither or both sources are given
            ResumeImportError: If the reply has no structured resume JSON
            GenerationServiceError: If the generation service fails
        """
        self.autosave.set_generating(True)
        try:
            imported, parsed = await orchestrator.import_resume(
                self.data, attachment=attachment, resume_text=resume_text
            )
        finally:
            self.autosave.set_generating(False)

        self.apply_import(imported)
        return parsed

    async def close(self) -> None:
        """Stop scheduling saves and let running ones complete."""
        self.autosave.cancel()
        await self.autosave.drain()
