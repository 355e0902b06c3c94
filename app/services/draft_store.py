"""Persistence collaborator interfaces and an in-memory implementation."""

import copy
import itertools
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
from app.models.record_models import DraftRecord, SavedResumeRecord, SavedResumeSummary

# Sentinel for "field not supplied" in partial updates
UNSET: Any = object()


class DraftRepository(Protocol):
    """Storage of autosaved drafts, one per (account, template bucket)."""

    async def upsert_draft(self, account_id: str, template_bucket: str, content: Dict[str, Any]) -> DraftRecord:
        ...

    async def latest_draft(self, account_id: str, template_bucket: str) -> Optional[DraftRecord]:
        ...


class ResumeRepository(Protocol):
    """Storage of resumes saved to the account library."""

    async def create_resume(self, account_id: str, template_id: str, title: str, content: Any) -> SavedResumeRecord:
        ...

    async def list_resumes(self, account_id: str) -> List[SavedResumeSummary]:
        ...

    async def get_resume(self, account_id: str, resume_id: str) -> Optional[SavedResumeRecord]:
        ...

    async def update_resume(
        self,
        account_id: str,
        resume_id: str,
        template_id: Optional[str] = None,
        title: Optional[str] = None,
        content: Any = UNSET,
    ) -> bool:
        ...

    async def delete_resume(self, account_id: str, resume_id: str) -> None:
        ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryResumeStore:
    """
    Process-local store implementing both repositories.

    Stored content is deep-copied on the way in and out, like a JSON column.
    """

    def __init__(self):
        self._drafts: Dict[Tuple[str, str], DraftRecord] = {}
        self._draft_order: Dict[Tuple[str, str], int] = {}
        self._resumes: Dict[str, Tuple[str, SavedResumeRecord, int]] = {}
        self._sequence = itertools.count(1)

    # ---- drafts ----

    async def upsert_draft(self, account_id: str, template_bucket: str, content: Dict[str, Any]) -> DraftRecord:
        """Insert or overwrite the draft for the bucket (last write wins)."""
        key = (account_id, template_bucket or "")
        now = _now()
        existing = self._drafts.get(key)

        if existing is None:
            record = DraftRecord(
                id=f"draft-{uuid.uuid4()}",
                template_id=key[1],
                content=copy.deepcopy(content),
                created_at=now,
                updated_at=now,
            )
        else:
            record = existing.model_copy(update={
                "content": copy.deepcopy(content),
                "updated_at": now,
                "version": existing.version + 1,
            })

        self._drafts[key] = record
        self._draft_order[key] = next(self._sequence)
        return record.model_copy(deep=True)

    async def latest_draft(self, account_id: str, template_bucket: str) -> Optional[DraftRecord]:
        """
        Most recently updated draft for the account.

        An empty bucket matches drafts of every template.
        """
        bucket = template_bucket or ""
        candidates = [
            key for key in self._drafts
            if key[0] == account_id and (bucket == "" or key[1] == bucket)
        ]
        if not candidates:
            return None
        latest = max(candidates, key=lambda k: self._draft_order[k])
        return self._drafts[latest].model_copy(deep=True)

    # ---- saved resumes ----

    async def create_resume(self, account_id: str, template_id: str, title: str, content: Any) -> SavedResumeRecord:
        record = SavedResumeRecord(
            id=f"res-{uuid.uuid4()}",
            template_id=template_id,
            title=title,
            content=copy.deepcopy(content),
            created_at=_now(),
        )
        self._resumes[record.id] = (account_id, record, next(self._sequence))
        return record.model_copy(deep=True)

    async def list_resumes(self, account_id: str) -> List[SavedResumeSummary]:
        """Saved resumes for the account, most recently written first."""
        owned = [
            (order, record) for owner, record, order in self._resumes.values()
            if owner == account_id
        ]
        owned.sort(key=lambda item: item[0], reverse=True)
        return [
            SavedResumeSummary(
                id=record.id,
                template_id=record.template_id,
                title=record.title,
                created_at=record.created_at,
            )
            for _, record in owned
        ]

    async def get_resume(self, account_id: str, resume_id: str) -> Optional[SavedResumeRecord]:
        entry = self._resumes.get(resume_id)
        if entry is None or entry[0] != account_id:
            return None
        return entry[1].model_copy(deep=True)

    async def update_resume(
        self,
        account_id: str,
        resume_id: str,
        template_id: Optional[str] = None,
        title: Optional[str] = None,
        content: Any = UNSET,
    ) -> bool:
        entry = self._resumes.get(resume_id)
        if entry is None or entry[0] != account_id:
            return False

        changes: Dict[str, Any] = {}
        if template_id:
            changes["template_id"] = template_id
        if title:
            changes["title"] = title
        if content is not UNSET:
            changes["content"] = copy.deepcopy(content)

        record = entry[1].model_copy(update=changes)
        self._resumes[resume_id] = (account_id, record, next(self._sequence))
        return True

    async def delete_resume(self, account_id: str, resume_id: str) -> None:
        entry = self._resumes.get(resume_id)
        if entry is not None and entry[0] == account_id:
            del self._resumes[resume_id]
