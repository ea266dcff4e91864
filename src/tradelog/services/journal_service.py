"""Journal entry CRUD."""

from __future__ import annotations

import logging

from tradelog.core.clock import IClock, WallClock
from tradelog.core.errors import NotFoundError
from tradelog.core.models import JournalEntry, JournalFilters, Page
from tradelog.core.scope import require_user
from tradelog.storage.interfaces import IRecordStore

from .inputs import JournalChanges, JournalDraft

logger = logging.getLogger(__name__)


class JournalService:
    def __init__(self, store: IRecordStore, clock: IClock | None = None) -> None:
        self._store = store
        self._clock = clock or WallClock()

    async def _require_trade(self, uid: str, trade_id: str | None) -> None:
        if trade_id is not None and await self._store.get_trade(uid, trade_id) is None:
            raise NotFoundError("Trade", trade_id)

    async def get_entry(self, user_id: str | None, entry_id: str) -> JournalEntry:
        uid = require_user(user_id)
        entry = await self._store.get_journal_entry(uid, entry_id)
        if entry is None:
            raise NotFoundError("Journal entry", entry_id)
        return entry

    async def list_entries(
        self, user_id: str | None, filters: JournalFilters | None = None,
    ) -> Page[JournalEntry]:
        """Entries newest first, with the linked trade populated."""
        uid = require_user(user_id)
        filters = filters or JournalFilters()
        query = {
            "window": filters.window,
            "emotion": filters.emotion,
            "tags": filters.tags or None,
        }
        items = await self._store.journal_entries(
            uid,
            offset=(filters.page - 1) * filters.limit,
            limit=filters.limit,
            **query,
        )
        total = await self._store.count_journal_entries(uid, **query)
        return Page[JournalEntry](
            items=items, total=total, page=filters.page, limit=filters.limit,
        )

    async def create_entry(self, user_id: str | None, draft: JournalDraft) -> JournalEntry:
        uid = require_user(user_id)
        await self._require_trade(uid, draft.trade_id)
        now = self._clock.now()
        entry = JournalEntry(
            user_id=uid, created_at=now, updated_at=now, **draft.model_dump(),
        )
        entry = await self._store.add_journal_entry(entry)
        logger.info("Created journal entry %s (%s)", entry.entry_id, entry.emotion.value)
        return entry

    async def update_entry(
        self, user_id: str | None, entry_id: str, changes: JournalChanges,
    ) -> JournalEntry:
        uid = require_user(user_id)
        existing = await self.get_entry(uid, entry_id)
        updates = changes.model_dump(exclude_unset=True)
        if updates.get("trade_id") is not None:
            await self._require_trade(uid, updates["trade_id"])
        entry = existing.model_copy(
            update={**updates, "trade": None, "updated_at": self._clock.now()},
        )
        return await self._store.save_journal_entry(entry)

    async def delete_entry(self, user_id: str | None, entry_id: str) -> None:
        uid = require_user(user_id)
        if not await self._store.delete_journal_entry(uid, entry_id):
            raise NotFoundError("Journal entry", entry_id)
