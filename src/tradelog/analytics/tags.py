"""Most used trade tags."""

from __future__ import annotations

from collections import Counter

from tradelog.core.models import TagCount
from tradelog.core.scope import require_user
from tradelog.storage.interfaces import IRecordStore


async def top_trade_tags(
    store: IRecordStore, user_id: str | None, limit: int = 10,
) -> list[TagCount]:
    """Tag frequency across all of a user's trades, most used first."""
    uid = require_user(user_id)
    counts: Counter = Counter(
        tag for tags in await store.trade_tag_lists(uid) for tag in tags
    )
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [TagCount(tag=tag, count=count) for tag, count in ranked[:limit]]
