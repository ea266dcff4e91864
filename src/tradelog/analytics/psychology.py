"""Emotion vs outcome correlation.

Journal entries linked to a trade are grouped by the emotion the trader
recorded; each group reports the mean P/L of the linked trades, the mean
stress level and the entry count.  When a user has no journal entries at
all in the window, the same view is approximated from the mood tag on the
trades themselves.  Results always say which path produced them
(``source``) so callers never have to guess from the shape.

Grouping order: rows are sorted by count descending, then emotion name.
The dominant mood uses the same rule, so ties resolve alphabetically.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Iterable, Sequence

from tradelog.core.enums import Emotion, InsightSource
from tradelog.core.models import (
    DateRange,
    EmotionCorrelation,
    EmotionPnLRow,
    EmotionProfitability,
    JournalEntry,
    PsychologyInsights,
    Trade,
)
from tradelog.core.scope import require_user
from tradelog.observability.metrics import time_aggregation
from tradelog.storage.interfaces import IRecordStore

from .stats import average

logger = logging.getLogger(__name__)

DEFAULT_MOOD = "neutral"
TOP_TAG_LIMIT = 5


def _ranked(counts: Counter) -> list[tuple[str, int]]:
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def dominant_mood(emotions: Iterable[str]) -> str | None:
    """Most frequent emotion; ties go to the alphabetically first."""
    ranked = _ranked(Counter(emotions))
    return ranked[0][0] if ranked else None


def mindset_score(entries: Sequence[JournalEntry]) -> float:
    """Percent of entries recorded as disciplined; 0 without entries."""
    if not entries:
        return 0.0
    disciplined = sum(1 for e in entries if e.emotion == Emotion.DISCIPLINED)
    return disciplined / len(entries) * 100


def top_tags(tag_lists: Iterable[Iterable[str]], limit: int = TOP_TAG_LIMIT) -> list[str]:
    counts: Counter = Counter(tag for tags in tag_lists for tag in tags)
    return [tag for tag, _ in _ranked(counts)[:limit]]


def _pnl_mean(trades: Sequence[Trade]) -> float:
    # Open trades have no pnl yet and are left out of the mean
    return average([float(t.pnl) for t in trades if t.pnl is not None])


def correlate_journal(entries: Sequence[JournalEntry]) -> list[EmotionPnLRow]:
    """Rows from journal entries that have a populated linked trade."""
    groups: dict[str, list[JournalEntry]] = defaultdict(list)
    for entry in entries:
        if entry.trade is None:
            continue
        groups[entry.emotion.value].append(entry)

    rows = [
        EmotionPnLRow(
            emotion=emotion,
            avg_pnl=_pnl_mean([e.trade for e in group]),
            avg_stress_level=average([float(e.stress_level) for e in group]),
            count=len(group),
        )
        for emotion, group in groups.items()
    ]
    rows.sort(key=lambda r: (-r.count, r.emotion))
    return rows


def correlate_trade_moods(trades: Sequence[Trade]) -> list[EmotionPnLRow]:
    """Rows from the mood tag recorded on trades; no stress data exists."""
    groups: dict[str, list[Trade]] = defaultdict(list)
    for trade in trades:
        if trade.emotion is None:
            continue
        groups[trade.emotion.value].append(trade)

    rows = [
        EmotionPnLRow(
            emotion=emotion,
            avg_pnl=_pnl_mean(group),
            avg_stress_level=None,
            count=len(group),
        )
        for emotion, group in groups.items()
    ]
    rows.sort(key=lambda r: (-r.count, r.emotion))
    return rows


def _profitability(values: dict[str, list[float]]) -> list[EmotionProfitability]:
    rows = [
        EmotionProfitability(emotion=emotion, avg_profitability=average(vals))
        for emotion, vals in values.items()
    ]
    rows.sort(key=lambda r: (-r.avg_profitability, r.emotion))
    return rows


def journal_insights(entries: Sequence[JournalEntry]) -> PsychologyInsights:
    profitability: dict[str, list[float]] = defaultdict(list)
    for entry in entries:
        profitability[entry.emotion.value].append(entry.profitability)

    common = dominant_mood(e.emotion.value for e in entries)
    return PsychologyInsights(
        source=InsightSource.JOURNAL,
        dominant_mood=common or DEFAULT_MOOD,
        most_common_emotion=common,
        top_tags=top_tags(e.tags for e in entries),
        emotion_profitability=_profitability(profitability),
        mindset_score=mindset_score(entries),
    )


def trade_mood_insights(trades: Sequence[Trade]) -> PsychologyInsights:
    tagged = [t for t in trades if t.emotion is not None]
    profitability: dict[str, list[float]] = defaultdict(list)
    for trade in tagged:
        if trade.pnl is not None:
            profitability[trade.emotion.value].append(float(trade.pnl))

    common = dominant_mood(t.emotion.value for t in tagged)
    return PsychologyInsights(
        source=InsightSource.TRADE_TAGS,
        dominant_mood=common or DEFAULT_MOOD,
        most_common_emotion=common,
        top_tags=top_tags(t.tags for t in trades),
        emotion_profitability=_profitability(profitability),
        mindset_score=0.0,
    )


class PsychologyEngine:
    """Journal-based psychology views with a trade-mood fallback."""

    def __init__(self, store: IRecordStore) -> None:
        self._store = store

    async def emotion_correlation(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> EmotionCorrelation:
        """Emotion vs P/L rows, tagged with the record set they came from."""
        uid = require_user(user_id)
        with time_aggregation("emotion_correlation"):
            if await self._store.count_journal_entries(uid, window=window) == 0:
                trades = await self._store.trades_entered(uid, entry_window=window)
                logger.debug("No journal entries for %s, using trade mood tags", uid)
                return EmotionCorrelation(
                    source=InsightSource.TRADE_TAGS,
                    rows=correlate_trade_moods(trades),
                )

            entries = await self._store.journal_entries(
                uid, window=window, linked_only=True,
            )
            return EmotionCorrelation(
                source=InsightSource.JOURNAL,
                rows=correlate_journal(entries),
            )

    async def insights(
        self, user_id: str | None, window: DateRange | None = None,
    ) -> PsychologyInsights:
        """Dominant mood, top tags, emotion profitability and mindset score."""
        uid = require_user(user_id)
        with time_aggregation("psychology_insights"):
            entries = await self._store.journal_entries(uid, window=window)
            if entries:
                return journal_insights(entries)
            trades = await self._store.trades_entered(uid, entry_window=window)
            return trade_mood_insights(trades)
