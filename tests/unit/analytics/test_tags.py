"""Test trade tag frequency."""

import pytest

from tradelog.analytics.tags import top_trade_tags

USER = "user-1"


class TestTopTradeTags:
    @pytest.mark.asyncio
    async def test_ranked_by_count_then_name(self, store, make_trade):
        for tags in (["breakout", "news"], ["news"], ["gap", "breakout"], ["earnings"]):
            await store.add_trade(make_trade(tags=tags))

        ranked = await top_trade_tags(store, USER)
        assert [(t.tag, t.count) for t in ranked] == [
            ("breakout", 2), ("news", 2), ("earnings", 1), ("gap", 1),
        ]

    @pytest.mark.asyncio
    async def test_limit(self, store, make_trade):
        await store.add_trade(make_trade(tags=["a", "b", "c"]))
        assert len(await top_trade_tags(store, USER, limit=2)) == 2
