"""Journal schema: trades, strategies, journal_entries.

Revision ID: 001_journal_schema
Revises: None
Create Date: 2024-01-01 00:00:00.000000
"""
from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001_journal_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Strategies table
    op.create_table(
        "strategies",
        sa.Column("strategy_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("asset_class", sa.String(16), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("rules", sa.Text, server_default=""),
        sa.Column("target_win_rate", sa.Float, nullable=True),
        sa.Column("min_risk_reward", sa.Float, nullable=True),
        sa.Column("status", sa.String(8), nullable=False, server_default="active"),
        sa.Column("perf_total_trades", sa.Integer, server_default="0"),
        sa.Column("perf_win_rate", sa.Float, server_default="0"),
        sa.Column("perf_profit_factor", sa.Float, server_default="0"),
        sa.Column("perf_avg_risk_reward", sa.Float, server_default="0"),
        sa.Column("perf_max_drawdown", sa.Float, server_default="0"),
        sa.Column("perf_net_pnl", sa.Float, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_strategies_user_id", "strategies", ["user_id"])
    op.create_index("ix_strategies_created_at", "strategies", ["created_at"])

    # Trades table
    op.create_table(
        "trades",
        sa.Column("trade_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("symbol", sa.String(32), nullable=False),
        sa.Column("side", sa.String(8), nullable=False),
        sa.Column("strategy_id", sa.String(64), nullable=False),
        sa.Column("entry_price", sa.Numeric(24, 8), nullable=False),
        sa.Column("exit_price", sa.Numeric(24, 8), nullable=True),
        sa.Column("stop_loss", sa.Numeric(24, 8), nullable=False),
        sa.Column("target", sa.Numeric(24, 8), nullable=True),
        sa.Column("quantity", sa.Numeric(24, 8), nullable=False),
        sa.Column("fees", sa.Numeric(24, 8), server_default="0"),
        sa.Column("pnl", sa.Numeric(24, 8), nullable=True),
        sa.Column("pnl_percentage", sa.Float, nullable=True),
        sa.Column("status", sa.String(8), nullable=False, server_default="open"),
        sa.Column("entry_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("exit_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tags", JSONB, nullable=True),
        sa.Column("notes", sa.Text, server_default=""),
        sa.Column("emotion", sa.String(16), nullable=True),
        sa.Column("screenshots", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_trades_user_id", "trades", ["user_id"])
    op.create_index("ix_trades_status", "trades", ["status"])
    op.create_index("ix_trades_user_status_exit", "trades", ["user_id", "status", "exit_date"])
    op.create_index("ix_trades_user_strategy", "trades", ["user_id", "strategy_id"])
    op.create_index("ix_trades_created_at", "trades", ["created_at"])

    # Journal entries table
    op.create_table(
        "journal_entries",
        sa.Column("entry_id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("trade_id", sa.String(64), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("emotion", sa.String(16), nullable=False),
        sa.Column("stress_level", sa.Integer, nullable=False, server_default="5"),
        sa.Column("profitability", sa.Float, nullable=False, server_default="0"),
        sa.Column("entry", sa.Text, nullable=False),
        sa.Column("tags", JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_journal_entries_user_id", "journal_entries", ["user_id"])
    op.create_index("ix_journal_entries_user_date", "journal_entries", ["user_id", "date"])
    op.create_index("ix_journal_entries_trade_id", "journal_entries", ["trade_id"])


def downgrade() -> None:
    op.drop_table("journal_entries")
    op.drop_table("trades")
    op.drop_table("strategies")
