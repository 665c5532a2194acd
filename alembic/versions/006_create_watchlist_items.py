"""006: create watchlist_items table

Revision ID: 006
Revises: 005
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "006"
down_revision: Union[str, None] = "005"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE watchlist_items (
            id            UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id       UUID         NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            stock_symbol  VARCHAR(32)  NOT NULL,
            stock_name    TEXT         NOT NULL DEFAULT '',
            exchange      VARCHAR(8)   NOT NULL,
            isin          VARCHAR(12),
            added_at      TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_watchlist_user_symbol UNIQUE (user_id, stock_symbol, exchange),
            CONSTRAINT ck_watchlist_exchange    CHECK (exchange IN ('NSE', 'BSE'))
        );
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS watchlist_items CASCADE;")
