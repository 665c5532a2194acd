"""005: create transactions table

Revision ID: 005
Revises: 004
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "005"
down_revision: Union[str, None] = "004"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transactions (
            id                  UUID           PRIMARY KEY,
            user_id             UUID           NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            type                VARCHAR(4)     NOT NULL,
            product_type        VARCHAR(8)     NOT NULL,
            stock_symbol        VARCHAR(32)    NOT NULL,
            stock_name          TEXT           NOT NULL DEFAULT '',
            exchange            VARCHAR(8)     NOT NULL,
            quantity            INTEGER        NOT NULL,
            price               NUMERIC(18, 2) NOT NULL,
            total_amount        NUMERIC(20, 2) NOT NULL,
            net_amount          NUMERIC(20, 2) NOT NULL,
            realized_pnl        NUMERIC(20, 2),
            balance_after       NUMERIC(18, 2) NOT NULL,
            status              VARCHAR(16)    NOT NULL DEFAULT 'EXECUTED',
            is_auto_square_off  BOOLEAN        NOT NULL DEFAULT FALSE,
            executed_at         TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_transactions_type        CHECK (type IN ('BUY', 'SELL')),
            CONSTRAINT ck_transactions_product     CHECK (product_type IN ('CNC', 'MIS')),
            CONSTRAINT ck_transactions_quantity    CHECK (quantity > 0),
            CONSTRAINT ck_transactions_price       CHECK (price > 0),
            CONSTRAINT ck_transactions_balance     CHECK (balance_after >= 0),
            CONSTRAINT ck_transactions_status      CHECK (status = 'EXECUTED')
        );
    """)
    op.execute(
        "CREATE INDEX idx_transactions_user_time ON transactions (user_id, executed_at DESC);"
    )
    op.execute("""
        CREATE TRIGGER trg_transactions_append_only
            BEFORE UPDATE ON transactions
            FOR EACH ROW EXECUTE FUNCTION fn_reject_ledger_update();
    """)
    op.execute("COMMENT ON TABLE transactions IS 'Append-only order executions';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transactions CASCADE;")
