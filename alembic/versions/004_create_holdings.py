"""004: create holdings table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE holdings (
            id              UUID           PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id         UUID           NOT NULL REFERENCES users (id) ON DELETE CASCADE,
            stock_symbol    VARCHAR(32)    NOT NULL,
            stock_name      TEXT           NOT NULL DEFAULT '',
            exchange        VARCHAR(8)     NOT NULL,
            product_type    VARCHAR(8)     NOT NULL,
            quantity        INTEGER        NOT NULL,
            total_invested  NUMERIC(20, 4) NOT NULL,
            average_price   NUMERIC(18, 6) NOT NULL,
            margin_used     NUMERIC(18, 2) NOT NULL DEFAULT 0,
            last_price      NUMERIC(18, 2),
            trade_date      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_holdings_position     UNIQUE (user_id, stock_symbol, exchange, product_type),
            CONSTRAINT ck_holdings_quantity_gt_0 CHECK (quantity > 0),
            CONSTRAINT ck_holdings_invested_gte_0 CHECK (total_invested >= 0),
            CONSTRAINT ck_holdings_margin_gte_0 CHECK (margin_used >= 0),
            CONSTRAINT ck_holdings_exchange     CHECK (exchange IN ('NSE', 'BSE')),
            CONSTRAINT ck_holdings_product      CHECK (product_type IN ('CNC', 'MIS'))
        );
    """)
    op.execute(
        "CREATE INDEX idx_holdings_mis_trade_date ON holdings (user_id, trade_date) "
        "WHERE product_type = 'MIS';"
    )
    op.execute("""
        CREATE TRIGGER trg_holdings_updated_at
            BEFORE UPDATE ON holdings
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS holdings CASCADE;")
