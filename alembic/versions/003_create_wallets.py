"""003: create wallets table

Revision ID: 003
Revises: 002
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE wallets (
            user_id          UUID           PRIMARY KEY REFERENCES users (id) ON DELETE CASCADE,
            virtual_cash     NUMERIC(18, 2) NOT NULL,
            mis_margin_used  NUMERIC(18, 2) NOT NULL DEFAULT 0,
            realized_pnl     NUMERIC(18, 2) NOT NULL DEFAULT 0,
            currency         VARCHAR(3)     NOT NULL DEFAULT 'INR',
            version          INTEGER        NOT NULL DEFAULT 0,
            created_at       TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            updated_at       TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_wallets_cash_gte_0    CHECK (virtual_cash >= 0),
            CONSTRAINT ck_wallets_margin_gte_0  CHECK (mis_margin_used >= 0),
            CONSTRAINT ck_wallets_currency      CHECK (currency = 'INR')
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_updated_at
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("""
        CREATE TRIGGER trg_wallets_version_bump
            BEFORE UPDATE ON wallets
            FOR EACH ROW EXECUTE FUNCTION fn_wallet_version_bump();
    """)
    op.execute("COMMENT ON TABLE wallets IS 'Virtual cash per user, amounts in rupees';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS wallets CASCADE;")
