"""001: ledger trigger functions

Revision ID: 001
Revises: 
Create Date: 2026-10-19

fn_touch_updated_at       keeps updated_at current on mutable rows
fn_wallet_version_bump    every wallet write must advance version by exactly
                          one (the repository's compare-and-swap)
fn_reject_ledger_update   executed transactions are append-only
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # gen_random_uuid() for primary keys
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at := NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_wallet_version_bump()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.version <> OLD.version + 1 THEN
                RAISE EXCEPTION 'wallet % written without version bump (% -> %)',
                    OLD.user_id, OLD.version, NEW.version
                    USING ERRCODE = 'check_violation';
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_reject_ledger_update()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION '% rows are append-only', TG_TABLE_NAME
                USING ERRCODE = 'restrict_violation';
        END;
        $$ LANGUAGE plpgsql;
    """)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS fn_reject_ledger_update();")
    op.execute("DROP FUNCTION IF EXISTS fn_wallet_version_bump();")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
