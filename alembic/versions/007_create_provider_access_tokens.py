"""007: create provider_access_tokens table

Revision ID: 007
Revises: 006
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op

revision: str = "007"
down_revision: Union[str, None] = "006"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE provider_access_tokens (
            id          SMALLINT     PRIMARY KEY,
            token       TEXT         NOT NULL,
            expires_at  TIMESTAMPTZ  NOT NULL,
            updated_at  TIMESTAMPTZ  NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_provider_access_tokens_singleton CHECK (id = 1)
        );
    """)
    op.execute(
        "COMMENT ON TABLE provider_access_tokens IS "
        "'Shared market-data token, expires 05:59 Asia/Kolkata';"
    )


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS provider_access_tokens CASCADE;")
