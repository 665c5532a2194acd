"""002: traders

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

Each row gets exactly one wallet (003), opened in the registration
transaction. Emails are stored lower-cased so uniqueness is case-blind.
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE users (
            id              UUID          PRIMARY KEY DEFAULT gen_random_uuid(),
            username        VARCHAR(64)   NOT NULL,
            email           VARCHAR(255)  NOT NULL,
            display_name    VARCHAR(100),
            password_hash   VARCHAR(255)  NOT NULL,
            is_active       BOOLEAN       NOT NULL DEFAULT TRUE,
            last_login_at   TIMESTAMPTZ,
            created_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username       UNIQUE (username),
            CONSTRAINT uq_users_email          UNIQUE (email),
            CONSTRAINT ck_users_username_chars CHECK (username ~ '^[A-Za-z0-9_]{3,64}$'),
            CONSTRAINT ck_users_email_lower    CHECK (email = LOWER(email)),
            CONSTRAINT ck_users_display_name   CHECK (display_name IS NULL OR LENGTH(TRIM(display_name)) > 0)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_touch
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
