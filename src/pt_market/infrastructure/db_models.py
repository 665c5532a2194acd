"""SQLAlchemy ORM model for provider_access_tokens (reference only).

Table is created by Alembic migration: alembic/versions/007_create_provider_access_tokens.py
Access goes through SqlTokenStore's raw SQL.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, SmallInteger, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.pt_common.database import Base


class ProviderAccessTokenModel(Base):
    __tablename__ = "provider_access_tokens"
    __table_args__ = (CheckConstraint("id = 1", name="ck_provider_access_tokens_singleton"),)

    id: Mapped[int] = mapped_column(SmallInteger, primary_key=True)
    token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )
