"""
GitHub Account ORM model.

One linked GitHub identity. The access token is stored encrypted and is
only decrypted transiently by the client cache.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from genstack.models.orm.base import Base, JSONType


class GitHubAccount(Base):
    """Linked GitHub account database table."""

    __tablename__ = "github_accounts"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(index=True)
    organization_id: Mapped[UUID | None] = mapped_column(default=None, index=True)

    nickname: Mapped[str] = mapped_column(String(50))
    username: Mapped[str] = mapped_column(String(39))
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    avatar_url: Mapped[str | None] = mapped_column(String(500), default=None)

    # Fernet ciphertext produced by encrypt_secret
    token: Mapped[str] = mapped_column(Text)

    github_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    github_login: Mapped[str] = mapped_column(String(39))
    github_name: Mapped[str | None] = mapped_column(String(255), default=None)
    github_type: Mapped[str] = mapped_column(String(20), default="User")

    scopes: Mapped[list] = mapped_column(JSONType, default=list)
    can_create_repo: Mapped[bool] = mapped_column(Boolean, default=False)
    can_create_private_repo: Mapped[bool] = mapped_column(Boolean, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    validation_status: Mapped[str] = mapped_column(String(20), default="pending")
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    last_validated_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )

    __table_args__ = (
        Index("ix_github_accounts_user_active", "user_id", "is_active"),
        Index("ix_github_accounts_user_default", "user_id", "is_default"),
    )
