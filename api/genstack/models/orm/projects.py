"""
Project ORM model.

A unit of work optionally bound to one GitHub repository. The
github_sync_* columns are written only by the sync pipeline.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Enum as SQLAlchemyEnum, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from genstack.models.enums import SyncStatus
from genstack.models.orm.base import Base, JSONType


class Project(Base):
    """Project database table."""

    __tablename__ = "projects"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, default=None)
    owner_id: Mapped[UUID] = mapped_column(index=True)
    organization_id: Mapped[UUID | None] = mapped_column(default=None, index=True)

    # Repository binding
    github_enabled: Mapped[bool] = mapped_column(Boolean, default=False)
    github_repo_name: Mapped[str | None] = mapped_column(String(100), default=None)
    github_repo_url: Mapped[str | None] = mapped_column(String(500), default=None)
    github_account_id: Mapped[UUID | None] = mapped_column(default=None)

    # Sync state
    github_sync_status: Mapped[SyncStatus] = mapped_column(
        SQLAlchemyEnum(
            SyncStatus,
            name="sync_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SyncStatus.PENDING,
    )
    github_last_sync_at: Mapped[datetime | None] = mapped_column(DateTime, default=None)
    github_last_commit_sha: Mapped[str | None] = mapped_column(String(40), default=None)
    github_sync_errors: Mapped[list | None] = mapped_column(JSONType, default=None)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=datetime.utcnow,
    )
