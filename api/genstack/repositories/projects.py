"""
Project Repository

Database operations for projects, including the sync status fields
owned by the sync pipeline.
"""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update

from genstack.models.enums import SyncStatus
from genstack.models.orm import Project
from genstack.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for projects."""

    model = Project

    async def list_for_owner(self, owner_id: UUID) -> Sequence[Project]:
        """List a user's projects, newest first."""
        result = await self.session.execute(
            select(Project).where(Project.owner_id == owner_id).order_by(Project.created_at.desc())
        )
        return result.scalars().all()

    async def mark_synced(self, project_id: UUID, commit_sha: str) -> None:
        """Record a successful sync and clear previous errors."""
        await self.session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(
                github_sync_status=SyncStatus.SYNCED,
                github_last_sync_at=datetime.utcnow(),
                github_last_commit_sha=commit_sha,
                github_sync_errors=None,
            )
        )
        await self.session.flush()

    async def mark_sync_error(self, project_id: UUID, errors: list[str]) -> None:
        """Record a failed sync. The last commit SHA is left untouched."""
        await self.session.execute(
            update(Project)
            .where(Project.id == project_id)
            .values(
                github_sync_status=SyncStatus.ERROR,
                github_last_sync_at=datetime.utcnow(),
                github_sync_errors=errors,
            )
        )
        await self.session.flush()
