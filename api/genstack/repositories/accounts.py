"""
GitHub Account Repository

Database operations for linked GitHub accounts.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select, update

from genstack.models.orm import GitHubAccount
from genstack.repositories.base import BaseRepository


class GitHubAccountRepository(BaseRepository[GitHubAccount]):
    """Repository for linked GitHub accounts."""

    model = GitHubAccount

    async def list_for_user(self, user_id: UUID, active_only: bool = True) -> Sequence[GitHubAccount]:
        """List a user's accounts, default account first."""
        query = select(GitHubAccount).where(GitHubAccount.user_id == user_id)
        if active_only:
            query = query.where(GitHubAccount.is_active.is_(True))
        query = query.order_by(GitHubAccount.is_default.desc(), GitHubAccount.created_at)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def get_by_github_id(self, github_id: int) -> GitHubAccount | None:
        return await self.get(github_id=github_id)

    async def count_for_user(self, user_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(GitHubAccount.id)).where(GitHubAccount.user_id == user_id)
        )
        return result.scalar() or 0

    async def clear_default(self, user_id: UUID) -> None:
        """Unset the default flag on every account of a user."""
        await self.session.execute(
            update(GitHubAccount)
            .where(GitHubAccount.user_id == user_id)
            .values(is_default=False)
        )
