"""
Sync Lock Service

Redis-based locks that keep two syncs of the same project branch from
running at once, across every API process sharing the Redis instance.

Lock Flow:
1. A sync attempts to acquire the (project, branch) key with SET NX EX
2. If the key exists, the sync is refused with SyncInProgressError
3. The TTL releases the key if the holder crashes mid-sync
4. On completion (success or failure) the holder deletes its own key

GitHub's non-forced ref update stays the final guard against writers that
do not go through this service.
"""

import json
import logging
import secrets
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

import redis.asyncio as redis

from genstack.config import get_settings
from genstack.core.exceptions import SyncInProgressError

logger = logging.getLogger(__name__)

# Redis key prefix
LOCK_KEY_PREFIX = "genstack:lock:sync:"


def lock_key(project_id: UUID, branch: str) -> str:
    return f"{LOCK_KEY_PREFIX}{project_id}:{branch}"


@dataclass
class SyncLockInfo:
    """Holder of a sync lock."""

    token: str
    project_id: str
    branch: str
    locked_at: datetime
    expires_at: datetime

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "project_id": self.project_id,
            "branch": self.branch,
            "locked_at": self.locked_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncLockInfo":
        return cls(
            token=data["token"],
            project_id=data["project_id"],
            branch=data["branch"],
            locked_at=datetime.fromisoformat(data["locked_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
        )


class SyncLockRegistry:
    """
    Per-(project, branch) sync locks stored in Redis.

    Each held lock is one Redis key; nothing is kept in process memory
    once the lock is released or expires.
    """

    def __init__(self, redis_client: redis.Redis | None = None, ttl_seconds: int | None = None):
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    async def _get_redis(self) -> redis.Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            settings = get_settings()
            self._redis = redis.from_url(
                settings.redis_url,
                decode_responses=True,
            )
        return self._redis

    @property
    def ttl_seconds(self) -> int:
        if self._ttl_seconds is None:
            return get_settings().sync_lock_ttl_seconds
        return self._ttl_seconds

    async def acquire(self, project_id: UUID, branch: str) -> str | None:
        """
        Attempt to acquire the lock of a project branch.

        Returns:
            The owner token to release the lock with, or None if another
            sync holds it
        """
        redis_client = await self._get_redis()
        now = datetime.utcnow()
        info = SyncLockInfo(
            token=secrets.token_hex(16),
            project_id=str(project_id),
            branch=branch,
            locked_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )

        acquired = await redis_client.set(
            lock_key(project_id, branch),
            json.dumps(info.to_dict()),
            nx=True,
            ex=self.ttl_seconds,
        )
        if not acquired:
            logger.info(f"Sync lock denied: project {project_id} branch {branch}")
            return None

        logger.debug(f"Sync lock acquired: project {project_id} branch {branch}")
        return info.token

    async def release(self, project_id: UUID, branch: str, token: str) -> bool:
        """
        Release a lock. Only the holder of `token` can release it.

        Returns:
            True if released, False if expired or held by someone else
        """
        redis_client = await self._get_redis()
        key = lock_key(project_id, branch)

        data = await redis_client.get(key)
        if data is None:
            logger.warning(f"Sync lock for project {project_id} branch {branch} expired before release")
            return False

        if SyncLockInfo.from_dict(json.loads(data)).token != token:
            logger.warning(f"Sync lock for project {project_id} branch {branch} is held by another sync")
            return False

        await redis_client.delete(key)
        logger.debug(f"Sync lock released: project {project_id} branch {branch}")
        return True

    async def get_lock_info(self, project_id: UUID, branch: str) -> SyncLockInfo | None:
        redis_client = await self._get_redis()
        data = await redis_client.get(lock_key(project_id, branch))
        if data is None:
            return None
        return SyncLockInfo.from_dict(json.loads(data))

    async def is_locked(self, project_id: UUID, branch: str) -> bool:
        return await self.get_lock_info(project_id, branch) is not None

    @asynccontextmanager
    async def hold(self, project_id: UUID, branch: str) -> AsyncIterator[None]:
        """
        Hold the lock of a project branch for the duration of the block.

        Raises:
            SyncInProgressError: If another sync holds the lock
        """
        token = await self.acquire(project_id, branch)
        if token is None:
            raise SyncInProgressError(
                f"A sync of branch '{branch}' is already in progress; retry"
            )
        try:
            yield
        finally:
            await self.release(project_id, branch, token)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None


# Singleton instance
_sync_locks: SyncLockRegistry | None = None


def get_sync_locks() -> SyncLockRegistry:
    """Get the process-wide sync lock registry."""
    global _sync_locks
    if _sync_locks is None:
        _sync_locks = SyncLockRegistry()
    return _sync_locks


async def close_sync_locks() -> None:
    global _sync_locks
    if _sync_locks:
        await _sync_locks.close()
        _sync_locks = None
