# Data access layer - PostgreSQL repositories
from genstack.repositories.accounts import GitHubAccountRepository
from genstack.repositories.base import BaseRepository
from genstack.repositories.projects import ProjectRepository

__all__ = [
    "BaseRepository",
    "GitHubAccountRepository",
    "ProjectRepository",
]
