"""
SQLAlchemy ORM Models

Pure database models using SQLAlchemy 2.0 declarative style.
For API schemas, see genstack.models.contracts.
"""

from genstack.models.orm.accounts import GitHubAccount
from genstack.models.orm.base import Base
from genstack.models.orm.projects import Project

__all__ = [
    "Base",
    "GitHubAccount",
    "Project",
]
