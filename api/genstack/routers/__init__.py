# FastAPI Routers
from genstack.routers.advanced_git import router as advanced_git_router
from genstack.routers.github_accounts import router as github_accounts_router
from genstack.routers.github_actions import router as github_actions_router
from genstack.routers.health import router as health_router
from genstack.routers.projects import router as projects_router
from genstack.routers.repository import router as repository_router

__all__ = [
    "advanced_git_router",
    "github_accounts_router",
    "github_actions_router",
    "health_router",
    "projects_router",
    "repository_router",
]
