"""
Core Exceptions

Error taxonomy for the GitHub integration layer.
"""


class NotFoundError(Exception):
    """Raised when an Account, Project or workflow template does not exist."""

    def __init__(self, message: str = "Not found"):
        self.message = message
        super().__init__(self.message)


class AccessDeniedError(Exception):
    """
    Raised when a user does not have access to an entity.

    Used by the account service when a user touches an account that
    belongs to somebody else.
    """

    def __init__(self, message: str = "Access denied"):
        self.message = message
        super().__init__(self.message)


class DecryptionError(Exception):
    """Raised when a stored access token cannot be decrypted."""

    def __init__(self, message: str = "Failed to decrypt stored token"):
        self.message = message
        super().__init__(self.message)


class IntegrationDisabledError(Exception):
    """Raised when a project has no enabled repository binding."""

    def __init__(self, message: str = "GitHub integration not enabled for this project"):
        self.message = message
        super().__init__(self.message)


class UpstreamError(Exception):
    """
    Raised when the GitHub API rejects a call.

    Attributes:
        status: HTTP status returned by GitHub (None for transport errors)
        message: Human readable message extracted from the response body
    """

    def __init__(self, message: str, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(self.message)

    @property
    def is_not_found(self) -> bool:
        return self.status == 404


class RefConflictError(UpstreamError):
    """Raised when a branch ref update is rejected because the branch moved."""


class AlreadyExistsError(Exception):
    """Raised when linking a GitHub identity that is already linked."""

    def __init__(self, message: str = "GitHub account already exists"):
        self.message = message
        super().__init__(self.message)


class SyncInProgressError(Exception):
    """Raised when another sync holds the lock of a project branch."""

    def __init__(self, message: str = "A sync of this branch is already in progress"):
        self.message = message
        super().__init__(self.message)
