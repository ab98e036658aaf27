"""
Custom exception classes.

Deployment problems surface at startup and abort it; none of them is retried.
"""


class DeployerError(RuntimeError):
    """Base exception class for archive deployment."""

    pass


class ArchiveError(DeployerError):
    """Raised when an archive location cannot be resolved or opened."""

    def __init__(self, location: str, reason: str = ""):
        self.location = location
        message = f"Failed to create archive: {location}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class DeploymentError(DeployerError):
    """Raised when functions cannot be deployed from an archive."""

    def __init__(self, location: str, detail: str):
        self.location = location
        self.detail = detail
        super().__init__(f"Failed to deploy archive {location}: {detail}")
