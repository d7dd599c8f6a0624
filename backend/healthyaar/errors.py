"""
Error types shared by the backend and the client workflow.
"""

from typing import Optional


class HealthYaarError(Exception):
    """Base class for all application errors."""


class IdentityUnavailable(HealthYaarError):
    """Raised when an operation needs an identity and none is established."""


class StoreUnavailable(HealthYaarError):
    """Raised when the document store cannot be read or written."""


class NetworkFailure(HealthYaarError):
    """Raised when an HTTP call cannot reach its endpoint."""


class UpstreamNon2xx(HealthYaarError):
    """Raised when an HTTP call returns a non-2xx status."""

    def __init__(self, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        message = f"Upstream responded with status {status_code}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class UnparseableResponse(HealthYaarError):
    """Raised when a response body does not have the expected shape."""


class InvalidUpload(HealthYaarError):
    """Raised when an uploaded file is not an image."""
