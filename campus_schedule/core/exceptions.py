"""Application exceptions, mapped to HTTP responses by ``main``."""

from __future__ import annotations


class AppError(Exception):
    """Base class for all application exceptions."""

    def __init__(
        self, message: str, status_code: int = 500, details: dict | None = None
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgumentError(AppError, ValueError):
    """Raised when a required argument is absent or unusable."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message, status_code=400, details=details)


class ResourceNotFoundError(AppError):
    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class AdvisoryUnavailableError(AppError):
    """Raised when the advisory narrative cannot be produced."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=503)
