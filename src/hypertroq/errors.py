"""Application error types.

Services raise these; the web layer maps them to JSON responses and the CLI
prints them.
"""

from typing import Any


class HypertroqError(Exception):
    """Base class for application errors."""

    status_code = 500
    error_type = "internal_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        data = {"error": self.message, "type": self.error_type}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(HypertroqError):
    status_code = 400
    error_type = "validation_error"


class NotFoundError(HypertroqError):
    status_code = 404
    error_type = "not_found"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} {identifier} not found"
        super().__init__(message, {"resource": resource})


class FeatureNotAvailableError(HypertroqError):
    status_code = 403
    error_type = "feature_not_available"

    def __init__(self, reason: str, upgrade_path: str | None = None):
        super().__init__(reason, {"upgrade_path": upgrade_path} if upgrade_path else None)
        self.upgrade_path = upgrade_path


class LimitExceededError(HypertroqError):
    status_code = 429
    error_type = "limit_exceeded"

    def __init__(self, limit_type: str, current: int, limit: int):
        super().__init__(
            f"{limit_type.replace('_', ' ').capitalize()} limit reached ({current}/{limit})",
            {"limit_type": limit_type, "current": current, "limit": limit},
        )
        self.limit_type = limit_type


class UnsupportedFileTypeError(HypertroqError):
    status_code = 415
    error_type = "unsupported_file_type"


class ExternalServiceError(HypertroqError):
    """An LLM or embedding call failed."""

    status_code = 502
    error_type = "external_service_error"
