"""
Error taxonomy shared by the credential and profile services.

Each error carries the HTTP status it maps to; ``main.py`` installs a single
handler that renders ``{"message": ..., "errors": [...]}``.
"""
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional


@dataclass
class FieldError:
    """One offending input field."""
    field: str
    message: str
    kind: str = "invalid"  # "invalid", "too_large" or "unsupported_media_type"

    def to_dict(self) -> Dict[str, str]:
        data = asdict(self)
        data.pop("kind")
        return data


class PortalError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[FieldError]] = None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"message": self.message}
        if self.errors:
            body["errors"] = [error.to_dict() for error in self.errors]
        return body


class ValidationError(PortalError):
    status_code = 422
    default_message = "Invalid input"


class PasswordMismatchError(ValidationError):
    status_code = 400
    default_message = "Passwords do not match"


class ConflictError(PortalError):
    status_code = 409
    default_message = "Email already registered"


class UnauthorizedError(PortalError):
    status_code = 401
    default_message = "Invalid credentials"


class NotFoundError(PortalError):
    status_code = 404
    default_message = "Not found"


class ExpiredError(PortalError):
    status_code = 410
    default_message = "Reset token expired. Please request a new one."


class PayloadTooLargeError(PortalError):
    status_code = 413
    default_message = "Uploaded file is too large"


class UnsupportedMediaTypeError(PortalError):
    status_code = 415
    default_message = "Unsupported file type"


class StorageError(PortalError):
    status_code = 500
    default_message = "Something went wrong. Please try again later."
