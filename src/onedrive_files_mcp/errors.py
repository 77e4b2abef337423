"""Error taxonomy shared by the facade and both front-ends.

Every error carries the HTTP status code and a short machine-readable code so
the HTTP front-end can build its error envelope without inspecting types, and
the MCP front-end can report the same message to tool callers.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError


class FilesError(Exception):
    """Base class for all errors surfaced to callers.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code used by the REST front-end.
        code: Machine-readable error code.
        details: Optional structured details (validation errors, remote body).
    """

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(FilesError):
    """Raised when input is malformed or incomplete, before any remote call."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(FilesError):
    """Raised when the bearer token is missing, malformed, or expired."""

    status_code = 401
    code = "authentication_error"


class NotFoundError(FilesError):
    """Raised when a folder segment, file, or item does not exist."""

    status_code = 404
    code = "not_found"


class AmbiguousPathError(FilesError):
    """Raised when a folder path segment matches more than one folder."""

    status_code = 409
    code = "ambiguous_path"


class RemoteOperationError(FilesError):
    """Wraps a failure reported by the Microsoft Graph API.

    The status code mirrors the remote response when there was one, and
    defaults to 502 for transport-level failures.
    """

    code = "remote_error"

    def __init__(self, message: str, status_code: int = 502, details: Any = None) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code

    def with_context(self, context: str) -> "RemoteOperationError":
        """Return a copy of this error with an operation prefix on the message."""
        return RemoteOperationError(
            f"{context}: {self.message}",
            status_code=self.status_code,
            details=self.details,
        )


def validation_error_from(exc: PydanticValidationError, context: str) -> ValidationError:
    """Convert a pydantic validation failure into a ValidationError.

    Args:
        exc: The pydantic exception.
        context: Short description of what was being validated.

    Returns:
        ValidationError whose message lists every invalid field and whose
        details hold one ``{"field", "message"}`` entry per problem.
    """
    problems = []
    for error in exc.errors(include_url=False):
        field = ".".join(str(part) for part in error["loc"]) or "(root)"
        message = error["msg"].removeprefix("Value error, ")
        problems.append({"field": field, "message": message})

    summary = "; ".join(f"{p['field']}: {p['message']}" for p in problems)
    return ValidationError(f"Invalid {context}: {summary}", details=problems)
