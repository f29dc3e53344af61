"""
Application exceptions.

AppError subclasses reach the API caller with their HTTP status and the
{"error": {...}} body built by to_dict(). ResponseParseError never
leaves the mapper: it only switches a request to the similarity fallback.
"""

from typing import Optional, Any
from datetime import datetime


class AppError(Exception):
    """
    Caller-facing error.

    Attributes:
        code: Stable machine-readable code, e.g. "MAPPING_NOT_FOUND"
        message: Text shown to the user
        status_code: HTTP status of the response
        details: JSON-safe context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.utcnow().isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """404 for an unknown project or source field."""

    def __init__(self, resource: str, identifier: str, code: Optional[str] = None):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ValidationError(AppError):
    """422 for input the service cannot work with."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", details: Optional[dict] = None):
        super().__init__(code=code, message=message, status_code=422, details=details)


class ExternalServiceError(AppError):
    """503 when a required remote service gives no usable answer."""

    def __init__(self, service: str, message: str, details: Optional[dict] = None):
        super().__init__(
            code=f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


class DatabaseError(AppError):
    """500 when a Supabase operation fails."""

    def __init__(self, operation: str, message: str, details: Optional[dict] = None):
        super().__init__(
            code="DATABASE_ERROR",
            message=f"Database {operation} failed: {message}",
            status_code=500,
            details={"operation": operation, **(details or {})}
        )


# ===================
# FILE READER ERRORS
# ===================

class FileParseError(ValidationError):
    """Uploaded file could not be read into rows."""

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code="FILE_PARSE_ERROR",
            message=message,
            details=details
        )


class UnsupportedFileTypeError(ValidationError):
    """File extension is not one of the accepted upload types."""

    def __init__(self, filename: str, accepted: list[str]):
        super().__init__(
            code="UNSUPPORTED_FILE_TYPE",
            message=f"Unsupported file type: {filename}",
            details={"filename": filename, "accepted": accepted}
        )


class FileTooLargeError(ValidationError):
    """Upload exceeds the configured size limit."""

    def __init__(self, size_bytes: int, max_bytes: int):
        super().__init__(
            code="FILE_TOO_LARGE",
            message=f"File exceeds the {max_bytes // (1024 * 1024)} MB upload limit",
            details={"size_bytes": size_bytes, "max_bytes": max_bytes}
        )


class NoSourceFieldsError(ValidationError):
    """Normalization found no usable column headers."""

    def __init__(self, filename: str, row_count: int):
        super().__init__(
            code="NO_COLUMN_HEADERS",
            message="No column headers found",
            details={"filename": filename, "row_count": row_count}
        )


# ===================
# MAPPING ERRORS
# ===================

class MappingContractError(ValidationError):
    """Caller passed inputs the mapper cannot work with (caller bug)."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code="MAPPING_CONTRACT_VIOLATION",
            message=message,
            details=details
        )


class MappingNotFoundError(NotFoundError):
    """No mapping exists for the given source field."""

    def __init__(self, source_field: str):
        super().__init__(
            resource="Mapping",
            identifier=source_field,
            code="MAPPING_NOT_FOUND"
        )


class ProductNameGenerationError(ExternalServiceError):
    """Product name could not be generated."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="product_name",
            message=message,
            details=details
        )


class ResponseParseError(Exception):
    """
    Inference response text could not be repaired into a mapping payload.

    Not an AppError: the mapper recovers from it by switching to the
    similarity fallback, so it never reaches the HTTP layer.
    """

    def __init__(self, message: str, response_preview: str = ""):
        self.message = message
        self.response_preview = response_preview
        super().__init__(message)


# ===================
# PROJECT ERRORS
# ===================

class ProjectNotFoundError(NotFoundError):
    """Project not found."""

    def __init__(self, project_id: str):
        super().__init__(
            resource="Project",
            identifier=project_id,
            code="PROJECT_NOT_FOUND"
        )


class TargetFieldExistsError(AppError):
    """Target field name already in the catalog (409)."""

    def __init__(self, field_name: str):
        super().__init__(
            code="TARGET_FIELD_EXISTS",
            message="Target field with this name already exists",
            status_code=409,
            details={"field_name": field_name}
        )


class SessionNotFoundError(NotFoundError):
    """Upload session unknown or expired."""

    def __init__(self, session_id: str):
        super().__init__(
            resource="Upload session",
            identifier=session_id,
            code="SESSION_NOT_FOUND"
        )
