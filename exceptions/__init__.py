"""
Custom exceptions module.

AppError subclasses map to HTTP responses; ResponseParseError stays
inside the mapper.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ValidationError,
    ExternalServiceError,
    DatabaseError,

    # File reader
    FileParseError,
    UnsupportedFileTypeError,
    FileTooLargeError,
    NoSourceFieldsError,

    # Mapping
    MappingContractError,
    MappingNotFoundError,
    ProductNameGenerationError,
    ResponseParseError,

    # Projects
    ProjectNotFoundError,
    TargetFieldExistsError,
    SessionNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ExternalServiceError",
    "DatabaseError",

    # File reader
    "FileParseError",
    "UnsupportedFileTypeError",
    "FileTooLargeError",
    "NoSourceFieldsError",

    # Mapping
    "MappingContractError",
    "MappingNotFoundError",
    "ProductNameGenerationError",
    "ResponseParseError",

    # Projects
    "ProjectNotFoundError",
    "TargetFieldExistsError",
    "SessionNotFoundError",
]
