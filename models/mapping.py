"""
Field mapping schemas.

MappingResult is the unit the mapper returns and the UI edits.
MappingEntry is the schema of one raw entry in the inference response;
it is validated explicitly (ValidEntry | RejectedEntry) instead of being
trusted field by field.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from models.base import BaseSchema, VerbatimSchema


# Prefix of synthetic entries for catalog fields no source field maps to
MISSING_SOURCE_PREFIX = "(Missing) "

# Reason attached by a manual override
MANUAL_OVERRIDE_REASON = "Manual override"


class MappingStrategy(str, Enum):
    """Which path produced a mapping result set."""
    INFERENCE = "inference"
    FALLBACK = "fallback"


class TargetField(BaseSchema):
    """Entry of the target schema catalog."""

    id: Optional[str] = Field(None, description="Catalog row UUID")
    field_name: str = Field(
        ...,
        min_length=1,
        description="Canonical target field name",
        examples=["Article Number/SKU", "GTIN"]
    )


class TargetFieldCreate(BaseSchema):
    """Add a field to the catalog."""

    field_name: str = Field(..., min_length=1, max_length=255)


class MappingResult(VerbatimSchema):
    """
    Mapping decision for one source field.

    Exactly one of is_required / is_optional is true.
    """

    source_field: str = Field(..., description="Column/label name as uploaded")
    target_field: str = Field(..., description="Catalog field or ad hoc name")
    confidence: float = Field(..., ge=0, le=1, description="Mapping trust score")
    reason: str = Field("", description="Human-readable justification")
    is_required: bool = Field(..., description="Target is a catalog field")
    is_optional: bool = Field(..., description="Target is not a catalog field")

    @model_validator(mode="after")
    def exactly_one_classification(self) -> "MappingResult":
        """Required and optional are mutually exclusive and exhaustive."""
        if self.is_required == self.is_optional:
            raise ValueError("exactly one of is_required / is_optional must be true")
        return self

    @property
    def is_missing_placeholder(self) -> bool:
        """True for synthetic entries standing in for an unmapped catalog field."""
        return self.source_field.startswith(MISSING_SOURCE_PREFIX)

    @property
    def is_manual(self) -> bool:
        return self.reason == MANUAL_OVERRIDE_REASON

    @classmethod
    def required(
        cls,
        source_field: str,
        target_field: str,
        confidence: float,
        reason: str
    ) -> "MappingResult":
        return cls(
            source_field=source_field,
            target_field=target_field,
            confidence=confidence,
            reason=reason,
            is_required=True,
            is_optional=False
        )

    @classmethod
    def optional(
        cls,
        source_field: str,
        target_field: str,
        confidence: float,
        reason: str
    ) -> "MappingResult":
        return cls(
            source_field=source_field,
            target_field=target_field,
            confidence=confidence,
            reason=reason,
            is_required=False,
            is_optional=True
        )


# ===================
# INFERENCE RESPONSE VALIDATION
# ===================

class MappingEntry(BaseModel):
    """One entry of the `mappings` array returned by the inference service."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore"
    )

    source_field: str = Field(..., alias="sourceField", min_length=1)
    target_field: str = Field(..., alias="targetField", min_length=1)
    confidence: float = Field(..., ge=0, le=1)
    reason: Optional[str] = None
    is_required: Optional[bool] = Field(None, alias="isRequired")
    is_optional: Optional[bool] = Field(None, alias="isOptional")

    @field_validator("source_field", "target_field", mode="before")
    @classmethod
    def must_be_string(cls, v: Any, info: ValidationInfo) -> Any:
        if not isinstance(v, str):
            raise ValueError("must be a string")
        # Source names are matched against the request as sent
        return v if info.field_name == "source_field" else v.strip()

    @field_validator("confidence", mode="before")
    @classmethod
    def must_be_number(cls, v: Any) -> Any:
        """Reject strings and booleans; JSON numbers only."""
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise ValueError("confidence must be a number")
        return v

    @field_validator("reason", mode="before")
    @classmethod
    def reason_to_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return str(v).strip()

    @field_validator("is_required", "is_optional", mode="before")
    @classmethod
    def flag_must_be_bool(cls, v: Any) -> Any:
        if v is not None and not isinstance(v, bool):
            raise ValueError("must be a boolean")
        return v


@dataclass(frozen=True)
class ValidEntry:
    """Raw entry that passed validation."""
    index: int
    entry: MappingEntry


@dataclass(frozen=True)
class RejectedEntry:
    """Raw entry that failed validation, with the offending field path."""
    index: int
    field_path: str
    message: str


EntryValidation = Union[ValidEntry, RejectedEntry]


# ===================
# API REQUESTS / RESPONSES
# ===================

class MappingRequest(VerbatimSchema):
    """Request body for automatic mapping."""

    source_fields: Optional[list[str]] = Field(
        None,
        description="Source field names (required, must not be empty)"
    )
    target_fields: Optional[list[str]] = Field(
        None,
        description="Catalog names; omitted = load catalog from storage"
    )
    field_descriptions: dict[str, str] = Field(
        default_factory=dict,
        description="Free-text description per source field"
    )


class MappingEditRequest(VerbatimSchema):
    """Request body for toggle/remove edits."""

    mappings: list[MappingResult]
    source_field: str = Field(..., min_length=1)


class OverrideRequest(MappingEditRequest):
    """Request body for a manual override."""

    target_field: str = Field(..., min_length=1)
    target_fields: Optional[list[str]] = Field(
        None,
        description="Catalog used to reclassify the overridden entry"
    )


class MappingListResponse(BaseSchema):
    """Mapping result set with classification counts."""

    mappings: list[MappingResult]
    strategy: Optional[MappingStrategy] = None
    required_count: int = 0
    optional_count: int = 0
    duplicate_targets: dict[str, dict[str, int]] = Field(default_factory=dict)


class SaveMappingsRequest(VerbatimSchema):
    """Accepted mappings to store for a project."""

    mappings: list[MappingResult] = Field(..., min_length=1)
    record: Optional[dict[str, Any]] = Field(
        None,
        description="Source record used to fill optional field values"
    )


class SaveMappingsResult(BaseSchema):
    """Counts of stored mappings."""

    project_id: str
    required_saved: int
    optional_saved: int
    skipped: int
