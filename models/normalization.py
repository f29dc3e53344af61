"""
Schemas for sheet normalization.

FieldNamePattern is the unit of the field-name vocabulary: the normalizer
never hardcodes keywords, it asks a list of patterns whether a token
looks like a field name.
"""

import re
from enum import Enum

from pydantic import Field, model_validator

from models.base import BaseSchema


class SheetLayout(str, Enum):
    """Layout conventions the normalizer can detect."""
    TRANSPOSED = "transposed"
    TEMPLATE = "template"
    FLAT = "flat"


class PatternKind(str, Enum):
    """How a FieldNamePattern is compared against a token."""
    SUBSTRING = "substring"
    PREFIX = "prefix"
    EXACT = "exact"
    REGEX = "regex"


class FieldNamePattern(BaseSchema):
    """
    One entry of the field-name vocabulary.

    Examples:
        FieldNamePattern(value="sku")                      # substring, any case
        FieldNamePattern(kind="exact", value="EAN")        # whole token
        FieldNamePattern(kind="regex", value=r"^art\\.?\\s*nr")
    """

    kind: PatternKind = Field(
        default=PatternKind.SUBSTRING,
        description="Comparison strategy"
    )
    value: str = Field(
        ...,
        min_length=1,
        description="Keyword or regular expression"
    )
    case_sensitive: bool = Field(
        default=False,
        description="Compare without case folding"
    )

    @model_validator(mode="after")
    def regex_compiles(self) -> "FieldNamePattern":
        """Reject regex patterns that do not compile."""
        if self.kind == PatternKind.REGEX:
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"Invalid regex pattern {self.value!r}: {e}")
        return self

    def matches(self, token: str) -> bool:
        """Check whether the token is recognized by this pattern."""
        candidate = token.strip() if token else ""
        if not candidate:
            return False

        if self.kind == PatternKind.REGEX:
            flags = 0 if self.case_sensitive else re.IGNORECASE
            return re.search(self.value, candidate, flags) is not None

        needle = self.value
        if not self.case_sensitive:
            candidate = candidate.lower()
            needle = needle.lower()

        if self.kind == PatternKind.EXACT:
            return candidate == needle
        if self.kind == PatternKind.PREFIX:
            return candidate.startswith(needle)
        return needle in candidate
