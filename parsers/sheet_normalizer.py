"""
Sheet normalizer: raw row objects → source records.

Supplier sheets arrive in three shapes. Detection runs in this order,
first match wins:

    1. Transposed list: one column holds field name, value, field name,
       value, ... then a description marker ("Beschreibung") followed by
       one description per field.
    2. Template: row 1 holds field names, row 2 the values in the same
       columns; row 4 may hold a description marker, rows 5-6 then hold
       the descriptions column by column.
    3. Flat table: every row is a record (default).

Sheets with fewer than 3 rows are always flat.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Pattern, Sequence
import structlog

from config.field_vocabulary import (
    DEFAULT_FIELD_NAME_PATTERNS,
    DESCRIPTION_SECTION_MARKERS,
    PLACEHOLDER_KEY_PATTERN,
)
from models.normalization import FieldNamePattern, SheetLayout
from utils.text_utils import clean_key, is_blank, to_scalar

logger = structlog.get_logger(__name__)


MIN_STRUCTURED_ROWS = 3

# 0-indexed row positions of the template layout
TEMPLATE_FIELD_ROW = 1
TEMPLATE_VALUE_ROW = 2
TEMPLATE_MARKER_ROW = 4
TEMPLATE_DESCRIPTION_ROWS = (5, 6)

# Share of the field-name row that must be recognized field names
MIN_TEMPLATE_FIELD_SHARE = 0.5
# Share of transposed tokens (from the first field name on) that must be field names
MIN_TRANSPOSED_FIELD_SHARE = 0.5


@dataclass
class NormalizationResult:
    """Result of normalizing one sheet."""
    records: list[dict[str, Any]] = field(default_factory=list)
    field_descriptions: dict[str, str] = field(default_factory=dict)
    layout: SheetLayout = SheetLayout.FLAT

    @property
    def source_fields(self) -> list[str]:
        """Ordered union of record keys (first appearance wins)."""
        seen: dict[str, None] = {}
        for record in self.records:
            for key in record:
                seen.setdefault(key, None)
        return list(seen)

    @property
    def has_fields(self) -> bool:
        return len(self.source_fields) > 0

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "layout": self.layout.value,
            "records": self.records,
            "field_descriptions": self.field_descriptions,
            "source_fields": self.source_fields,
        }


class SheetNormalizer:
    """
    Detects the sheet layout and extracts records.

    The field-name vocabulary and description markers are injected so the
    heuristics can be tested and extended without touching the parsing.
    """

    def __init__(
        self,
        patterns: Optional[Iterable[FieldNamePattern]] = None,
        description_markers: Optional[Iterable[str]] = None,
        placeholder_key_pattern: Optional[Pattern[str]] = None,
    ):
        self.patterns = tuple(patterns) if patterns is not None else DEFAULT_FIELD_NAME_PATTERNS
        markers = description_markers if description_markers is not None else DESCRIPTION_SECTION_MARKERS
        self.description_markers = tuple(m.lower() for m in markers if m and m.strip())
        self.placeholder_key_pattern = placeholder_key_pattern or PLACEHOLDER_KEY_PATTERN

    # ===================
    # TOKEN CLASSIFICATION
    # ===================

    def is_field_name(self, value: Any) -> bool:
        """Check whether a cell looks like a field name."""
        if not isinstance(value, str) or not value.strip():
            return False
        return any(pattern.matches(value) for pattern in self.patterns)

    def is_description_marker(self, value: Any) -> bool:
        """Check whether a cell starts the description section."""
        if not isinstance(value, str):
            return False
        lowered = value.lower()
        return any(marker in lowered for marker in self.description_markers)

    def is_placeholder_key(self, key: str) -> bool:
        return self.placeholder_key_pattern.match(key) is not None

    def field_name_share(self, values: Iterable[Any]) -> float:
        """Fraction of non-blank values recognized as field names (0.0 if none)."""
        tokens = [value for value in values if not is_blank(value)]
        if not tokens:
            return 0.0
        return sum(1 for token in tokens if self.is_field_name(token)) / len(tokens)

    def has_labeled_header(self, rows: list[Mapping[str, Any]]) -> bool:
        """
        Check whether the column keys are already field names.

        A sheet whose header row names most of its columns is a plain
        table, whatever its data values contain.
        """
        keys: dict[str, None] = {}
        for row in rows:
            for key in row:
                if isinstance(key, str) and key.strip() and not self.is_placeholder_key(key):
                    keys.setdefault(key, None)
        return self.field_name_share(keys) > MIN_TEMPLATE_FIELD_SHARE

    # ===================
    # ENTRY POINT
    # ===================

    def normalize(self, rows: Optional[Sequence[Mapping[str, Any]]]) -> NormalizationResult:
        """
        Normalize raw rows into source records.

        Args:
            rows: Row objects as produced by the file reader

        Returns:
            NormalizationResult (records may be empty if nothing usable was found)
        """
        rows = [row for row in (rows or []) if isinstance(row, Mapping)]

        result: Optional[NormalizationResult] = None
        if len(rows) >= MIN_STRUCTURED_ROWS:
            result = self._parse_transposed(rows)
            if result is None and self._is_template(rows):
                result = self._parse_template(rows)

        if result is None:
            result = self._parse_flat(rows)

        logger.info(
            "sheet_normalized",
            layout=result.layout.value,
            rows=len(rows),
            records=len(result.records),
            fields=len(result.source_fields),
            descriptions=len(result.field_descriptions)
        )
        return result

    # ===================
    # TRANSPOSED LIST
    # ===================

    def _parse_transposed(self, rows: list[Mapping[str, Any]]) -> Optional[NormalizationResult]:
        """
        Parse a single-column name/value list.

        Returns None when the sheet is not transposed: more than one column
        carries data, the column header is itself a field name, or fewer
        than half of the tokens from the first field name on are field
        names (a list of values rather than name/value pairs).

        A value containing a vocabulary keyword is read as a field name;
        pairing is strict alternation.
        """
        value_keys: dict[str, None] = {}
        for row in rows:
            for key, value in row.items():
                if not is_blank(value):
                    value_keys.setdefault(key, None)

        if len(value_keys) != 1:
            return None

        label_key = next(iter(value_keys))
        if isinstance(label_key, str) and self.is_field_name(label_key):
            return None

        tokens = [row.get(label_key) for row in rows if not is_blank(row.get(label_key))]
        if not self._alternates(tokens):
            return None

        record: dict[str, Any] = {}
        descriptions: list[str] = []
        pending: Optional[str] = None
        in_descriptions = False

        for token in tokens:
            if in_descriptions:
                descriptions.append(str(to_scalar(token)))
                continue

            if self.is_description_marker(token):
                in_descriptions = True
                continue

            if self.is_field_name(token):
                if pending is not None:
                    record.setdefault(pending, "")
                pending = token.strip()
                continue

            # Value for the preceding field; orphan tokens are skipped
            if pending is not None:
                record.setdefault(pending, to_scalar(token))
                pending = None

        if pending is not None:
            record.setdefault(pending, "")

        if not record:
            return None

        # First description belongs to the first field, and so on
        field_descriptions = {
            name: description
            for name, description in zip(record, descriptions)
        }

        logger.info(
            "sheet_layout_detected",
            layout=SheetLayout.TRANSPOSED.value,
            label_column=label_key,
            fields=len(record)
        )
        return NormalizationResult(
            records=[record],
            field_descriptions=field_descriptions,
            layout=SheetLayout.TRANSPOSED
        )

    def _alternates(self, tokens: list[Any]) -> bool:
        """Check the name/value shape of the tokens before the description marker."""
        section: list[Any] = []
        for token in tokens:
            if self.is_description_marker(token):
                break
            if section or self.is_field_name(token):
                section.append(token)

        if not section:
            return False
        return self.field_name_share(section) >= MIN_TRANSPOSED_FIELD_SHARE

    # ===================
    # TEMPLATE
    # ===================

    def _is_template(self, rows: list[Mapping[str, Any]]) -> bool:
        """
        Row 1 must be mostly field names and look more like names than
        row 2, or row 4 must carry the description marker. Sheets whose
        header already names the columns are never templates.
        """
        if self.has_labeled_header(rows):
            return False

        field_share = self.field_name_share(rows[TEMPLATE_FIELD_ROW].values())
        value_share = self.field_name_share(rows[TEMPLATE_VALUE_ROW].values())
        if field_share > MIN_TEMPLATE_FIELD_SHARE and field_share > value_share:
            return True
        return self._has_description_marker_row(rows)

    def _has_description_marker_row(self, rows: list[Mapping[str, Any]]) -> bool:
        if len(rows) <= TEMPLATE_MARKER_ROW:
            return False
        return any(self.is_description_marker(value) for value in rows[TEMPLATE_MARKER_ROW].values())

    def _parse_template(self, rows: list[Mapping[str, Any]]) -> NormalizationResult:
        """Field names from row 1, values from row 2, descriptions from rows 5-6."""
        names_by_key: dict[str, str] = {
            key: value.strip()
            for key, value in rows[TEMPLATE_FIELD_ROW].items()
            if isinstance(value, str) and value.strip()
        }

        value_row = rows[TEMPLATE_VALUE_ROW]
        record: dict[str, Any] = {}
        for key, name in names_by_key.items():
            # Empty values are kept so the field can still be mapped
            record.setdefault(name, to_scalar(value_row.get(key)))

        field_descriptions: dict[str, str] = {}
        if self._has_description_marker_row(rows):
            for row_index in TEMPLATE_DESCRIPTION_ROWS:
                if row_index >= len(rows):
                    break
                for key, value in rows[row_index].items():
                    name = names_by_key.get(key)
                    if name is None or not isinstance(value, str) or not value.strip():
                        continue
                    text = value.strip()
                    if name in field_descriptions:
                        field_descriptions[name] = f"{field_descriptions[name]} {text}"
                    else:
                        field_descriptions[name] = text

        logger.info(
            "sheet_layout_detected",
            layout=SheetLayout.TEMPLATE.value,
            fields=len(record),
            descriptions=len(field_descriptions)
        )
        return NormalizationResult(
            records=[record] if record else [],
            field_descriptions=field_descriptions,
            layout=SheetLayout.TEMPLATE
        )

    # ===================
    # FLAT TABLE
    # ===================

    def _parse_flat(self, rows: list[Mapping[str, Any]]) -> NormalizationResult:
        """One record per row; blank and reader-generated keys dropped."""
        records = []
        dropped_keys: set[str] = set()

        for row in rows:
            record: dict[str, Any] = {}
            for key, value in row.items():
                name = clean_key(key)
                if name is None or self.is_placeholder_key(name):
                    dropped_keys.add(str(key))
                    continue
                record.setdefault(name, to_scalar(value))
            if record:
                records.append(record)

        if dropped_keys:
            logger.debug("placeholder_keys_dropped", keys=sorted(dropped_keys))

        return NormalizationResult(records=records, layout=SheetLayout.FLAT)


def normalize_rows(rows: Optional[Sequence[Mapping[str, Any]]]) -> NormalizationResult:
    """Normalize rows with the default vocabulary."""
    return SheetNormalizer().normalize(rows)
