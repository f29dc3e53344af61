"""
Upload readers, sheet normalization and inference response repair.
"""

from parsers.file_reader import read_rows, ACCEPTED_EXTENSIONS
from parsers.sheet_normalizer import (
    SheetNormalizer,
    NormalizationResult,
    normalize_rows,
)
from parsers.response_repair import (
    parse_mapping_response,
    extract_json_text,
)

__all__ = [
    "read_rows",
    "ACCEPTED_EXTENSIONS",
    "SheetNormalizer",
    "NormalizationResult",
    "normalize_rows",
    "parse_mapping_response",
    "extract_json_text",
]
