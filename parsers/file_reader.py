"""
Upload reader: file bytes → raw row objects.

Produces the loose shape the normalizer expects: one dict per row, keyed by
whatever header the sheet had (including reader-invented names for
unlabeled columns). No layout interpretation happens here.

Supported:
    .xlsx / .xls   first sheet, first row as header (openpyxl / xlrd)
    .csv / .tsv    delimiter sniffed, all cells as text
    .json          list of objects, or a single object
    .pdf / .txt    one placeholder row (content extraction not supported)
"""

import csv
import json
from io import BytesIO
from pathlib import Path
from typing import Any, Optional
import structlog

import pandas as pd

from exceptions import FileParseError, FileTooLargeError, UnsupportedFileTypeError
from utils.text_utils import clean_key, is_blank, to_scalar

logger = structlog.get_logger(__name__)


ACCEPTED_EXTENSIONS: tuple[str, ...] = (".xlsx", ".xls", ".csv", ".tsv", ".json", ".pdf", ".txt")

EXCEL_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}

PDF_PLACEHOLDER_NOTE = "PDF processing not yet implemented. Please convert to Excel/CSV first."

TEXT_ENCODINGS = ("utf-8-sig", "cp1252")

DELIMITER_CANDIDATES = ",;\t|"
SNIFF_LINES = 20


def read_rows(
    file_bytes: bytes,
    filename: str,
    content_type: Optional[str] = None,
    max_bytes: Optional[int] = None,
) -> list[dict[str, Any]]:
    """
    Read an uploaded file into raw row objects.

    Args:
        file_bytes: Raw upload content
        filename: Original file name (extension decides the reader)
        content_type: Declared MIME type; text/csv turns a .txt into a table
        max_bytes: Size limit, None = unlimited

    Returns:
        List of dicts, one per non-empty row, values as JSON-safe scalars

    Raises:
        FileTooLargeError: Upload exceeds max_bytes
        UnsupportedFileTypeError: Extension not accepted
        FileParseError: Content cannot be read
    """
    if max_bytes is not None and len(file_bytes) > max_bytes:
        raise FileTooLargeError(size_bytes=len(file_bytes), max_bytes=max_bytes)

    extension = Path(filename or "").suffix.lower()
    if extension not in ACCEPTED_EXTENSIONS:
        raise UnsupportedFileTypeError(filename=filename, accepted=list(ACCEPTED_EXTENSIONS))

    logger.info(
        "reading_upload",
        filename=filename,
        extension=extension,
        content_type=content_type,
        size_bytes=len(file_bytes)
    )

    if extension in EXCEL_ENGINES:
        rows = _read_excel(file_bytes, extension)
    elif extension in (".csv", ".tsv") or (extension == ".txt" and content_type == "text/csv"):
        rows = _read_delimited(file_bytes, extension)
    elif extension == ".json":
        rows = _read_json(file_bytes)
    elif extension == ".pdf":
        rows = [{
            "File Type": "PDF",
            "File Name": filename,
            "Note": PDF_PLACEHOLDER_NOTE,
        }]
    else:
        rows = [{
            "File Type": "Text",
            "File Name": filename,
            "Content": _decode_text(file_bytes),
        }]

    logger.info("upload_read", filename=filename, rows=len(rows))
    return rows


# ===================
# READERS
# ===================

def _read_excel(file_bytes: bytes, extension: str) -> list[dict[str, Any]]:
    """First sheet, header row 0, every cell as object."""
    engine = EXCEL_ENGINES[extension]
    try:
        df = pd.read_excel(
            BytesIO(file_bytes),
            sheet_name=0,
            header=0,
            dtype=object,
            engine=engine
        )
    except Exception as e:
        logger.error("excel_read_failed", engine=engine, error=str(e))
        raise FileParseError(
            message="Failed to read Excel file",
            details={"engine": engine, "original_error": str(e)}
        )

    return _frame_to_rows(df)


def _read_delimited(file_bytes: bytes, extension: str) -> list[dict[str, Any]]:
    """CSV/TSV with delimiter sniffing; all values as text."""
    text = _decode_text(file_bytes)
    if not text.strip():
        return []

    sep = "\t" if extension == ".tsv" else detect_delimiter(text)

    try:
        df = _parse_delimited(text, sep)
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, ValueError) as e:
        logger.error("csv_read_failed", error=str(e))
        raise FileParseError(
            message="Failed to read delimited file",
            details={"original_error": str(e)}
        )

    return _frame_to_rows(df)


def detect_delimiter(text: str) -> str:
    """
    Sniff the delimiter from the first lines.

    Only common delimiters are candidates; single-column files (no
    candidate is consistent) fall back to a comma.
    """
    sample = "\n".join(text.splitlines()[:SNIFF_LINES])
    try:
        return csv.Sniffer().sniff(sample, delimiters=DELIMITER_CANDIDATES).delimiter
    except csv.Error:
        return ","


def _parse_delimited(text: str, sep: str) -> pd.DataFrame:
    return pd.read_csv(
        BytesIO(text.encode("utf-8")),
        sep=sep,
        engine="python",
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True
    )


def _read_json(file_bytes: bytes) -> list[dict[str, Any]]:
    """List of objects; a single object is wrapped."""
    try:
        data = json.loads(_decode_text(file_bytes))
    except json.JSONDecodeError as e:
        raise FileParseError(
            message="Invalid JSON file",
            details={"line": e.lineno, "column": e.colno, "original_error": e.msg}
        )

    if isinstance(data, dict):
        data = [data]

    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        raise FileParseError(
            message="JSON file must contain an object or a list of objects",
            details={"type": type(data).__name__}
        )

    return [
        {str(key): _json_scalar(value) for key, value in item.items()}
        for item in data
        if item
    ]


# ===================
# HELPERS
# ===================

def _frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """DataFrame → list of dicts; fully blank rows dropped."""
    rows = []
    for record in df.to_dict(orient="records"):
        if all(is_blank(value) for value in record.values()):
            continue
        rows.append({
            _column_name(key): to_scalar(value)
            for key, value in record.items()
        })
    return rows


def _column_name(key: Any) -> str:
    """Header cell as text; blank headers stay "" for the normalizer to drop."""
    return clean_key(key) or ""


def _json_scalar(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return to_scalar(value)


def _decode_text(file_bytes: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return file_bytes.decode(encoding)
        except UnicodeDecodeError:
            continue
    # latin-1 decodes any byte sequence
    return file_bytes.decode("latin-1")
