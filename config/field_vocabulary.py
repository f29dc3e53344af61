"""
Heuristic vocabulary for product data sheets.

Keyword lists used to recognize field-name tokens in uploaded sheets and
the synonym table the similarity fallback consults before edit distance.
Both are plain data so they can be extended without touching the parsers.

Columns of the default catalog (German/English supplier templates):
    - Article Number/SKU, GTIN, Portal Name, Producer Name
    - Product Description, Initial Suggested Retail Price (SRP) EU
    - Custom Category, Color, Country of Origin, Licence Name (Theme)
    - CN - Item, Release Name, Language Version
"""

import re

from models.normalization import FieldNamePattern, PatternKind


def _substring(value: str) -> FieldNamePattern:
    return FieldNamePattern(kind=PatternKind.SUBSTRING, value=value)


def _exact(value: str) -> FieldNamePattern:
    return FieldNamePattern(kind=PatternKind.EXACT, value=value)


def _regex(value: str) -> FieldNamePattern:
    return FieldNamePattern(kind=PatternKind.REGEX, value=value)


# ===================
# FIELD NAME RECOGNITION
# ===================

# Tokens matching any of these are read as field names in transposed sheets
# and in the field-name row of template sheets.
DEFAULT_FIELD_NAME_PATTERNS: tuple[FieldNamePattern, ...] = (
    # Identifiers
    _substring("article number"),
    _substring("artikelnummer"),
    _substring("sku"),
    _substring("gtin"),
    _exact("ean"),
    _exact("upc"),
    _substring("barcode"),
    # Names
    _substring("portal name"),
    _substring("product name"),
    _substring("producer name"),
    _substring("release name"),
    _substring("licence name"),
    _regex(r"^name$"),
    # Descriptive
    _substring("product description"),
    _regex(r"^description$"),
    _substring("custom category"),
    _substring("country of origin"),
    _substring("language version"),
    _regex(r"^(colou?r|farbe)$"),
    _regex(r"^(brand|manufacturer|hersteller)$"),
    # Commercial / physical
    _substring("retail price"),
    _substring("(srp)"),
    _regex(r"^(price|preis|uvp|msrp)$"),
    _substring("weight"),
    _substring("gewicht"),
    _substring("cn - item"),
)

# Case-insensitive substrings marking the start of the description section
DESCRIPTION_SECTION_MARKERS: tuple[str, ...] = ("beschreibung",)

# Column names spreadsheet readers invent for unlabeled columns:
# SheetJS "__EMPTY", "__EMPTY_1", "_EMPTY_2"; pandas "Unnamed: 3"
PLACEHOLDER_KEY_PATTERN = re.compile(r"^(_{1,2}EMPTY.*|.*__EMPTY__.*|Unnamed: \d+(_level_\d+)?)$")


# ===================
# SIMILARITY FALLBACK RULES
# ===================

# Ordered (target field, lowercase substrings). First matching rule whose
# target exists in the catalog wins, so order matters.
FALLBACK_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Portal Name", ("name", "title", "product name", "productname", "portal name", "item name")),
    ("Producer Name", ("brand", "manufacturer", "producer", "hersteller", "make")),
    ("Product Description", ("description", "desc", "details", "beschreibung", "initial data", "important")),
    ("Article Number/SKU", ("sku", "article", "item number", "artikel", "artikelnummer")),
    ("GTIN", ("gtin", "ean", "barcode", "upc")),
    ("Initial Suggested Retail Price (SRP) EU", ("price", "cost", "preis", "msrp", "uvp", "srp", "usd")),
    ("Custom Category", ("category", "type", "kategorie", "produkttyp", "product category")),
    ("Color", ("color", "colour", "farbe")),
    ("Country of Origin", ("country", "origin", "herkunft", "land")),
    ("Licence Name (Theme)", ("license", "licence", "theme", "franchise")),
    ("CN - Item", ("cn", "item", "classification")),
    ("Release Name", ("release", "edition", "street date")),
    ("Language Version", ("language", "version", "lang")),
)
