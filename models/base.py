"""
Shared schema base.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for request, response and storage row schemas.

    Strings are trimmed on input, so field names coming from spreadsheet
    cells or the UI compare equal regardless of padding. Rows returned by
    Supabase are plain dicts and load through the normal constructor.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True
    )


class VerbatimSchema(BaseSchema):
    """
    Base for schemas carrying source field names.

    A source field name is the identity of an uploaded column, so it is
    kept exactly as received, padding included.
    """
    model_config = ConfigDict(str_strip_whitespace=False)
