"""
Product name generation schemas.
"""

from typing import Any, Optional

from pydantic import Field

from models.base import BaseSchema


class ProductNameRequest(BaseSchema):
    """Product data to derive a name from."""

    product_data: dict[str, Any] = Field(..., min_length=1)
    category: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None


class ProductNameResult(BaseSchema):
    """Generated product name."""

    generated_name: str = Field(..., min_length=1)
    confidence: float = Field(0.8, ge=0, le=1)
    reasoning: str = "AI-generated product name"
    format: str = "Brand + Description + Attributes"
