"""
Product name generation.

Asks the inference service for an e-commerce name in the form
"Brand + Description + Attributes". Unlike field mapping there is no
offline fallback: failures surface as ProductNameGenerationError.
"""

import json
from typing import Any, Optional
import structlog

from config.settings import get_settings
from exceptions import ProductNameGenerationError
from integrations.gemini import InferenceClient, build_gemini_client
from models.product_name import ProductNameRequest, ProductNameResult
from parsers.response_repair import extract_json_text

logger = structlog.get_logger(__name__)


class ProductNameService:
    """Generate product names from product data."""

    TEMPERATURE = 0.7
    TOP_K = 40
    TOP_P = 0.95
    MAX_OUTPUT_TOKENS = 1024

    DEFAULT_CONFIDENCE = 0.8
    DEFAULT_REASONING = "AI-generated product name"
    DEFAULT_FORMAT = "Brand + Description + Attributes"

    SYSTEM_PROMPT = """You are an expert product naming AI specialized in creating consistent, professional product names for e-commerce.

Your task is to generate product names that follow this format:
"Brand + Product Description + Important Attributes"

Rules for product naming:
1. Always start with the brand/manufacturer name if available
2. Include the core product description (what it is)
3. Add the most important distinguishing attributes (size, color, material, etc.)
4. Keep names concise but descriptive (max 80 characters)
5. Use proper capitalization and formatting
6. Avoid filler words like "the", "a", "an" unless they are part of official names
7. For collectibles, include franchise/character information
8. For technical products, include key specifications

Examples of good product names:
- "Funko Pop! Marvel Spider-Man Vinyl Figure 10cm"
- "LEGO Creator Expert Volkswagen Beetle 10252"
- "Samsung Galaxy S23 Ultra 256GB Phantom Black"

Respond with ONLY valid JSON:
{
  "generatedName": "Generated product name following the format",
  "confidence": 0.95,
  "reasoning": "Explanation of naming decisions",
  "format": "Brand + Description + Key Attributes"
}"""

    def __init__(self, client: Optional[InferenceClient]):
        self.client = client

    def build_prompt(self, request: ProductNameRequest) -> str:
        lines = [
            self.SYSTEM_PROMPT,
            "",
            "Please generate a professional product name based on the following product information:",
            "",
            "Product Data:",
            json.dumps(request.product_data, indent=2, ensure_ascii=False, default=str),
        ]
        if request.category:
            lines.append(f"Category: {request.category}")
        if request.brand:
            lines.append(f"Brand: {request.brand}")
        if request.description:
            lines.append(f"Description: {request.description}")

        lines.extend([
            "",
            "Key requirements:",
            "1. Create a name that follows the \"Brand + Description + Attributes\" format",
            "2. Use information from the product data to identify key attributes",
            "3. Ensure the name is professional and suitable for e-commerce",
            "4. Prioritize the most important distinguishing features",
            "5. Keep it concise but informative",
        ])
        return "\n".join(lines)

    def generate(self, request: ProductNameRequest) -> ProductNameResult:
        """
        Generate a name for one product.

        Raises:
            ProductNameGenerationError: Inference unavailable or response unusable
        """
        if self.client is None or not self.client.is_configured:
            raise ProductNameGenerationError("Inference API key is required for product name generation")

        inference = self.client.generate(
            self.build_prompt(request),
            temperature=self.TEMPERATURE,
            max_output_tokens=self.MAX_OUTPUT_TOKENS,
            topK=self.TOP_K,
            topP=self.TOP_P
        )
        if not inference.ok:
            raise ProductNameGenerationError(
                "Product name generation failed",
                details={"error": inference.error, "status_code": inference.status_code}
            )

        payload = self._parse(inference.text or "")
        name = payload.get("generatedName")
        if not isinstance(name, str) or not name.strip():
            logger.warning("product_name_missing", keys=sorted(payload))
            raise ProductNameGenerationError("Invalid response: missing generatedName")

        confidence = payload.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
            confidence = self.DEFAULT_CONFIDENCE

        result = ProductNameResult(
            generated_name=name,
            confidence=confidence,
            reasoning=str(payload.get("reasoning") or self.DEFAULT_REASONING),
            format=str(payload.get("format") or self.DEFAULT_FORMAT)
        )
        logger.info("product_name_generated", name_length=len(result.generated_name), confidence=result.confidence)
        return result

    def _parse(self, text: str) -> dict[str, Any]:
        try:
            payload = json.loads(extract_json_text(text))
        except json.JSONDecodeError as e:
            logger.warning("product_name_response_invalid", error=str(e), preview=text[:200])
            raise ProductNameGenerationError("Invalid JSON response from inference API")

        if not isinstance(payload, dict):
            raise ProductNameGenerationError("Invalid JSON response from inference API")
        return payload


def get_product_name_service() -> ProductNameService:
    """Create ProductNameService from current settings."""
    return ProductNameService(build_gemini_client(get_settings()))
