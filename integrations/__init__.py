"""
External service integrations.
"""

from integrations.gemini import (
    GeminiClient,
    InferenceClient,
    InferenceResult,
    build_gemini_client,
)

__all__ = [
    "GeminiClient",
    "InferenceClient",
    "InferenceResult",
    "build_gemini_client",
]
