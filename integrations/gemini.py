"""
Gemini generateContent client.

One POST per call, no retries, no streaming. Failures come back as an
InferenceResult with ok=False so callers can switch to their offline path
instead of handling exceptions.
"""

from dataclasses import dataclass
from typing import Optional, Protocol
import requests
import structlog

from config.settings import Settings

logger = structlog.get_logger(__name__)


ERROR_BODY_PREVIEW = 300


@dataclass
class InferenceResult:
    """Outcome of one text-generation call."""
    ok: bool
    text: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def failure(cls, error: str, status_code: Optional[int] = None) -> "InferenceResult":
        return cls(ok=False, error=error, status_code=status_code)


class InferenceClient(Protocol):
    """What the mapping and naming services need from a text generator."""

    @property
    def is_configured(self) -> bool:
        ...

    def generate(
        self,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        **generation_config
    ) -> InferenceResult:
        ...


class GeminiClient:
    """
    Client for the Generative Language API.

    The API key is sent in the x-goog-api-key header, never in the URL,
    so it does not end up in access logs.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout_seconds: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        self.api_key = api_key.strip() if api_key else None
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def generate(
        self,
        prompt: str,
        temperature: float,
        max_output_tokens: int,
        **generation_config
    ) -> InferenceResult:
        """
        Generate text for a single prompt.

        Args:
            prompt: Combined instruction + input text
            temperature: Sampling temperature
            max_output_tokens: Output length bound
            **generation_config: Extra generationConfig keys (topK, topP, ...)

        Returns:
            InferenceResult; ok=False on missing key, transport error,
            non-2xx status, non-JSON body or missing candidate text
        """
        if not self.is_configured:
            logger.warning("inference_not_configured", model=self.model)
            return InferenceResult.failure("Inference API key not configured")

        payload = {
            "contents": [{
                "parts": [{"text": prompt}]
            }],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
                **generation_config,
            },
        }
        headers = {
            "Content-Type": "application/json",
            "x-goog-api-key": self.api_key,
        }

        logger.info(
            "inference_request",
            model=self.model,
            prompt_length=len(prompt),
            max_output_tokens=max_output_tokens
        )

        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers=headers,
                timeout=self.timeout_seconds
            )
        except requests.exceptions.RequestException as e:
            logger.warning("inference_request_failed", model=self.model, error=str(e))
            return InferenceResult.failure(f"Transport error: {e}")

        if not response.ok:
            body = response.text[:ERROR_BODY_PREVIEW]
            logger.warning(
                "inference_error_status",
                model=self.model,
                status_code=response.status_code,
                body=body
            )
            return InferenceResult.failure(
                f"Inference API error: {response.status_code} - {body}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError:
            logger.warning("inference_invalid_json", model=self.model, status_code=response.status_code)
            return InferenceResult.failure("Inference API returned a non-JSON body", response.status_code)

        text = extract_candidate_text(data)
        if not text:
            logger.warning(
                "inference_empty_response",
                model=self.model,
                finish_reason=_finish_reason(data)
            )
            return InferenceResult.failure("No response text from inference API", response.status_code)

        logger.info(
            "inference_response",
            model=self.model,
            status_code=response.status_code,
            response_length=len(text),
            finish_reason=_finish_reason(data)
        )
        return InferenceResult(ok=True, text=text, status_code=response.status_code)


def extract_candidate_text(data: object) -> Optional[str]:
    """Text of candidates[0].content.parts[0], or None."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) and text.strip() else None


def _finish_reason(data: object) -> Optional[str]:
    try:
        return data["candidates"][0].get("finishReason")
    except (KeyError, IndexError, TypeError, AttributeError):
        return None


def build_gemini_client(settings: Settings) -> GeminiClient:
    """Create a client from application settings."""
    return GeminiClient(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.inference_timeout_seconds
    )
