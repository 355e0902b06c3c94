"""Service for LLM integration with the Gemini generateContent API."""

from typing import Any, Dict, List, Optional
import httpx
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from app.exceptions import GenerationServiceError


class GeminiSettings(BaseSettings):
    """Gemini configuration settings."""

    gemini_api_key: Optional[str] = Field(
        None, validation_alias=AliasChoices("gemini_api_key", "api_key")
    )
    gemini_model: str = "gemini-3-flash-preview"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout: int = 120
    gemini_temperature: float = 0.4

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


def text_part(text: str) -> Dict[str, Any]:
    """Build a text content part."""
    return {"text": text}


def inline_part(mime_type: str, data: str) -> Dict[str, Any]:
    """Build an inline binary content part (base64 data, passed through as is)."""
    return {"inlineData": {"mimeType": mime_type, "data": data}}


class LLMService:
    """Service for interacting with the Gemini text-completion API."""

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize LLM service.

        Args:
            settings: Gemini settings (uses defaults if None)
            transport: Custom httpx transport (optional)
        """
        self.settings = settings or GeminiSettings()
        self.base_url = self.settings.gemini_base_url.rstrip("/")
        self.model = self.settings.gemini_model
        self.timeout = self.settings.gemini_timeout
        self.api_key = self.settings.gemini_api_key
        self.transport = transport

    async def generate(
        self,
        parts: List[Dict[str, Any]],
        system: Optional[str] = None,
        temperature: Optional[float] = None
    ) -> str:
        """
        Send one user turn and return the reply text.

        No retries: any failure is raised as a single GenerationServiceError.

        Args:
            parts: Content parts (text and inline data)
            system: System instruction (optional)
            temperature: Sampling temperature (defaults to settings)

        Returns:
            str: Reply text (all text parts of the first candidate, joined)

        Raises:
            GenerationServiceError: If the key is missing or the request fails
        """
        if not self.api_key:
            raise GenerationServiceError(
                "API key is missing. Set GEMINI_API_KEY in the environment."
            )

        url = f"{self.base_url}/models/{self.model}:generateContent"

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": self.settings.gemini_temperature if temperature is None else temperature,
            },
        }

        if system:
            payload["systemInstruction"] = {"parts": [text_part(system)]}

        headers = {"x-goog-api-key": self.api_key}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
                result = response.json()
            except httpx.TimeoutException as e:
                raise GenerationServiceError(
                    f"Generation request timed out after {self.timeout}s"
                ) from e
            except httpx.HTTPError as e:
                raise GenerationServiceError(
                    f"Failed to communicate with the generation service: {str(e)}"
                ) from e
            except ValueError as e:
                raise GenerationServiceError(
                    f"Generation service returned a non-JSON body: {str(e)}"
                ) from e

        return self._extract_text(result)

    @staticmethod
    def _extract_text(result: Dict[str, Any]) -> str:
        """Join the text parts of the first candidate."""
        candidates = result.get("candidates") if isinstance(result, dict) else None
        if not candidates:
            raise GenerationServiceError(f"Unexpected response format: {result}")

        first = candidates[0] if isinstance(candidates, list) else None
        content = first.get("content") if isinstance(first, dict) else None
        if not isinstance(content, dict):
            raise GenerationServiceError(f"Unexpected response format: {result}")

        parts = content.get("parts") or []
        if not isinstance(parts, list):
            raise GenerationServiceError(f"Unexpected response format: {result}")
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))
