"""Gemini client for classification requests"""
import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..exceptions import ConfigurationError, EmptyResponseError, TransportError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Client for the Gemini generateContent API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or settings.GEMINI_MODEL
        self.api_base = (api_base or settings.GEMINI_API_BASE).rstrip("/")
        self.timeout = timeout or settings.GEMINI_TIMEOUT
        self.transport = transport

    def build_request_body(self, prompt: str, temperature: float) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "responseMimeType": "application/json",
            },
        }

    async def generate(self, prompt: str, temperature: float) -> str:
        """
        Send one prompt and return the model's raw text.

        Args:
            prompt: Complete prompt text
            temperature: Sampling temperature for this request

        Returns:
            Text payload of the first candidate

        Raises:
            ConfigurationError: No API key configured
            TransportError: Non-success status or network failure
            EmptyResponseError: Envelope carried no text
        """
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured.")

        url = f"{self.api_base}/models/{self.model}:generateContent"
        body = self.build_request_body(prompt, temperature)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    params={"key": self.api_key},
                    json=body,
                    headers={"Content-Type": "application/json"}
                )
        except httpx.RequestError as e:
            logger.error(f"Gemini request to {self.model} failed: {e!r}")
            raise TransportError(None, str(e) or e.__class__.__name__) from e

        if not response.is_success:
            logger.error(f"Gemini returned {response.status_code}: {response.text[:200]}")
            raise TransportError(response.status_code, response.text)

        text = self.extract_text(response)
        if not text:
            raise EmptyResponseError("Gemini returned an empty response.")
        return text

    @staticmethod
    def extract_text(response: httpx.Response) -> Optional[str]:
        """Pull candidates[0].content.parts[0].text out of the envelope"""
        try:
            data = response.json()
        except ValueError:
            return None

        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None


# Global client instance
_client: Optional[GeminiClient] = None


def get_gemini_client() -> GeminiClient:
    """Get global Gemini client instance"""
    global _client
    if _client is None:
        _client = GeminiClient()
    return _client
