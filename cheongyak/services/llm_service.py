"""
LLM service for OpenRouter API integration
"""
import logging
from typing import Any, Dict, Optional
import httpx

from ..config import settings
from ..exceptions import LLMServiceError
from .resilience import resilient

logger = logging.getLogger(__name__)


def is_retryable_status(status_code: int) -> bool:
    """Rate limiting and server errors are worth another attempt"""
    return status_code == 429 or status_code >= 500


class LLMService:
    """Text generation through OpenRouter's chat completions endpoint"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.model = settings.openrouter_model
        self.base_url = settings.openrouter_base_url.rstrip("/")

        # Per-call timeout is enforced by the resilience wrapper
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.llm_timeout),
            headers={
                "Authorization": f"Bearer {settings.openrouter_api_key}",
                "Content-Type": "application/json"
            }
        )

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()

    def build_payload(self, prompt: str, temperature: float, max_tokens: int) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens
        }

    @staticmethod
    def parse_completion(response: httpx.Response) -> str:
        """Text of the first choice; a malformed body is not retried"""
        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMServiceError(f"Unexpected OpenRouter response: {e}", retryable=False)

        usage = body.get("usage") or {}
        logger.info(f"OpenRouter completion received ({usage.get('total_tokens', 0)} tokens)")
        return content or ""

    @resilient("llm", timeout=settings.llm_timeout)
    async def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """
        Generate a completion for a single user prompt

        Args:
            prompt: Prompt text
            temperature: Sampling temperature
            max_tokens: Completion token limit

        Returns:
            The model's text response

        Raises:
            LLMServiceError: on HTTP errors or a malformed API response
            ServiceUnavailableError: while the ``llm`` breaker is open
        """
        logger.info(f"Requesting completion from {self.model} ({len(prompt)} prompt chars)")
        response = await self.client.post(
            f"{self.base_url}/chat/completions",
            json=self.build_payload(prompt, temperature, max_tokens)
        )

        if response.status_code != 200:
            error_msg = f"OpenRouter API error: {response.status_code} - {response.text[:500]}"
            logger.error(error_msg)
            raise LLMServiceError(error_msg, retryable=is_retryable_status(response.status_code))

        return self.parse_completion(response)


# Global LLM service instance
llm_service = LLMService()
