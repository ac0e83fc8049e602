import asyncio
from typing import Any, Dict, Optional

import httpx
from httpx import HTTPStatusError, TimeoutException
from google import genai
from google.genai import types

from profile_enrichment.core.config import LLMSettings
from profile_enrichment.core.exceptions import (
    ConfigurationError,
    GenerationErrorCode,
    GenerationServiceError,
    RateLimitError,
)
from profile_enrichment.utils.logging import get_logger

LOGGER = get_logger(__name__)

# Providers report quota exhaustion with assorted status codes; match on text too
RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "quota",
    "resource exhausted",
    "resource_exhausted",
    "insufficient_quota",
    "billing",
)


def is_rate_limit_message(message: str) -> bool:
    lowered = (message or "").lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


def classify_status(status_code: int, body: str = "") -> GenerationErrorCode:
    """Map an HTTP status and body to a generation error code."""
    if status_code == 429 or is_rate_limit_message(body):
        return GenerationErrorCode.RATE_LIMITED
    if status_code in (408, 504):
        return GenerationErrorCode.TIMEOUT
    if status_code in (401, 403):
        return GenerationErrorCode.AUTHENTICATION
    if 400 <= status_code < 500:
        return GenerationErrorCode.INVALID_REQUEST
    if status_code >= 500:
        return GenerationErrorCode.SERVER_ERROR
    return GenerationErrorCode.UNKNOWN


class BaseLLMClient:
    """Base client for chat-completion style HTTP APIs.

    Performs exactly one request per call. Retrying is the caller's concern;
    this layer only turns every failure into a GenerationServiceError carrying
    a structured code so callers never inspect provider error strings.
    """

    def __init__(self, api_key: str, base_url: str, timeout: int = 60):
        """Initialize the LLM client.

        Args:
            api_key: API key for authentication
            base_url: Full URL of the completions endpoint
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.logger = LOGGER

    async def call_api(
        self,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """POST a JSON payload and return the parsed response body.

        Raises:
            RateLimitError: On 429 or a quota/rate-limit message
            GenerationServiceError: On any other failure
        """
        default_headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if headers:
            default_headers.update(headers)

        self.logger.debug(
            f"Calling LLM API: {self.base_url}",
            extra={"timeout": self.timeout}
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.base_url, headers=default_headers, json=payload)
                response.raise_for_status()
                return response.json()

        except HTTPStatusError as e:
            raise self._handle_http_error(e) from e

        except TimeoutException as e:
            self.logger.warning("API Timeout", extra={"url": self.base_url})
            raise GenerationServiceError(
                f"API timeout after {self.timeout}s",
                code=GenerationErrorCode.TIMEOUT,
                original_error=e,
            ) from e

        except httpx.HTTPError as e:
            self.logger.warning("API transport error", extra={"url": self.base_url, "error": str(e)})
            raise GenerationServiceError(
                f"API transport error: {e}",
                code=GenerationErrorCode.SERVER_ERROR,
                original_error=e,
            ) from e

        except ValueError as e:
            raise GenerationServiceError(
                f"API returned a non-JSON body: {e}",
                code=GenerationErrorCode.SERVER_ERROR,
                original_error=e,
            ) from e

    def _handle_http_error(self, error: HTTPStatusError) -> GenerationServiceError:
        """Build the structured error for an HTTP status failure."""
        status_code = error.response.status_code
        try:
            error_body = error.response.text
        except Exception:
            error_body = "Could not read response body"

        self.logger.warning(
            "API HTTP error",
            extra={
                "url": self.base_url,
                "status_code": status_code,
                "error_body": error_body[:500]
            }
        )

        code = classify_status(status_code, error_body)
        if code == GenerationErrorCode.RATE_LIMITED:
            return RateLimitError(
                f"API rate limited ({status_code})", status_code=status_code, original_error=error
            )
        return GenerationServiceError(
            f"API HTTP Error {status_code}: {error_body[:200]}",
            code=code,
            status_code=status_code,
            original_error=error,
        )


class OpenAICompatibleClient:
    """Chat-completions client for OpenAI and OpenRouter."""

    def __init__(self, api_key: str, base_url: str, timeout: int = 60, headers: Optional[Dict[str, str]] = None):
        self.client = BaseLLMClient(api_key=api_key, base_url=base_url, timeout=timeout)
        self.headers = headers or {}

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        temperature: float,
        system_instruction: Optional[str] = None,
    ) -> str:
        """Return the text of one chat completion.

        Raises:
            GenerationServiceError: On provider failure or an empty completion
        """
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        payload = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        response = await self.client.call_api(payload=payload, headers=self.headers)

        choices = response.get("choices") if isinstance(response, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        if not isinstance(first, dict):
            LOGGER.error(f"Unexpected completion response format: {str(response)[:300]}")
            raise GenerationServiceError(
                "Invalid response format from completion API",
                code=GenerationErrorCode.EMPTY_RESPONSE,
            )

        message = first.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise GenerationServiceError(
                "Empty completion returned", code=GenerationErrorCode.EMPTY_RESPONSE
            )
        return content.strip()


class GeminiClient:
    """Wrapper for the Google Gemini async API exposing the same complete() call."""

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: int = 60):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

        try:
            self.client = genai.Client(api_key=self.api_key)
            LOGGER.info(f"Initialized Gemini client with model {self.model}")
        except Exception as e:
            LOGGER.error(f"Failed to initialize Gemini client: {e}")
            raise ConfigurationError(f"Failed to initialize Gemini client: {e}", original_error=e)

    async def complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        temperature: float,
        system_instruction: Optional[str] = None,
    ) -> str:
        # Per-artifact model names target chat-completion providers
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_tokens,
        )
        if system_instruction:
            config.system_instruction = system_instruction

        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=prompt,
                    config=config,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerationServiceError(
                f"Gemini timeout after {self.timeout}s",
                code=GenerationErrorCode.TIMEOUT,
                original_error=e,
            ) from e
        except Exception as e:
            LOGGER.warning(f"Gemini API error: {e}")
            status_code = getattr(e, "code", None)
            if status_code == 429 or is_rate_limit_message(str(e)):
                raise RateLimitError(
                    f"Gemini rate limited: {e}", status_code=429, original_error=e
                ) from e
            code = classify_status(status_code) if isinstance(status_code, int) else GenerationErrorCode.UNKNOWN
            raise GenerationServiceError(
                f"Gemini generation failed: {e}",
                code=code,
                status_code=status_code if isinstance(status_code, int) else None,
                original_error=e,
            ) from e

        if not response.text or not response.text.strip():
            LOGGER.warning("Empty response from Gemini")
            raise GenerationServiceError(
                "Empty completion returned", code=GenerationErrorCode.EMPTY_RESPONSE
            )
        return response.text.strip()


def create_text_generation_client(llm_settings: LLMSettings):
    """Build the configured text-generation client.

    Raises:
        ConfigurationError: If the provider is unknown or its API key is missing
    """
    provider = (llm_settings.provider or "").lower()

    if provider == "openai":
        if not llm_settings.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        return OpenAICompatibleClient(
            api_key=llm_settings.openai_api_key,
            base_url=llm_settings.openai_api_url,
            timeout=llm_settings.timeout_seconds,
        )

    if provider == "openrouter":
        if not llm_settings.openrouter_api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")
        return OpenAICompatibleClient(
            api_key=llm_settings.openrouter_api_key,
            base_url=llm_settings.openrouter_api_url,
            timeout=llm_settings.timeout_seconds,
        )

    if provider == "gemini":
        if not llm_settings.gemini_api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")
        return GeminiClient(
            api_key=llm_settings.gemini_api_key,
            model=llm_settings.gemini_model,
            timeout=llm_settings.timeout_seconds,
        )

    raise ConfigurationError(f"Unsupported LLM provider: {llm_settings.provider}")
