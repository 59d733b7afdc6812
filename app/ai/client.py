"""OpenAI chat client wrapper with error handling."""

import logging
from dataclasses import dataclass
from typing import Any

from openai import APIError, OpenAI, RateLimitError

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported for one completion."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class OpenAIClient:
    """Wrapper around OpenAI's chat completions API."""

    def __init__(self, api_key: str | None = None, timeout: float | None = None):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
        """
        self.api_key = api_key or settings.openai_api_key
        if not self.api_key:
            logger.warning("No OpenAI API key configured - LLM replies will be disabled")
            self.client = None
        else:
            self.client = OpenAI(
                api_key=self.api_key,
                timeout=timeout or settings.openai_timeout_seconds,
                max_retries=1,
            )

    @property
    def is_configured(self) -> bool:
        """Check if client is properly configured."""
        return self.client is not None

    def create_message(
        self,
        system_prompt: str,
        messages: list[dict[str, Any]],
        max_tokens: int = 150,
        temperature: float = 0.7,
        model: str | None = None,
    ) -> Any:
        """Create a chat completion.

        Args:
            system_prompt: System prompt
            messages: Conversation turns after the system prompt
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            model: Model to use (default: settings.openai_model)

        Returns:
            OpenAI completion object

        Raises:
            ValueError: If client is not configured
            APIError: If API call fails
        """
        if not self.is_configured:
            raise ValueError("OpenAI client not configured - missing API key")

        model = model or settings.openai_model
        logger.debug(f"Creating GPT completion: model={model}, messages={len(messages)}")

        try:
            full_messages = [{"role": "system", "content": system_prompt}] + messages
            response = self.client.chat.completions.create(
                model=model,
                messages=full_messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )

            if response.usage:
                logger.debug(
                    f"GPT usage: {response.usage.prompt_tokens} in, "
                    f"{response.usage.completion_tokens} out"
                )
            return response

        except RateLimitError as e:
            logger.warning(f"Rate limited by OpenAI: {e}")
            raise

        except APIError as e:
            logger.error(f"OpenAI API error: {e}")
            raise

    def extract_text_response(self, response: Any) -> str:
        """Extract text content from a completion.

        Args:
            response: Completion object

        Returns:
            Stripped text content (empty string if none)
        """
        message = response.choices[0].message
        return (message.content or "").strip()

    def extract_usage(self, response: Any) -> TokenUsage:
        """Extract token counts from a completion."""
        usage = getattr(response, "usage", None)
        if usage is None:
            return TokenUsage()
        return TokenUsage(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
        )


# Singleton instance for easy access
_client: OpenAIClient | None = None


def get_openai_client() -> OpenAIClient:
    """Get singleton OpenAI client instance."""
    global _client
    if _client is None:
        _client = OpenAIClient()
    return _client
