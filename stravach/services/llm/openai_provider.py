from typing import List, Optional

import httpx

from stravach.logging_config import get_logger
from stravach.services.llm.base import LLMError, LLMProvider, LLMResponse

logger = get_logger("llm.openai")


class OpenAIProvider(LLMProvider):
    """Chat-completions provider for OpenAI and OpenAI-compatible endpoints."""

    def __init__(
        self,
        api_key: str,
        default_model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 30.0,
    ):
        self.api_key = api_key
        self.default_model = default_model
        self.base_url = f"{base_url.rstrip('/')}/chat/completions"
        self.timeout_seconds = timeout_seconds

    def generate(
        self,
        messages: List[dict],
        model: Optional[str] = None,
        temperature: float = 0.9,
        max_tokens: int = 300,
        timeout_seconds: Optional[float] = None,
    ) -> LLMResponse:
        """Generate response from the chat-completions endpoint."""

        model = model or self.default_model

        timeout = timeout_seconds if timeout_seconds is not None else self.timeout_seconds
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_completion_tokens": max_tokens,
        }
        logger.debug(f"LLM request: model={model}, messages_count={len(messages)}")

        try:
            with httpx.Client(timeout=timeout) as client:
                response = client.post(
                    self.base_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM request timed out after {timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"LLM request failed: {e}") from e

        logger.debug(f"LLM response status: {response.status_code}")

        if response.status_code != 200:
            logger.error(f"LLM error: {response.text[:500]}")
            raise LLMError(f"LLM API error: {response.status_code}")

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed LLM response: {e}") from e

        if not isinstance(content, str):
            raise LLMError("LLM response content is not text")

        logger.debug(f"LLM content: {content[:100] if content else 'EMPTY'}")
        return LLMResponse(
            content=content,
            model=data.get("model", model),
            usage=data.get("usage"),
        )
