from stravach.services.llm.base import LLMError, LLMProvider, LLMResponse
from stravach.services.llm.openai_provider import OpenAIProvider

__all__ = ["LLMError", "LLMProvider", "LLMResponse", "OpenAIProvider"]
