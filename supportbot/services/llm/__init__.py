from supportbot.services.llm.base import LLMProvider, LLMResponse
from supportbot.services.llm.openai_provider import OpenAIProvider, OpenAIProviderError

__all__ = ["LLMProvider", "LLMResponse", "OpenAIProvider", "OpenAIProviderError"]
