"""LLM collaborators and helpers for convoset."""

from convoset.llm.ordering import hoist_system_messages
from convoset.llm.parsing import JSONParser, TextParser, strip_code_fences
from convoset.llm.provider import (
    AIClient,
    AnthropicProvider,
    GeneratedObject,
    GeneratedText,
    LLMProvider,
    OllamaProvider,
    OpenAIProvider,
    OpenRouterProvider,
    SystemHoistingClient,
    anthropic,
    ollama,
    openai,
    openrouter,
)
from convoset.llm.tokens import LiteLLMTokenCounter, TokenCounter

__all__ = [
    "hoist_system_messages",
    "JSONParser",
    "TextParser",
    "strip_code_fences",
    "AIClient",
    "AnthropicProvider",
    "GeneratedObject",
    "GeneratedText",
    "LLMProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "SystemHoistingClient",
    "anthropic",
    "ollama",
    "openai",
    "openrouter",
    "LiteLLMTokenCounter",
    "TokenCounter",
]
