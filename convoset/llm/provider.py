"""LLM collaborators: the AIClient interface and LiteLLM-backed providers."""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import litellm
from loguru import logger
from pydantic import BaseModel

from convoset.core.errors import AIClientError
from convoset.core.types import Message
from convoset.llm.ordering import hoist_system_messages
from convoset.llm.parsing import JSONParser, TextParser


@dataclass
class GeneratedText:
    """Text returned by the model, with the provider's response id if any."""

    text: str
    response_id: str | None = None


@dataclass
class GeneratedObject:
    """Structured output returned by the model, as plain JSON data."""

    value: dict[str, Any]
    response_id: str | None = None


class AIClient(ABC):
    """
    Interface the schema interpreter uses to produce content.

    Implementations must be safe to call from many concurrent row tasks.
    Tests swap in deterministic stubs.
    """

    @property
    @abstractmethod
    def model_id(self) -> str:
        """Identifier recorded in row metadata."""
        pass

    @abstractmethod
    async def generate_text(self, messages: list[Message]) -> GeneratedText:
        """Generate free text from a list of messages."""
        pass

    @abstractmethod
    async def generate_object(
        self, schema: type[BaseModel], messages: list[Message]
    ) -> GeneratedObject:
        """Generate a JSON object validated against ``schema``."""
        pass


class SystemHoistingClient(AIClient):
    """Wrap a client so system messages always lead the prompt."""

    def __init__(self, inner: AIClient) -> None:
        self._inner = inner

    @property
    def model_id(self) -> str:
        return self._inner.model_id

    async def generate_text(self, messages: list[Message]) -> GeneratedText:
        return await self._inner.generate_text(hoist_system_messages(messages))

    async def generate_object(
        self, schema: type[BaseModel], messages: list[Message]
    ) -> GeneratedObject:
        return await self._inner.generate_object(schema, hoist_system_messages(messages))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._inner!r})"


class LLMProvider(AIClient):
    """Abstract base class for LiteLLM-backed providers."""

    def __init__(
        self,
        model_id: str,
        api_key: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        frequency_penalty: float | None = None,
        timeout: int | None = None,
    ) -> None:
        """
        Initialize the LLM provider.

        Args:
            model_id: The model identifier.
            api_key: API key (if None, will get from environment).
            temperature: Sampling temperature (0.0 to 2.0).
            max_tokens: Maximum tokens to generate.
            top_p: Nucleus sampling parameter (0.0 to 1.0).
            frequency_penalty: Penalty for token frequency (-2.0 to 2.0).
            timeout: Request timeout in seconds.
        """
        self._model_id = model_id
        self.api_key = api_key or self._get_api_key()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.top_p = top_p
        self.frequency_penalty = frequency_penalty
        self.timeout = timeout
        self._text_parser = TextParser()
        self._json_parser = JSONParser()

        self._configure_env()
        logger.info(f"Initialized {self.provider_name} | Model: {self.model_id}")

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name used by LiteLLM."""
        pass

    @property
    @abstractmethod
    def env_key_name(self) -> str:
        """Return the environment variable name for API key."""
        pass

    @property
    def model_id(self) -> str:
        return self._model_id

    def _get_api_key(self) -> str:
        """Get API key from environment variables."""
        api_key = os.getenv(self.env_key_name)
        if not api_key:
            logger.error(f"Missing API key | Set {self.env_key_name} environment variable")
            raise ValueError(
                f"{self.env_key_name} environment variable not set. "
                f"Please set it or provide an API key when initializing the provider."
            )
        return api_key

    def _configure_env(self) -> None:
        """Configure environment variables for API key."""
        if self.api_key:
            os.environ[self.env_key_name] = self.api_key

    def _get_model_string(self) -> str:
        """Get the full model string for LiteLLM."""
        return f"{self.provider_name}/{self.model_id}"

    def _build_completion_params(self, messages: list[Message]) -> dict[str, Any]:
        """Build parameters for LiteLLM completion call."""
        params: dict[str, Any] = {
            "model": self._get_model_string(),
            "messages": messages,
        }

        if self.temperature is not None:
            params["temperature"] = self.temperature
        if self.max_tokens is not None:
            params["max_tokens"] = self.max_tokens
        if self.top_p is not None:
            params["top_p"] = self.top_p
        if self.frequency_penalty is not None:
            params["frequency_penalty"] = self.frequency_penalty
        if self.timeout is not None:
            params["timeout"] = self.timeout

        return params

    async def _complete(self, params: dict[str, Any]) -> tuple[Any, str | None]:
        try:
            response = await litellm.acompletion(**params)
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(
                f"Generation failed | Provider: {self.provider_name} | "
                f"Model: {self.model_id} | Error: {e}"
            )
            raise AIClientError(f"Error generating response: {e}") from e
        return content, getattr(response, "id", None)

    async def generate_text(self, messages: list[Message]) -> GeneratedText:
        """
        Generate a single text completion.

        Args:
            messages: List of message dicts with 'role' and 'content' keys.

        Returns:
            The generated text and the provider response id.

        Raises:
            AIClientError: If generation fails.
        """
        content, response_id = await self._complete(self._build_completion_params(messages))
        return GeneratedText(text=self._text_parser.parse(content), response_id=response_id)

    async def generate_object(
        self, schema: type[BaseModel], messages: list[Message]
    ) -> GeneratedObject:
        """
        Generate a JSON object matching ``schema``.

        Args:
            schema: Pydantic model describing the expected object.
            messages: List of message dicts with 'role' and 'content' keys.

        Returns:
            The validated object as JSON data and the provider response id.

        Raises:
            AIClientError: If generation or validation fails.
        """
        params = self._build_completion_params(messages)
        params["response_format"] = schema
        content, response_id = await self._complete(params)
        try:
            parsed = self._json_parser.parse(content, schema)
        except ValueError as e:
            logger.error(
                f"Structured output invalid | Model: {self.model_id} | "
                f"Schema: {schema.__name__} | Error: {e}"
            )
            raise AIClientError(f"Model output does not match {schema.__name__}: {e}") from e
        return GeneratedObject(value=parsed.model_dump(mode="json"), response_id=response_id)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_id={self.model_id!r})"


class OpenRouterProvider(LLMProvider):
    """OpenRouter provider using LiteLLM."""

    @property
    def provider_name(self) -> str:
        return "openrouter"

    @property
    def env_key_name(self) -> str:
        return "OPENROUTER_API_KEY"

    def __init__(self, model_id: str = "openai/gpt-4o-mini", **kwargs: Any) -> None:
        """
        Initialize the OpenRouter provider.

        Args:
            model_id: The model ID (e.g., "openai/gpt-4o-mini", "anthropic/claude-3-haiku").
            **kwargs: Generation parameters accepted by LLMProvider.
        """
        super().__init__(model_id=model_id, **kwargs)


class OpenAIProvider(LLMProvider):
    """OpenAI provider using LiteLLM."""

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def env_key_name(self) -> str:
        return "OPENAI_API_KEY"

    def __init__(self, model_id: str = "gpt-4o-mini", **kwargs: Any) -> None:
        super().__init__(model_id=model_id, **kwargs)


class AnthropicProvider(LLMProvider):
    """Anthropic provider using LiteLLM."""

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def env_key_name(self) -> str:
        return "ANTHROPIC_API_KEY"

    def __init__(self, model_id: str = "claude-3-5-haiku-latest", **kwargs: Any) -> None:
        super().__init__(model_id=model_id, **kwargs)


class OllamaProvider(LLMProvider):
    """Ollama provider using LiteLLM. Typically runs locally without API key."""

    @property
    def provider_name(self) -> str:
        return "ollama_chat"

    @property
    def env_key_name(self) -> str:
        return "OLLAMA_API_BASE"

    def _get_api_key(self) -> str:
        """Ollama doesn't require an API key."""
        return ""

    def __init__(
        self,
        model_id: str = "llama3",
        api_base: str | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize the Ollama provider.

        Args:
            model_id: The model ID (e.g., "llama3", "mistral", "codellama").
            api_base: Base URL for Ollama API (default: "http://localhost:11434").
            **kwargs: Generation parameters accepted by LLMProvider.
        """
        if api_base:
            os.environ["OLLAMA_API_BASE"] = api_base

        super().__init__(model_id=model_id, api_key="", **kwargs)


def openrouter(model_id: str = "openai/gpt-4o-mini", **kwargs: Any) -> OpenRouterProvider:
    """
    Create an OpenRouter provider.

    Example:
        >>> model = openrouter("anthropic/claude-3-haiku", temperature=0.7)
    """
    return OpenRouterProvider(model_id=model_id, **kwargs)


def openai(model_id: str = "gpt-4o-mini", **kwargs: Any) -> OpenAIProvider:
    """Create an OpenAI provider."""
    return OpenAIProvider(model_id=model_id, **kwargs)


def anthropic(model_id: str = "claude-3-5-haiku-latest", **kwargs: Any) -> AnthropicProvider:
    """Create an Anthropic provider."""
    return AnthropicProvider(model_id=model_id, **kwargs)


def ollama(model_id: str = "llama3", **kwargs: Any) -> OllamaProvider:
    """
    Create an Ollama provider.

    Example:
        >>> model = ollama("codellama", temperature=0.2)
    """
    return OllamaProvider(model_id=model_id, **kwargs)
