"""Advisory token counting on a bounded pool of worker threads."""

import asyncio
from abc import ABC, abstractmethod

import litellm
from loguru import logger

from convoset.core.types import DatasetMessage, TokenCount, ToolSpec


class TokenCounter(ABC):
    """Counts the tokens of a finished row. Results are advisory only."""

    @abstractmethod
    async def count(
        self,
        messages: list[DatasetMessage],
        tools: list[ToolSpec],
        model: str | None = None,
    ) -> TokenCount:
        pass

    async def close(self) -> None:
        """Release any resources held by the counter."""
        return None


class LiteLLMTokenCounter(TokenCounter):
    """
    Token counter backed by ``litellm.token_counter``.

    Tokenization is CPU-bound, so it runs in worker threads; at most
    ``workers`` rows are tokenized at the same time.
    """

    def __init__(self, workers: int = 3, default_model: str = "gpt-4o") -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self.default_model = default_model
        self._semaphore = asyncio.Semaphore(workers)

    def _count_sync(
        self,
        messages: list[DatasetMessage],
        tools: list[ToolSpec],
        model: str,
    ) -> TokenCount:
        message_tokens = sum(
            litellm.token_counter(
                model=model, text=m.model_dump_json(exclude={"generation_id"})
            )
            for m in messages
        )
        tool_tokens = sum(
            litellm.token_counter(model=model, text=t.model_dump_json()) for t in tools
        )
        return TokenCount(
            message_tokens=message_tokens,
            tool_tokens=tool_tokens,
            total=message_tokens + tool_tokens,
        )

    async def count(
        self,
        messages: list[DatasetMessage],
        tools: list[ToolSpec],
        model: str | None = None,
    ) -> TokenCount:
        async with self._semaphore:
            return await asyncio.to_thread(
                self._count_sync, messages, tools, model or self.default_model
            )


async def count_tokens_safely(
    counter: TokenCounter | None,
    messages: list[DatasetMessage],
    tools: list[ToolSpec],
    model: str | None = None,
) -> TokenCount | None:
    """Count tokens, logging and swallowing counter failures."""
    if counter is None:
        return None
    try:
        return await counter.count(messages, tools, model)
    except Exception as e:
        logger.warning(f"Token counting failed | Model: {model} | Error: {e}")
        return None
