"""Per-row resolution state handed explicitly through the schema walk."""

import inspect
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar, Union

from convoset.core import selection
from convoset.core.rng import RngStream
from convoset.core.types import (
    DatasetMessage,
    EntryKind,
    Message,
    Phase,
    StructuralPlan,
    ToolCallPart,
    ToolSpec,
)
from convoset.core.unique import UniqueBy, UniqueSelectionStore
from convoset.llm.provider import AIClient

T = TypeVar("T")

FINAL_SUFFIX = "-FINAL"

MessageProvider = Union[
    Sequence[Message],
    Callable[["ResolutionContext"], Union[Sequence[Message], Awaitable[Sequence[Message]]]],
]


def normalize_call_id(call_id: str) -> str:
    """Map a deferred call id (``"search-1-FINAL"``) to its first call."""
    return call_id.removesuffix(FINAL_SUFFIX)


@dataclass
class GenerationContext:
    """
    Extra prompt messages prepended to model calls.

    ``global_`` applies to every call; the other providers apply to calls
    producing that kind of entry. A provider is either a list of messages or
    a (possibly async) callable receiving the ``ResolutionContext``.
    """

    global_: MessageProvider | None = None
    system: MessageProvider | None = None
    user: MessageProvider | None = None
    assistant: MessageProvider | None = None
    tool_call: MessageProvider | None = None
    tool_result: MessageProvider | None = None

    async def messages_for(self, target: str, ctx: "ResolutionContext") -> list[Message]:
        """Return the global messages followed by those for ``target``."""
        collected: list[Message] = []
        for provider in (self.global_, getattr(self, target, None)):
            if provider is None:
                continue
            if callable(provider):
                provided = provider(ctx)
                if inspect.isawaitable(provided):
                    provided = await provided
            else:
                provided = provider
            collected.extend(dict(message) for message in provided or ())
        return collected


@dataclass
class ResolutionContext:
    """
    Everything a node sees while it resolves.

    One context exists per phase of one row. ``messages``, ``tools`` and
    ``metadata`` accumulate as the walk proceeds. Random helpers draw from
    the row stream only; ``random()`` and friends are the sanctioned way for
    ``dynamic`` factories to make decisions.
    """

    phase: Phase
    stream: RngStream
    unique_store: UniqueSelectionStore
    plan: StructuralPlan
    ai: AIClient | None = None
    generation_context: GenerationContext | None = None
    seed: int | None = None
    row_index: int | None = None
    messages: list[DatasetMessage] = field(default_factory=list)
    tools: list[ToolSpec] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def is_check(self) -> bool:
        return self.phase is Phase.CHECK

    @property
    def is_generate(self) -> bool:
        return self.phase is Phase.GENERATE

    @property
    def draws(self) -> int:
        return self.stream.draws

    @property
    def step(self) -> int:
        """Index of the next entry to be produced."""
        if self.is_check:
            return len(self.plan.entries)
        return len(self.messages)

    def random(self) -> float:
        return self.stream.next()

    def one_of(self, options: Sequence[T], unique_by: UniqueBy | None = None) -> T:
        return selection.weighted_choice(
            self.stream, options, unique_by=unique_by, store=self.unique_store
        )

    def between(self, minimum: int, maximum: int) -> int:
        return selection.between(self.stream, minimum, maximum)

    def chance(self, probability: float = 0.5) -> bool:
        return selection.chance(self.stream, probability)

    def sample(self, n: int, items: Sequence[T]) -> list[T]:
        return selection.sample(self.stream, n, items)

    def add_tool(self, spec: ToolSpec) -> None:
        """Register a tool in the catalogue; first definition of a name wins."""
        if any(existing.name == spec.name for existing in self.tools):
            return
        self.tools.append(spec)

    def find_tool_call(self, call_id: str) -> ToolCallPart | None:
        """
        Find an earlier tool call by id, falling back to the normalized id.

        Generate phase only: looks at materialized messages.
        """
        for candidate in dict.fromkeys((call_id, normalize_call_id(call_id))):
            for message in self.messages:
                if message.kind is not EntryKind.TOOL_CALL:
                    continue
                for part in message.tool_calls or ():
                    if part.id == candidate:
                        return part
        return None

    def has_planned_tool_call(self, call_id: str) -> bool:
        """Check phase counterpart of ``find_tool_call``."""
        return any(
            self.plan.has_tool_call(candidate)
            for candidate in (call_id, normalize_call_id(call_id))
        )

