"""Schema tree nodes and the DSL used to build them.

A conversation schema is a tree of frozen node values. Leaves produce
conversation entries (static or generated messages, tool calls, tool
results); inner nodes decide structure (groups, weighted choices,
repetition, optional branches) or contribute data (tool definitions,
metadata). ``Dynamic`` nodes run user code against the resolution context
and must return another node.

Plain Python values are coerced where a node is expected: a list becomes a
``Group`` and ``None`` becomes ``Null``.
"""

import json
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from pydantic import BaseModel

from convoset.core.errors import SchemaError
from convoset.core.selection import Weighted, weighted
from convoset.core.types import ToolSpec
from convoset.core.unique import ItemIdResolver, UniqueBy

if TYPE_CHECKING:
    from convoset.schema.context import ResolutionContext


class _NotGiven:
    def __repr__(self) -> str:
        return "NOT_GIVEN"

    def __bool__(self) -> bool:
        return False


NOT_GIVEN: Any = _NotGiven()
"""Marker for optional static payloads where ``None`` is a legal value."""


class Node:
    """Base class of every schema node."""

    __slots__ = ()


@dataclass(frozen=True)
class StaticMessage(Node):
    """A message with fixed content."""

    role: str
    content: Any


@dataclass(frozen=True)
class GeneratedMessage(Node):
    """A message whose content the model writes from ``prompt``."""

    role: str
    prompt: str


@dataclass(frozen=True)
class ToolDefinition(Node):
    """
    A tool the conversation can use.

    Placing the definition in the tree registers it in the row's tool
    catalogue. ``call()`` and ``result()`` build the nodes that invoke it.
    """

    name: str
    description: str
    parameters: type[BaseModel] | None = None
    output: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise SchemaError("tool name must be a non-empty string")

    @property
    def takes_arguments(self) -> bool:
        return _has_fields(self.parameters)

    @property
    def returns_value(self) -> bool:
        return _has_fields(self.output)

    def spec(self) -> ToolSpec:
        """Return the catalogue entry of this tool."""
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=_json_schema(self.parameters),
            output=_json_schema(self.output),
        )

    def call(
        self,
        call_id: str,
        arguments: Mapping[str, Any] | None = None,
        *,
        reuse_args_from: str | None = None,
        prompt: str | None = None,
    ) -> "ToolCall":
        """
        Build a node that invokes this tool.

        Args:
            call_id: Identifier of the call; results refer to it.
            arguments: Static arguments. Generated by the model when omitted.
            reuse_args_from: Id of an earlier call whose arguments are reused.
                Used to pair a deferred "-FINAL" call with its first call.
            prompt: Extra instructions for argument generation.
        """
        return ToolCall(
            tool=self,
            call_id=call_id,
            arguments=arguments,
            reuse_args_from=reuse_args_from,
            prompt=prompt,
        )

    def result(
        self,
        call_id: str,
        result: Any = NOT_GIVEN,
        *,
        prompt: str | None = None,
    ) -> "ToolCallResult":
        """Build a node holding the result of the call ``call_id``."""
        return ToolCallResult(tool=self, call_id=call_id, result=result, prompt=prompt)


@dataclass(frozen=True)
class ToolCall(Node):
    """An assistant turn invoking ``tool``."""

    tool: ToolDefinition
    call_id: str
    arguments: Mapping[str, Any] | None = None
    reuse_args_from: str | None = None
    prompt: str | None = None


@dataclass(frozen=True)
class ToolCallResult(Node):
    """The tool's answer to the call ``call_id``."""

    tool: ToolDefinition
    call_id: str
    result: Any = NOT_GIVEN
    prompt: str | None = None


@dataclass(frozen=True)
class Group(Node):
    """Children resolved in order."""

    nodes: tuple[Node, ...] = ()


@dataclass(frozen=True)
class Null(Node):
    """Produces nothing."""


@dataclass(frozen=True)
class OneOf(Node):
    """Weighted choice among options; one draw per resolution."""

    options: tuple[Any, ...]
    unique_by: UniqueBy | None = None


@dataclass(frozen=True)
class Between:
    """Inclusive integer range resolved with one draw."""

    minimum: int
    maximum: int

    def __post_init__(self) -> None:
        if self.minimum > self.maximum:
            raise SchemaError(
                f"between requires min <= max, got {self.minimum} > {self.maximum}"
            )


@dataclass(frozen=True)
class Times(Node):
    """``node`` repeated a fixed or randomly drawn number of times."""

    count: int | Between
    node: Node


@dataclass(frozen=True)
class OptionalNode(Node):
    """``node`` included with ``probability``; one draw per resolution."""

    node: Node
    probability: float = 0.5


@dataclass(frozen=True)
class Metadata(Node):
    """
    Merge into the row metadata.

    ``update`` is either a mapping merged over the current metadata, or a
    callable receiving a mutable copy and returning the new metadata (or
    ``None`` to keep the mutated copy). Applied during the Check phase only.
    """

    update: Mapping[str, Any] | Callable[[dict[str, Any]], Mapping[str, Any] | None]


@dataclass(frozen=True)
class Dynamic(Node):
    """User code run against the resolution context; must return a node."""

    factory: Callable[["ResolutionContext"], Any] = field(repr=False)


NodeLike = Union[Node, Sequence["NodeLike"], None]
SchemaFactory = Union[Node, Sequence[NodeLike], Callable[[], NodeLike]]

NULL = Null()


def as_node(value: Any) -> Node:
    """Coerce ``value`` into a node: lists become groups, None becomes null."""
    if isinstance(value, Node):
        return value
    if value is None:
        return NULL
    if isinstance(value, (list, tuple)):
        return Group(tuple(as_node(item) for item in value))
    raise SchemaError(f"Expected a schema node, got {type(value).__name__}: {value!r}")


def resolve_schema(schema: SchemaFactory) -> Node:
    """Build the root node of a schema entry for one row."""
    if isinstance(schema, (Node, list, tuple)) or schema is None:
        return as_node(schema)
    if callable(schema):
        return as_node(schema())
    raise SchemaError(f"Invalid schema: {schema!r}")


def _has_fields(model: type[BaseModel] | None) -> bool:
    return model is not None and bool(model.model_fields)


def _json_schema(model: type[BaseModel] | None) -> dict[str, Any]:
    if model is None:
        return {"type": "object", "properties": {}}
    return model.model_json_schema()


def _static_content(content: Any) -> Any:
    if isinstance(content, (str, list)) or content is None:
        return content
    if isinstance(content, BaseModel):
        return content.model_dump(mode="json")
    if isinstance(content, Mapping):
        return json.loads(json.dumps(content, default=str))
    raise SchemaError(f"Unsupported message content: {type(content).__name__}")


# DSL


def system(content: Any) -> StaticMessage:
    return StaticMessage("system", _static_content(content))


def user(content: Any) -> StaticMessage:
    return StaticMessage("user", _static_content(content))


def assistant(content: Any) -> StaticMessage:
    return StaticMessage("assistant", _static_content(content))


def generated_system(prompt: str) -> GeneratedMessage:
    return GeneratedMessage("system", prompt)


def generated_user(prompt: str) -> GeneratedMessage:
    return GeneratedMessage("user", prompt)


def generated_assistant(prompt: str) -> GeneratedMessage:
    return GeneratedMessage("assistant", prompt)


def tool(
    name: str,
    description: str,
    parameters: type[BaseModel] | None = None,
    output: type[BaseModel] | None = None,
) -> ToolDefinition:
    """
    Define a tool.

    Example:
        >>> weather = tool("weather", "Get the weather", WeatherArgs, WeatherResult)
        >>> schema = [weather, user("Weather in Paris?"), weather.call("w1"),
        ...           weather.result("w1"), generated_assistant("Summarize")]
    """
    return ToolDefinition(name=name, description=description, parameters=parameters, output=output)


def group(*nodes: NodeLike) -> Group:
    return Group(tuple(as_node(node) for node in nodes))


def one_of(options: Sequence[Any], *, unique_by: UniqueBy | None = None) -> OneOf:
    """
    Choose one of ``options`` by weight.

    Options may be plain nodes, ``weighted(node, w)`` wrappers, or
    ``{"value": node, "weight": w}`` mappings. Unweighted options share the
    probability mass left over by the weighted ones. Weights are validated
    when the node is first resolved.
    """
    if isinstance(options, (str, bytes)) or not isinstance(options, Sequence):
        raise SchemaError("one_of options must be a sequence")
    return OneOf(options=tuple(options), unique_by=unique_by)


def unique_one_of(
    options: Sequence[Any],
    collection: str,
    item_id: ItemIdResolver | None = None,
) -> OneOf:
    """``one_of`` without replacement within ``collection``."""
    return one_of(options, unique_by=UniqueBy(collection=collection, item_id=item_id))


def times(count: int | Between, node: NodeLike) -> Times:
    """Repeat ``node``; ``count`` may be ``between(min, max)``."""
    if isinstance(count, int) and count < 0:
        raise SchemaError(f"times count must be 0 or greater, got {count}")
    return Times(count=count, node=as_node(node))


def between(minimum: int, maximum: int) -> Between:
    return Between(minimum, maximum)


def optional(node: NodeLike, probability: float = 0.5) -> OptionalNode:
    return OptionalNode(node=as_node(node), probability=probability)


def metadata(
    update: Mapping[str, Any] | Callable[[dict[str, Any]], Mapping[str, Any] | None],
) -> Metadata:
    return Metadata(update=update)


def dynamic(
    factory: Callable[["ResolutionContext"], NodeLike | Awaitable[NodeLike]],
) -> Dynamic:
    """
    Build part of the tree at resolution time.

    ``factory`` receives the ``ResolutionContext`` and may be a coroutine
    function. Every random decision must go through the context helpers so
    both phases draw the same values.
    """
    return Dynamic(factory=factory)


__all__ = [
    "NOT_GIVEN",
    "Node",
    "StaticMessage",
    "GeneratedMessage",
    "ToolDefinition",
    "ToolCall",
    "ToolCallResult",
    "Group",
    "Null",
    "OneOf",
    "Between",
    "Times",
    "OptionalNode",
    "Metadata",
    "Dynamic",
    "Weighted",
    "weighted",
    "NodeLike",
    "SchemaFactory",
    "as_node",
    "resolve_schema",
    "system",
    "user",
    "assistant",
    "generated_system",
    "generated_user",
    "generated_assistant",
    "tool",
    "group",
    "one_of",
    "unique_one_of",
    "times",
    "between",
    "optional",
    "metadata",
    "dynamic",
]
