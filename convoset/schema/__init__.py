"""Schema DSL, resolution context and the two-phase interpreter."""

from convoset.schema.context import GenerationContext, ResolutionContext, normalize_call_id
from convoset.schema.interpreter import GenerationResult, TreeInterpreter
from convoset.schema.nodes import (
    Between,
    Dynamic,
    GeneratedMessage,
    Group,
    Metadata,
    Node,
    Null,
    OneOf,
    OptionalNode,
    SchemaFactory,
    StaticMessage,
    Times,
    ToolCall,
    ToolCallResult,
    ToolDefinition,
    as_node,
    assistant,
    between,
    dynamic,
    generated_assistant,
    generated_system,
    generated_user,
    group,
    metadata,
    one_of,
    optional,
    resolve_schema,
    system,
    times,
    tool,
    unique_one_of,
    user,
    weighted,
)

__all__ = [
    "GenerationContext",
    "ResolutionContext",
    "normalize_call_id",
    "GenerationResult",
    "TreeInterpreter",
    "Between",
    "Dynamic",
    "GeneratedMessage",
    "Group",
    "Metadata",
    "Node",
    "Null",
    "OneOf",
    "OptionalNode",
    "SchemaFactory",
    "StaticMessage",
    "Times",
    "ToolCall",
    "ToolCallResult",
    "ToolDefinition",
    "as_node",
    "assistant",
    "between",
    "dynamic",
    "generated_assistant",
    "generated_system",
    "generated_user",
    "group",
    "metadata",
    "one_of",
    "optional",
    "resolve_schema",
    "system",
    "times",
    "tool",
    "unique_one_of",
    "user",
    "weighted",
]
