"""Core data types shared by the interpreter, the row orchestrator and the writers."""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]
"""Conversation roles a generated message can take."""

Message = dict[str, Any]
"""A plain ``{"role": ..., "content": ...}`` message as sent to the model."""


class Phase(str, Enum):
    """Resolution phase of a schema walk."""

    CHECK = "check"
    """Dry run: placeholders instead of model calls, fixes shape and draw counts."""

    GENERATE = "generate"
    """Real run: model calls, cross-checked against the Check phase plan."""


class EntryKind(str, Enum):
    """Kind of a planned or generated conversation entry."""

    MESSAGE = "message"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"


class ToolCallPart(BaseModel):
    """A single tool invocation attached to an assistant message."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class DatasetMessage(BaseModel):
    """A materialized message of a dataset row."""

    role: Role
    content: Any = None
    tool_calls: list[ToolCallPart] | None = None
    tool_call_id: str | None = None
    name: str | None = None
    generation_id: str

    @property
    def kind(self) -> EntryKind:
        if self.role == "tool":
            return EntryKind.TOOL_RESULT
        if self.tool_calls:
            return EntryKind.TOOL_CALL
        return EntryKind.MESSAGE


class ToolSpec(BaseModel):
    """A tool as listed in a row's tool catalogue."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    output: dict[str, Any] = Field(default_factory=dict)


class PlanEntry(BaseModel):
    """One planned step of a conversation, recorded during the Check phase."""

    kind: EntryKind
    role: Role
    content: Any = None
    tool_name: str | None = None
    tool_call_id: str | None = None
    arguments: Any = None
    draw_count: int = 0
    """Cumulative random draws consumed up to and including this entry."""

    @property
    def step_type(self) -> str:
        if self.kind is EntryKind.TOOL_CALL:
            return f"tool-call ({self.tool_name})"
        if self.kind is EntryKind.TOOL_RESULT:
            return f"tool-result ({self.tool_name})"
        return f"{self.role} message"

    def preview(self, limit: int = 50) -> str:
        """Return a short preview of the planned content for diagnostics."""
        if isinstance(self.content, str):
            text = self.content
        elif self.content is None:
            return ""
        else:
            text = "[complex content]"
        return text[:limit] + ("..." if len(text) > limit else "")


class StructuralPlan(BaseModel):
    """Ordered plan entries, the tool catalogue and schema metadata of one row."""

    entries: list[PlanEntry] = Field(default_factory=list)
    tools: list[ToolSpec] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def draw_counts(self) -> list[int]:
        return [entry.draw_count for entry in self.entries]

    def has_tool_call(self, call_id: str) -> bool:
        return any(
            entry.kind is EntryKind.TOOL_CALL and entry.tool_call_id == call_id
            for entry in self.entries
        )

    def __len__(self) -> int:
        return len(self.entries)


class TokenCount(BaseModel):
    """Advisory token usage of a row."""

    message_tokens: int
    tool_tokens: int
    total: int


class RowMeta(BaseModel):
    """Provenance information attached to every row."""

    seed: int | None = None
    model: str
    output: str | None = None
    start_timestamp: str
    token_count: TokenCount | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class DatasetRow(BaseModel):
    """Terminal artifact of a row generation."""

    model_config = ConfigDict(frozen=True)

    messages: list[DatasetMessage]
    tools: list[ToolSpec] = Field(default_factory=list)
    plan: StructuralPlan
    meta: RowMeta
