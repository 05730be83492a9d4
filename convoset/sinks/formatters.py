"""Row formatters: the shape each row takes when handed to a writer."""

import json
from abc import ABC, abstractmethod
from typing import Any

from convoset.core.config import ExportFormat
from convoset.core.types import DatasetMessage, DatasetRow, ToolSpec


class RowFormatter(ABC):
    """Turns a ``DatasetRow`` into a JSON-serializable dict."""

    columns: tuple[str, ...] = ()
    """Top-level keys of every formatted row, in order."""

    @abstractmethod
    def format(self, row: DatasetRow) -> dict[str, Any]:
        pass


class MessagesFormatter(RowFormatter):
    """The row exactly as generated."""

    columns = ("messages", "tools", "plan", "meta")

    def format(self, row: DatasetRow) -> dict[str, Any]:
        return row.model_dump(mode="json")


def _text_parts(content: Any) -> list[dict[str, Any]]:
    if content is None:
        return []
    if isinstance(content, list):
        return content
    if not isinstance(content, str):
        content = json.dumps(content, ensure_ascii=False)
    return [{"type": "text", "text": content}]


class ChatTemplateFormatter(RowFormatter):
    """
    OpenAI-style ``tools`` and ``messages`` for chat-template training.

    Tools become ``{"type": "function", "function": {...}}`` entries. Message
    content becomes a list of typed parts: ``text``, ``tool_call`` and
    ``tool_result``.
    """

    columns = ("tools", "messages")

    @staticmethod
    def _tool(spec: ToolSpec) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.parameters,
            },
        }

    @staticmethod
    def _message(message: DatasetMessage) -> dict[str, Any]:
        if message.role == "tool":
            parts = [
                {
                    "type": "tool_result",
                    "tool_call_id": message.tool_call_id,
                    "tool_name": message.name,
                    "output": message.content,
                }
            ]
        else:
            parts = _text_parts(message.content)
            for call in message.tool_calls or ():
                parts.append(
                    {
                        "type": "tool_call",
                        "tool_call_id": call.id,
                        "tool_name": call.name,
                        "input": call.arguments,
                    }
                )
        return {"role": message.role, "content": parts}

    def format(self, row: DatasetRow) -> dict[str, Any]:
        return {
            "tools": [self._tool(spec) for spec in row.tools],
            "messages": [self._message(m) for m in row.messages],
        }


def create_formatter(export_format: str | ExportFormat) -> RowFormatter:
    """Return the formatter for ``export_format``."""
    match ExportFormat(export_format):
        case ExportFormat.MESSAGES:
            return MessagesFormatter()
        case ExportFormat.CHAT_TEMPLATE:
            return ChatTemplateFormatter()
