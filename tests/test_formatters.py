import pytest

from conftest import sample_row
from convoset.core.config import ExportFormat
from convoset.sinks.formatters import (
    ChatTemplateFormatter,
    MessagesFormatter,
    create_formatter,
)


def test_messages_formatter_keeps_row_shape():
    record = MessagesFormatter().format(sample_row(seed=5))

    assert list(record) == ["messages", "tools", "plan", "meta"]
    assert record["meta"]["seed"] == 5
    assert record["messages"][1]["tool_calls"][0]["arguments"] == {"city": "Paris"}
    assert record["messages"][0]["generation_id"] == "user_1"


class TestChatTemplateFormatter:
    """OpenAI-style tools and typed message parts."""

    def setup_method(self):
        self.record = ChatTemplateFormatter().format(sample_row())

    def test_tools_are_functions(self):
        assert self.record["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "weather",
                    "description": "Get the weather",
                    "parameters": {"type": "object", "properties": {"city": {"type": "string"}}},
                },
            }
        ]

    def test_text_parts(self):
        first = self.record["messages"][0]
        assert first == {"role": "user", "content": [{"type": "text", "text": "Weather in Paris?"}]}

    def test_tool_call_parts(self):
        call = self.record["messages"][1]
        assert call["role"] == "assistant"
        assert call["content"] == [
            {"type": "tool_call", "tool_call_id": "w1", "tool_name": "weather", "input": {"city": "Paris"}}
        ]

    def test_tool_result_parts(self):
        result = self.record["messages"][2]
        assert result["role"] == "tool"
        assert result["content"][0]["type"] == "tool_result"
        assert result["content"][0]["output"] == {"temperature": 21.0}


@pytest.mark.parametrize(
    "export_format, expected",
    [
        ("messages", MessagesFormatter),
        ("chat_template", ChatTemplateFormatter),
        (ExportFormat.CHAT_TEMPLATE, ChatTemplateFormatter),
    ],
)
def test_create_formatter(export_format, expected):
    assert isinstance(create_formatter(export_format), expected)
