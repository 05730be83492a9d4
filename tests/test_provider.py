from types import SimpleNamespace

import litellm
import pytest
from pydantic import BaseModel

from convoset.core.errors import AIClientError
from convoset.llm.ordering import hoist_system_messages
from convoset.llm.parsing import JSONParser, TextParser, strip_code_fences
from convoset.llm.provider import (
    GeneratedText,
    OllamaProvider,
    OpenRouterProvider,
    SystemHoistingClient,
    openai,
)


class Answer(BaseModel):
    answer: str
    confidence: float


def fake_response(content, response_id="resp-1"):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(id=response_id, choices=[SimpleNamespace(message=message)])


@pytest.fixture
def captured(monkeypatch):
    calls = {}

    async def fake_acompletion(**kwargs):
        calls.update(kwargs)
        return fake_response("  Paris  ")

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    return calls


class TestLLMProvider:
    """LiteLLM-backed providers with a patched acompletion."""

    @pytest.mark.asyncio
    async def test_generate_text(self, monkeypatch, captured):
        monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
        provider = OpenRouterProvider("openai/gpt-4o-mini", temperature=0.3, max_tokens=50)

        generated = await provider.generate_text([{"role": "user", "content": "Capital of France?"}])

        assert generated == GeneratedText(text="Paris", response_id="resp-1")
        assert captured["model"] == "openrouter/openai/gpt-4o-mini"
        assert captured["temperature"] == 0.3
        assert captured["max_tokens"] == 50
        assert "top_p" not in captured

    @pytest.mark.asyncio
    async def test_generate_object_parses_fenced_json(self, monkeypatch):
        captured = {}

        async def fake_acompletion(**kwargs):
            captured.update(kwargs)
            return fake_response('```json\n{"answer": "Paris", "confidence": 0.9}\n```')

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        provider = openai(api_key="sk-test")

        generated = await provider.generate_object(Answer, [{"role": "user", "content": "?"}])

        assert generated.value == {"answer": "Paris", "confidence": 0.9}
        assert captured["response_format"] is Answer
        assert captured["model"] == "openai/gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_invalid_structured_output_raises(self, monkeypatch):
        async def fake_acompletion(**kwargs):
            return fake_response("no json here")

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        provider = openai(api_key="sk-test")

        with pytest.raises(AIClientError):
            await provider.generate_object(Answer, [{"role": "user", "content": "?"}])

    @pytest.mark.asyncio
    async def test_provider_failure_wrapped(self, monkeypatch):
        async def fake_acompletion(**kwargs):
            raise ConnectionError("network down")

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        provider = openai(api_key="sk-test")

        with pytest.raises(AIClientError) as exc_info:
            await provider.generate_text([{"role": "user", "content": "?"}])
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        with pytest.raises(ValueError):
            OpenRouterProvider()

    def test_ollama_needs_no_key(self, monkeypatch):
        monkeypatch.delenv("OLLAMA_API_BASE", raising=False)
        provider = OllamaProvider("llama3")
        assert provider.model_id == "llama3"
        assert provider._get_model_string() == "ollama_chat/llama3"


@pytest.mark.asyncio
async def test_system_hoisting_client(stub_ai):
    client = SystemHoistingClient(stub_ai)
    await client.generate_text(
        [
            {"role": "user", "content": "u1"},
            {"role": "system", "content": "s1"},
            {"role": "assistant", "content": "a1"},
        ]
    )
    _, sent = stub_ai.calls[0]
    assert [m["content"] for m in sent] == ["s1", "u1", "a1"]
    assert client.model_id == "stub-model"


def test_hoist_keeps_ordered_list():
    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    assert hoist_system_messages(messages) is messages


class TestParsers:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences("plain") == "plain"

    def test_text_parser(self):
        assert TextParser().parse("  hi \n") == "hi"
        assert TextParser().parse(None) == ""

    def test_json_parser_extracts_embedded_object(self):
        parsed = JSONParser().parse('Sure! {"answer": "x", "confidence": 1} Done.', Answer)
        assert parsed == Answer(answer="x", confidence=1.0)

    def test_json_parser_accepts_dict(self):
        assert JSONParser().parse({"answer": "y", "confidence": 0.5}, Answer).answer == "y"

    def test_json_parser_rejects_garbage(self):
        with pytest.raises(ValueError):
            JSONParser().parse("nothing", Answer)
