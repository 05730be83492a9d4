import pytest
from pydantic import BaseModel

from conftest import StubAI
from convoset.core.errors import ToolCallNotFoundError
from convoset.core.rng import RngStream
from convoset.core.types import EntryKind
from convoset.schema.context import normalize_call_id
from convoset.schema.interpreter import TreeInterpreter
from convoset.schema.nodes import assistant, generated_assistant, tool, user


async def run_both(schema, ai, seed=1):
    interpreter = TreeInterpreter(ai, seed=seed)
    stream = RngStream(seed)
    plan = await interpreter.check(schema, stream)
    return await interpreter.generate(schema, stream, plan)


def test_normalize_call_id():
    assert normalize_call_id("search-1-FINAL") == "search-1"
    assert normalize_call_id("search-1") == "search-1"
    assert normalize_call_id("FINAL") == "FINAL"


class TestToolCallLifecycle:
    """Tool calls, deferred results and argument reuse."""

    @pytest.mark.asyncio
    async def test_generated_arguments_and_result(self, weather_tool):
        ai = StubAI(
            objects={
                "WeatherArgs": {"city": "Paris", "unit": "celsius"},
                "WeatherResult": {"temperature": 21.5, "conditions": "sunny"},
            }
        )
        schema = [
            weather_tool,
            user("What's the weather in Paris?"),
            weather_tool.call("w1"),
            weather_tool.result("w1"),
            generated_assistant("Summarize the weather"),
        ]
        result = await run_both(schema, ai)

        call, answer = result.messages[1], result.messages[2]
        assert call.kind is EntryKind.TOOL_CALL
        assert call.tool_calls[0].id == "w1"
        assert call.tool_calls[0].name == "weather"
        assert call.tool_calls[0].arguments == {"city": "Paris", "unit": "celsius"}
        assert answer.role == "tool"
        assert answer.tool_call_id == "w1"
        assert answer.content == {"temperature": 21.5, "conditions": "sunny"}
        assert [t.name for t in result.tools] == ["weather"]

    @pytest.mark.asyncio
    async def test_deferred_result_reuses_first_arguments(self, weather_tool):
        generated = []

        def next_args(messages):
            generated.append(len(generated))
            return {"city": f"City {len(generated)}"}

        ai = StubAI(objects={"WeatherArgs": next_args})
        schema = [
            weather_tool,
            user("Check the weather, it may take a while"),
            weather_tool.call("a"),
            weather_tool.result("a", {"status": "pending"}),
            assistant("Still waiting on the forecast."),
            weather_tool.call("a-FINAL", reuse_args_from="a"),
            weather_tool.result("a-FINAL"),
        ]
        result = await run_both(schema, ai)

        first_call = result.messages[1].tool_calls[0]
        final_call = result.messages[4].tool_calls[0]
        assert final_call.id == "a-FINAL"
        assert final_call.arguments == first_call.arguments == {"city": "City 1", "unit": "celsius"}
        assert len(generated) == 1

        result_call_kinds = [kind for kind, _ in ai.calls if kind == "object:WeatherResult"]
        assert len(result_call_kinds) == 1
        _, result_prompt = next(c for c in ai.calls if c[0] == "object:WeatherResult")
        assert "City 1" in result_prompt[0]["content"]

    @pytest.mark.asyncio
    async def test_result_for_unknown_call_fails_in_check(self, stub_ai, weather_tool):
        schema = [weather_tool, user("Hi"), weather_tool.result("missing")]
        with pytest.raises(ToolCallNotFoundError) as exc_info:
            await run_both(schema, stub_ai)
        assert exc_info.value.call_id == "missing"
        assert stub_ai.calls == []

    @pytest.mark.asyncio
    async def test_reuse_from_unknown_call_fails(self, stub_ai, weather_tool):
        schema = [weather_tool, weather_tool.call("b-FINAL", reuse_args_from="b")]
        with pytest.raises(ToolCallNotFoundError):
            await run_both(schema, stub_ai)

    @pytest.mark.asyncio
    async def test_result_lookup_strips_final_suffix(self, weather_tool):
        ai = StubAI(objects={"WeatherArgs": {"city": "Oslo"}})
        schema = [weather_tool, weather_tool.call("s1"), weather_tool.result("s1-FINAL", {"ok": True})]
        result = await run_both(schema, ai)
        assert result.messages[1].tool_call_id == "s1-FINAL"
        assert result.messages[1].content == {"ok": True}

    @pytest.mark.asyncio
    async def test_empty_schemas_skip_the_model(self, stub_ai):
        ping = tool("ping", "Check connectivity")
        schema = [ping, user("Are we online?"), ping.call("p1"), ping.result("p1")]
        result = await run_both(schema, stub_ai)

        assert result.messages[1].tool_calls[0].arguments == {}
        assert result.messages[2].content == {}
        assert stub_ai.calls == []

    @pytest.mark.asyncio
    async def test_static_arguments_are_validated(self, stub_ai, weather_tool):
        schema = [weather_tool, weather_tool.call("w1", {"city": "Rome"}), weather_tool.result("w1", "22C")]
        result = await run_both(schema, stub_ai)

        assert result.messages[0].tool_calls[0].arguments == {"city": "Rome", "unit": "celsius"}
        assert result.messages[1].content == "22C"
        assert stub_ai.calls == []

    @pytest.mark.asyncio
    async def test_single_result_field_is_unwrapped(self):
        class Lookup(BaseModel):
            query: str

        class LookupOutput(BaseModel):
            result: list[str]

        search = tool("search", "Search the docs", Lookup, LookupOutput)
        ai = StubAI(objects={"Lookup": {"query": "q"}, "LookupOutput": {"result": ["doc-1"]}})
        result = await run_both([search, search.call("s"), search.result("s")], ai)
        assert result.messages[1].content == ["doc-1"]

    @pytest.mark.asyncio
    async def test_tool_prompts_include_json_schema(self, weather_tool):
        ai = StubAI()
        await run_both([weather_tool, user("Weather?"), weather_tool.call("w1", prompt="Pick a coastal city")], ai)

        kind, messages = ai.calls[0]
        assert kind == "object:WeatherArgs"
        assert "Pick a coastal city" in messages[0]["content"]
        assert '"city"' in messages[-1]["content"]

