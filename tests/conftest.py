"""Shared fixtures: a deterministic AI stub and scripted random streams."""

import asyncio
import hashlib
import json
import typing
from collections.abc import Callable
from typing import Any

import pytest
from pydantic import BaseModel, Field

from convoset.core.errors import AIClientError
from convoset.core.rng import RngStream
from convoset.core.types import (
    DatasetMessage,
    DatasetRow,
    Message,
    PlanEntry,
    RowMeta,
    StructuralPlan,
    ToolCallPart,
    ToolSpec,
)
from convoset.llm.provider import AIClient, GeneratedObject, GeneratedText
from convoset.schema.nodes import tool


def _fake_value(annotation: Any) -> Any:
    origin = typing.get_origin(annotation)
    if origin in (list, tuple, set):
        return []
    if origin is dict:
        return {}
    if origin is not None:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        return _fake_value(args[0]) if args else None
    if annotation is bool:
        return True
    if annotation is int:
        return 1
    if annotation is float:
        return 1.0
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return fake_object(annotation)
    return "value"


def fake_object(schema: type[BaseModel]) -> dict[str, Any]:
    """Fill every field of ``schema`` with a placeholder of the right type."""
    return {name: _fake_value(f.annotation) for name, f in schema.model_fields.items()}


class StubAI(AIClient):
    """
    Deterministic AIClient for tests.

    Text responses are derived from a hash of the prompt, so the same
    conversation state always yields the same text. Object responses come
    from ``objects`` (keyed by schema name) or are filled with placeholders.
    """

    def __init__(
        self,
        *,
        text: str | Callable[[list[Message]], str] | None = None,
        objects: dict[str, Any] | None = None,
        delay: float = 0.0,
        fail_when: Callable[[list[Message]], bool] | None = None,
    ) -> None:
        self._text = text
        self._objects = objects or {}
        self.delay = delay
        self.fail_when = fail_when
        self.calls: list[tuple[str, list[Message]]] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    @property
    def model_id(self) -> str:
        return "stub-model"

    async def _enter(self, kind: str, messages: list[Message]) -> None:
        self.calls.append((kind, messages))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            else:
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        if self.fail_when is not None and self.fail_when(messages):
            raise AIClientError("stub failure")

    async def generate_text(self, messages: list[Message]) -> GeneratedText:
        await self._enter("text", messages)
        if callable(self._text):
            return GeneratedText(text=self._text(messages))
        if self._text is not None:
            return GeneratedText(text=self._text)
        digest = hashlib.sha256(json.dumps(messages, sort_keys=True).encode()).hexdigest()
        return GeneratedText(text=f"stub text {digest[:8]}")

    async def generate_object(
        self, schema: type[BaseModel], messages: list[Message]
    ) -> GeneratedObject:
        await self._enter(f"object:{schema.__name__}", messages)
        value = self._objects.get(schema.__name__)
        if callable(value):
            value = value(messages)
        if value is None:
            value = fake_object(schema)
        return GeneratedObject(value=schema.model_validate(value).model_dump(mode="json"))


class ScriptedStream(RngStream):
    """RngStream returning preset values; draws past the script repeat the last one."""

    def __init__(self, values: list[float]) -> None:
        super().__init__(seed=0)
        self.values = list(values)

    def next(self) -> float:
        value = self.values[min(self._draws, len(self.values) - 1)]
        self._draws += 1
        return value


class WeatherArgs(BaseModel):
    city: str = Field(description="City to look up")
    unit: str = Field(default="celsius", description="Temperature unit")


class WeatherResult(BaseModel):
    temperature: float
    conditions: str


@pytest.fixture
def stub_ai() -> StubAI:
    return StubAI()


@pytest.fixture
def weather_tool():
    return tool("weather", "Get the current weather for a city", WeatherArgs, WeatherResult)


def sample_row(seed: int = 1) -> DatasetRow:
    """A small finished row with a tool call, built without the interpreter."""
    messages = [
        DatasetMessage(role="user", content="Weather in Paris?", generation_id="user_1"),
        DatasetMessage(
            role="assistant",
            tool_calls=[ToolCallPart(id="w1", name="weather", arguments={"city": "Paris"})],
            generation_id="tool_call_1",
        ),
        DatasetMessage(
            role="tool",
            content={"temperature": 21.0},
            tool_call_id="w1",
            name="weather",
            generation_id="tool_result_1",
        ),
        DatasetMessage(role="assistant", content="It is 21 degrees.", generation_id="assistant_1"),
    ]
    tools = [
        ToolSpec(
            name="weather",
            description="Get the weather",
            parameters={"type": "object", "properties": {"city": {"type": "string"}}},
        )
    ]
    return DatasetRow(
        messages=messages,
        tools=tools,
        plan=StructuralPlan(
            entries=[PlanEntry(kind=m.kind, role=m.role) for m in messages], tools=tools
        ),
        meta=RowMeta(seed=seed, model="stub-model", start_timestamp="2026-01-01T00:00:00+00:00"),
    )
