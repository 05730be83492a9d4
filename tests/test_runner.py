import json

import pytest

from conftest import StubAI
from convoset.core.config import GenerationConfig, SchemaEntry
from convoset.core.errors import ConfigurationError
from convoset.core.rng import row_id_from_seed
from convoset.dataset.runner import (
    DatasetRunner,
    build_tasks,
    generate_dataset,
    generate_dataset_sync,
    normalize_entries,
)
from convoset.dataset.row import FailureKind
from convoset.schema.nodes import (
    assistant,
    dynamic,
    generated_assistant,
    unique_one_of,
    user,
)
from convoset.sinks.writer import ListWriter


def greeting_schema():
    return [user("Hello"), generated_assistant("Greet the user back")]


class TestEntries:
    def test_single_schema_with_count(self):
        entries = normalize_entries(greeting_schema, 4)
        assert len(entries) == 1
        assert entries[0].count == 4

    def test_entry_list(self):
        entries = [SchemaEntry(greeting_schema, 2), SchemaEntry(greeting_schema, 3, seed=50)]
        assert normalize_entries(entries) == entries

    def test_empty_schema_list_rejected(self):
        with pytest.raises(ConfigurationError):
            normalize_entries([])

    def test_negative_count_rejected(self):
        with pytest.raises(ConfigurationError):
            normalize_entries(greeting_schema, -1)

    def test_count_with_entries_rejected(self):
        with pytest.raises(ConfigurationError):
            normalize_entries([SchemaEntry(greeting_schema, 1)], 3)

    def test_seed_derivation(self):
        entries = [SchemaEntry(greeting_schema, 2, seed=100), SchemaEntry(greeting_schema, 3)]
        tasks = build_tasks(entries, base_seed=10)

        assert [t.seed for t in tasks] == [100, 101, 10, 11, 12]
        assert [t.index for t in tasks] == [0, 1, 2, 3, 4]
        assert [t.entry_index for t in tasks] == [0, 0, 1, 1, 1]

    def test_unseeded_tasks(self):
        tasks = build_tasks([SchemaEntry(greeting_schema, 2)], base_seed=None)
        assert [t.seed for t in tasks] == [None, None]


class TestGenerateDataset:
    """End-to-end runs against the stub model."""

    @pytest.mark.asyncio
    async def test_rows_written_to_jsonl(self, stub_ai, tmp_path):
        output = tmp_path / "out" / "dataset.jsonl"
        rows = await generate_dataset(
            greeting_schema, stub_ai, 3, seed=7, output=str(output), token_counter_workers=0
        )

        assert len(rows) == 3
        assert [row.meta.metadata["id"] for row in rows] == [row_id_from_seed(s) for s in (7, 8, 9)]

        lines = output.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        stored = [json.loads(line) for line in lines]
        assert {r["meta"]["seed"] for r in stored} == {7, 8, 9}
        assert stored[0]["messages"][0]["content"] == "Hello"

    @pytest.mark.asyncio
    async def test_reruns_are_reproducible(self):
        def schema():
            return [
                unique_one_of([user("tea"), user("coffee"), user("juice")], "drinks", item_id="content"),
                dynamic(lambda ctx: user(f"I'd like {ctx.one_of(['small', 'large'])} please")),
                generated_assistant("Confirm the order"),
            ]

        first = await generate_dataset(schema, StubAI(), 3, seed=11, writer=ListWriter(),
                                       token_counter_workers=0, concurrency=1)
        second = await generate_dataset(schema, StubAI(), 3, seed=11, writer=ListWriter(),
                                        token_counter_workers=0, concurrency=1)

        def shape(rows):
            return [[m.model_dump() for m in row.messages] for row in rows]

        assert shape(first) == shape(second)

    @pytest.mark.asyncio
    async def test_failing_row_is_isolated(self, stub_ai):
        def schema():
            def maybe_fail(ctx):
                if ctx.seed == 2:
                    raise RuntimeError("bad row")
                return user(f"seed {ctx.seed}")

            return [dynamic(maybe_fail)]

        writer = ListWriter()
        rows = await generate_dataset(schema, stub_ai, 5, seed=0, writer=writer, token_counter_workers=0)

        assert [row.meta.seed for row in rows] == [0, 1, 3, 4]
        assert len(writer.records) == 4

    @pytest.mark.asyncio
    async def test_writer_failure_keeps_row_seed(self, stub_ai):
        class FlakyWriter(ListWriter):
            async def append_row(self, row):
                if row.meta.seed == 12:
                    raise OSError("disk full")
                await super().append_row(row)

        runner = DatasetRunner(
            normalize_entries(greeting_schema, 3),
            stub_ai,
            GenerationConfig(seed=10, token_counter_workers=0, show_progress=False),
            writer=FlakyWriter(),
        )
        rows = await runner.execute()

        assert [row.meta.seed for row in rows] == [10, 11]
        assert [(f.index, f.seed) for f in runner.failures] == [(2, 12)]
        assert runner.failures[0].kind is FailureKind.OTHER

    @pytest.mark.asyncio
    async def test_run_scoped_unique_pool_exhausts(self, stub_ai):
        def schema():
            return [unique_one_of([assistant("a"), assistant("b"), assistant("c")], "answers", item_id="content")]

        runner = DatasetRunner(
            normalize_entries(schema, 4),
            stub_ai,
            GenerationConfig(seed=1, concurrency=1, token_counter_workers=0, show_progress=False),
            writer=ListWriter(),
        )
        rows = await runner.execute()

        assert sorted(row.messages[0].content for row in rows) == ["a", "b", "c"]
        assert len(runner.failures) == 1
        assert runner.failures[0].kind is FailureKind.UNIQUE_EXHAUSTED

    @pytest.mark.asyncio
    async def test_row_scoped_unique_pool_resets(self, stub_ai):
        def schema():
            return [unique_one_of([assistant("a"), assistant("b")], "answers", item_id="content")]

        rows = await generate_dataset(
            schema, stub_ai, 4, seed=1, writer=ListWriter(), unique_scope="row",
            token_counter_workers=0,
        )
        assert len(rows) == 4

    @pytest.mark.asyncio
    async def test_peak_model_calls_bounded_by_concurrency(self):
        ai = StubAI(delay=0.01)
        rows = await generate_dataset(
            greeting_schema, ai, 6, seed=1, concurrency=3, writer=ListWriter(),
            token_counter_workers=0,
        )
        assert len(rows) == 6
        assert ai.peak_in_flight == 3

    @pytest.mark.asyncio
    async def test_caller_metadata_in_every_row(self, stub_ai):
        rows = await generate_dataset(
            greeting_schema, stub_ai, 2, writer=ListWriter(), token_counter_workers=0,
            metadata={"source": "unit-test"}, model_id="custom-model",
        )
        assert all(row.meta.metadata == {"source": "unit-test"} for row in rows)
        assert all(row.meta.model == "custom-model" for row in rows)
        assert all(row.meta.seed is None for row in rows)

    @pytest.mark.asyncio
    async def test_invalid_config(self, stub_ai):
        with pytest.raises(ConfigurationError):
            await generate_dataset(greeting_schema, stub_ai, 1, format="xml")
        with pytest.raises(ConfigurationError):
            await generate_dataset(greeting_schema, stub_ai, 1, concurrency=0)
        with pytest.raises(ConfigurationError):
            await generate_dataset(greeting_schema, stub_ai, 1, config=GenerationConfig(), seed=3)


def test_generate_dataset_sync(stub_ai, tmp_path):
    output = tmp_path / "sync.jsonl"
    rows = generate_dataset_sync(
        greeting_schema, stub_ai, 2, seed=3, output=str(output), token_counter_workers=0
    )
    assert len(rows) == 2
    assert len(output.read_text(encoding="utf-8").splitlines()) == 2
