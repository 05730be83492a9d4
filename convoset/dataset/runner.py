"""Dataset generation engine: expands schema entries into row tasks and runs them."""

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from convoset.core.config import GenerationConfig, SchemaEntry, UniqueScope
from convoset.core.errors import ConfigurationError
from convoset.core.progress import LoggingProgressSink, ProgressSink
from convoset.core.rng import derive_row_seed
from convoset.core.types import DatasetRow
from convoset.core.unique import UniqueSelectionStore
from convoset.dataset.row import RowFailure, RowGenerator, RowResult, RowSuccess
from convoset.dataset.scheduler import BatchScheduler
from convoset.llm.provider import AIClient
from convoset.llm.tokens import LiteLLMTokenCounter, TokenCounter
from convoset.schema.context import GenerationContext
from convoset.schema.nodes import SchemaFactory
from convoset.sinks.formatters import create_formatter
from convoset.sinks.writer import DatasetWriter, create_writer, default_output_path


@dataclass(frozen=True)
class RowTask:
    """One row to generate."""

    index: int
    schema: SchemaFactory
    seed: int | None
    entry_index: int


def normalize_entries(
    schema: SchemaFactory | Sequence[SchemaEntry],
    count: int | None = None,
) -> list[SchemaEntry]:
    """
    Accept a single schema with a count, or a list of ``SchemaEntry``.

    Raises:
        ConfigurationError: If there is nothing to generate or a count is invalid.
    """
    if isinstance(schema, Sequence) and schema and all(isinstance(e, SchemaEntry) for e in schema):
        if count is not None:
            raise ConfigurationError("count must not be given together with SchemaEntry list")
        entries = list(schema)
    elif isinstance(schema, SchemaEntry):
        entries = [schema]
    else:
        if isinstance(schema, Sequence) and not schema:
            raise ConfigurationError("At least one schema is required")
        entries = [SchemaEntry(schema=schema, count=1 if count is None else count)]

    for entry in entries:
        if isinstance(entry.count, bool) or not isinstance(entry.count, int) or entry.count < 0:
            raise ConfigurationError(f"count must be a non-negative integer, got {entry.count!r}")
    return entries


def build_tasks(entries: Sequence[SchemaEntry], base_seed: int | None) -> list[RowTask]:
    """Expand entries into row tasks; row seed = entry seed (or base seed) + offset."""
    tasks: list[RowTask] = []
    for entry_index, entry in enumerate(entries):
        seed = entry.seed if entry.seed is not None else base_seed
        for offset in range(entry.count):
            tasks.append(
                RowTask(
                    index=len(tasks),
                    schema=entry.schema,
                    seed=derive_row_seed(seed, offset),
                    entry_index=entry_index,
                )
            )
    return tasks


class DatasetRunner:
    """
    Execution engine for dataset generation.

    Handles:
    - Expanding schema entries into seeded row tasks
    - Running rows on a bounded pool of workers
    - Streaming finished rows to the writer
    - Token counting and progress reporting
    """

    def __init__(
        self,
        entries: Sequence[SchemaEntry],
        ai: AIClient,
        config: GenerationConfig | None = None,
        *,
        generation_context: GenerationContext | None = None,
        writer: DatasetWriter | None = None,
        token_counter: TokenCounter | None = None,
        progress: ProgressSink | None = None,
        unique_store: UniqueSelectionStore | None = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            entries: Schemas and their row counts.
            ai: Model collaborator shared by all rows.
            config: Run configuration. Uses defaults if None.
            generation_context: Extra prompt messages for model calls.
            writer: Destination for finished rows. Built from ``config`` if None.
            token_counter: Advisory token counter. A ``LiteLLMTokenCounter`` is
                built when None and ``config.token_counter_workers`` > 0.
            progress: Progress observer. Defaults to loguru progress lines
                when ``config.show_progress`` is set.
            unique_store: Run-scoped store for ``unique_one_of``. Ignored
                with ``unique_scope="row"``.
        """
        self.config = config or GenerationConfig()
        self.config.validate()
        self.entries = list(entries)
        if not self.entries:
            raise ConfigurationError("At least one schema is required")
        self.ai = ai
        self.generation_context = generation_context

        if self.config.output:
            self.output_path = Path(self.config.output)
        elif writer is not None:
            self.output_path = writer.path
        else:
            self.output_path = default_output_path(self.config.get_format())
        self.writer = writer or create_writer(
            self.config.get_format(),
            self.output_path,
            create_formatter(self.config.get_export_format()),
        )

        self._owns_counter = token_counter is None and self.config.token_counter_workers > 0
        if self._owns_counter:
            token_counter = LiteLLMTokenCounter(workers=self.config.token_counter_workers)
        self.token_counter = token_counter

        if progress is None and self.config.show_progress:
            progress = LoggingProgressSink(self.config.log_level)
        self.scheduler: BatchScheduler[RowTask] = BatchScheduler(self.config.concurrency, progress)

        self.unique_scope = self.config.get_unique_scope()
        self.unique_store = unique_store if unique_store is not None else UniqueSelectionStore()

    @property
    def failures(self) -> list[RowFailure]:
        return self.scheduler.failures

    def _store_for(self, task: RowTask) -> UniqueSelectionStore:
        if self.unique_scope is UniqueScope.ROW:
            return UniqueSelectionStore()
        return self.unique_store

    async def _execute(self, index: int, task: RowTask) -> RowResult:
        try:
            return await self._generate(task)
        except Exception as e:
            return RowFailure.from_exception(task.index, task.seed, e)

    async def _generate(self, task: RowTask) -> RowResult:
        generator = RowGenerator(
            task.schema,
            self.ai,
            seed=task.seed,
            row_index=task.index,
            generation_context=self.generation_context,
            metadata=self.config.metadata,
            unique_store=self._store_for(task),
            token_counter=self.token_counter,
            model_id=self.config.model_id,
            output=str(self.output_path),
        )
        result = await generator.run()

        match result:
            case RowSuccess(row=row):
                await self.writer.append_row(row)
                logger.info(
                    f"Row {task.index} completed | Seed: {task.seed} | Messages: {len(row.messages)}"
                )
        return result

    async def execute(self) -> list[DatasetRow]:
        """
        Generate every row.

        Returns:
            Successful rows in task order. Failed rows are dropped and listed
            in ``failures``.
        """
        tasks = build_tasks(self.entries, self.config.seed)
        logger.info(
            f"Starting generation | Rows: {len(tasks)} | Schemas: {len(self.entries)} | "
            f"Model: {self.config.model_id or self.ai.model_id} | Output: {self.output_path}"
        )
        start_time = time.time()

        await self.writer.init()
        try:
            rows = await self.scheduler.run(tasks, self._execute)
        finally:
            await self.writer.close()
            if self._owns_counter and self.token_counter is not None:
                await self.token_counter.close()

        elapsed = time.time() - start_time
        logger.info(
            f"Generation complete | Rows: {len(rows)}/{len(tasks)} | "
            f"Failed: {len(self.failures)} | {elapsed:.2f}s"
        )
        return rows


async def generate_dataset(
    schema: SchemaFactory | Sequence[SchemaEntry],
    ai: AIClient,
    count: int | None = None,
    *,
    config: GenerationConfig | None = None,
    generation_context: GenerationContext | None = None,
    writer: DatasetWriter | None = None,
    token_counter: TokenCounter | None = None,
    progress: ProgressSink | None = None,
    unique_store: UniqueSelectionStore | None = None,
    **kwargs: Any,
) -> list[DatasetRow]:
    """
    Generate a dataset.

    Args:
        schema: A schema (node, node list, or factory) generated ``count``
            times, or a list of ``SchemaEntry``.
        ai: Model collaborator, e.g. ``openrouter("openai/gpt-4o-mini")``.
        count: Rows to generate from a single schema.
        config: Run configuration. Built from ``**kwargs`` if None.
        generation_context: Extra prompt messages for model calls.
        writer: Row destination; defaults to a writer built from the config.
        token_counter: Advisory token counter.
        progress: Progress observer.
        unique_store: Run-scoped store for ``unique_one_of``.
        **kwargs: ``GenerationConfig`` fields (``output``, ``seed``, ...).

    Returns:
        The successfully generated rows, in task order.

    Example:
        >>> rows = await generate_dataset(
        ...     [user("Hi"), generated_assistant("Greet back")],
        ...     openrouter(), count=10, seed=42, output="data/greetings.jsonl",
        ... )
    """
    if config is None:
        config = GenerationConfig(**kwargs)
    elif kwargs:
        raise ConfigurationError(f"Unexpected arguments with config: {sorted(kwargs)}")

    runner = DatasetRunner(
        normalize_entries(schema, count),
        ai,
        config,
        generation_context=generation_context,
        writer=writer,
        token_counter=token_counter,
        progress=progress,
        unique_store=unique_store,
    )
    return await runner.execute()


def generate_dataset_sync(
    schema: SchemaFactory | Sequence[SchemaEntry],
    ai: AIClient,
    count: int | None = None,
    **kwargs: Any,
) -> list[DatasetRow]:
    """Blocking wrapper around ``generate_dataset``."""
    return asyncio.run(generate_dataset(schema, ai, count, **kwargs))
