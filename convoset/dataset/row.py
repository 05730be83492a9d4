"""Row orchestrator: runs the two-phase interpreter for a single row."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from loguru import logger

from convoset.core.errors import (
    AIClientError,
    SeedSkewError,
    ToolCallNotFoundError,
    UniqueCollectionExhaustedError,
    ValidationError,
)
from convoset.core.rng import RngStream, ephemeral_seed, row_id_from_seed
from convoset.core.types import DatasetRow, PlanEntry, RowMeta
from convoset.core.unique import UniqueSelectionStore
from convoset.llm.provider import AIClient, SystemHoistingClient
from convoset.llm.tokens import TokenCounter, count_tokens_safely
from convoset.schema.context import GenerationContext
from convoset.schema.interpreter import TreeInterpreter
from convoset.schema.nodes import SchemaFactory, resolve_schema


class RowState(Enum):
    """Lifecycle of one row."""

    UNINITIALIZED = "uninitialized"
    CHECKING = "checking"
    CHECKED = "checked"
    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[RowState, frozenset[RowState]] = {
    RowState.UNINITIALIZED: frozenset({RowState.CHECKING}),
    RowState.CHECKING: frozenset({RowState.CHECKED, RowState.FAILED}),
    RowState.CHECKED: frozenset({RowState.GENERATING, RowState.FAILED}),
    RowState.GENERATING: frozenset({RowState.COMPLETED, RowState.FAILED}),
    RowState.COMPLETED: frozenset(),
    RowState.FAILED: frozenset(),
}

_ACTIVE_STATES = frozenset({RowState.CHECKING, RowState.CHECKED, RowState.GENERATING})


class FailureKind(Enum):
    """Why a row was dropped."""

    SEED_SKEW = "seed_skew"
    VALIDATION = "validation"
    TOOL_CALL_NOT_FOUND = "tool_call_not_found"
    UNIQUE_EXHAUSTED = "unique_exhausted"
    AI_CLIENT = "ai_client"
    OTHER = "other"

    @classmethod
    def classify(cls, error: BaseException) -> "FailureKind":
        match error:
            case SeedSkewError():
                return cls.SEED_SKEW
            case ValidationError():
                return cls.VALIDATION
            case ToolCallNotFoundError():
                return cls.TOOL_CALL_NOT_FOUND
            case UniqueCollectionExhaustedError():
                return cls.UNIQUE_EXHAUSTED
            case AIClientError():
                return cls.AI_CLIENT
            case _:
                return cls.OTHER


@dataclass(frozen=True)
class RowSuccess:
    index: int
    row: DatasetRow


@dataclass(frozen=True)
class RowFailure:
    index: int
    seed: int | None
    error: Exception
    kind: FailureKind

    @classmethod
    def from_exception(cls, index: int, seed: int | None, error: Exception) -> "RowFailure":
        return cls(index=index, seed=seed, error=error, kind=FailureKind.classify(error))


RowResult = Union[RowSuccess, RowFailure]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class RowGenerator:
    """
    Generates one ``DatasetRow`` from a schema.

    Each instance runs once. It owns the row's random stream, checks the
    schema, then generates it, and finally assembles the row metadata:
    schema metadata first, caller metadata over it, and the seed-derived
    ``id`` over both. Unique selections committed by a row that then fails
    are returned to their pool.
    """

    def __init__(
        self,
        schema: SchemaFactory,
        ai: AIClient,
        *,
        seed: int | None = None,
        row_index: int = 0,
        generation_context: GenerationContext | None = None,
        metadata: Mapping[str, Any] | None = None,
        unique_store: UniqueSelectionStore | None = None,
        token_counter: TokenCounter | None = None,
        model_id: str | None = None,
        output: str | None = None,
    ) -> None:
        """
        Initialize the row generator.

        Args:
            schema: Root node, node list, or factory building the tree.
            ai: Model collaborator. System messages are hoisted for it.
            seed: Row seed. None draws an ephemeral seed and skips skew checks.
            row_index: Position of the row in the run, for diagnostics.
            generation_context: Extra prompt messages for model calls.
            metadata: Caller metadata merged over schema metadata.
            unique_store: Store backing ``unique_one_of`` across rows.
            token_counter: Advisory token counter; None skips counting.
            model_id: Model recorded in metadata. Defaults to ``ai.model_id``.
            output: Output path recorded in metadata.
        """
        self.schema = schema
        self.ai = ai if isinstance(ai, SystemHoistingClient) else SystemHoistingClient(ai)
        self.seed = seed
        self.row_index = row_index
        self.generation_context = generation_context
        self.metadata = dict(metadata or {})
        self.unique_store = unique_store if unique_store is not None else UniqueSelectionStore()
        self.token_counter = token_counter
        self.model_id = model_id or ai.model_id
        self.output = output
        self._state = RowState.UNINITIALIZED

    @property
    def state(self) -> RowState:
        return self._state

    def _transition(self, target: RowState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal row state transition: {self._state.value} -> {target.value}")
        logger.debug(f"Row {self.row_index} | {self._state.value} -> {target.value}")
        self._state = target

    def _log_step(self, step: int, total: int, entry: PlanEntry) -> None:
        logger.debug(
            f"Row {self.row_index} | Step {step + 1}/{total} | {entry.step_type}"
        )

    async def generate(self) -> DatasetRow:
        """
        Run Check then Generate and return the finished row.

        Raises:
            SeedSkewError: If the phases drew a different number of values.
            ValidationError: On malformed schema configuration.
            ToolCallNotFoundError: On a result for an unknown call.
            UniqueCollectionExhaustedError: If a unique pool ran out.
            AIClientError: If the model collaborator failed.
        """
        start_timestamp = _utc_timestamp()
        stream_seed = self.seed if self.seed is not None else ephemeral_seed()
        stream = RngStream(stream_seed)
        selections = self.unique_store.tracking()
        interpreter = TreeInterpreter(
            self.ai,
            unique_store=selections,
            generation_context=self.generation_context,
            seed=self.seed,
            row_index=self.row_index,
            verify_draws=self.seed is not None,
            on_step=self._log_step,
        )

        try:
            self._transition(RowState.CHECKING)
            root = resolve_schema(self.schema)
            plan = await interpreter.check(root, stream, self.metadata)
            self._transition(RowState.CHECKED)

            self._transition(RowState.GENERATING)
            result = await interpreter.generate(root, stream, plan)

            merged = {**result.metadata, **self.metadata}
            if self.seed is not None:
                merged["id"] = row_id_from_seed(self.seed)

            token_count = await count_tokens_safely(
                self.token_counter, result.messages, result.tools, self.model_id
            )
            row = DatasetRow(
                messages=result.messages,
                tools=result.tools,
                plan=plan,
                meta=RowMeta(
                    seed=self.seed,
                    model=self.model_id,
                    output=self.output,
                    start_timestamp=start_timestamp,
                    token_count=token_count,
                    metadata=merged,
                ),
            )
        except Exception:
            if selections.marked:
                logger.debug(
                    f"Row {self.row_index} | Releasing {len(selections.marked)} unique selections"
                )
                selections.rollback()
            if self._state in _ACTIVE_STATES:
                self._transition(RowState.FAILED)
            raise

        self._transition(RowState.COMPLETED)
        return row

    async def run(self) -> RowResult:
        """Like ``generate()``, but returns a ``RowFailure`` instead of raising."""
        try:
            row = await self.generate()
        except Exception as e:
            return RowFailure.from_exception(self.row_index, self.seed, e)
        return RowSuccess(index=self.row_index, row=row)


async def generate_row(schema: SchemaFactory, ai: AIClient, **kwargs: Any) -> DatasetRow:
    """
    Generate a single row, raising the first error encountered.

    Example:
        >>> row = await generate_row([user("Hi"), generated_assistant("Greet back")],
        ...                          openrouter(), seed=42)
    """
    return await RowGenerator(schema, ai, **kwargs).generate()


async def run_row(schema: SchemaFactory, ai: AIClient, **kwargs: Any) -> RowResult:
    """Generate a single row, returning a ``RowResult``."""
    return await RowGenerator(schema, ai, **kwargs).run()
