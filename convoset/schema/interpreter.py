"""Two-phase schema interpreter.

``check()`` walks the tree without calling the model: it records every
entry the row will contain, the cumulative number of random draws at each
entry, the tool catalogue and the schema metadata. ``generate()`` walks the
same tree again on a reset stream, this time calling the model, and
compares every entry it emits against the plan. A difference in draw count
raises ``SeedSkewError``; a difference in shape raises
``StructureMismatchError``.
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from convoset.core import selection
from convoset.core.errors import (
    SchemaError,
    SeedSkewError,
    StructureMismatchError,
    ToolCallNotFoundError,
)
from convoset.core.rng import RngStream, make_generation_id
from convoset.core.types import (
    DatasetMessage,
    EntryKind,
    Phase,
    PlanEntry,
    StructuralPlan,
    ToolCallPart,
    ToolSpec,
)
from convoset.core.unique import UniqueSelectionStore
from convoset.llm.provider import AIClient
from convoset.schema import generators
from convoset.schema.context import GenerationContext, ResolutionContext, normalize_call_id
from convoset.schema.nodes import (
    NOT_GIVEN,
    Between,
    Dynamic,
    GeneratedMessage,
    Group,
    Metadata,
    Node,
    Null,
    OneOf,
    OptionalNode,
    StaticMessage,
    Times,
    ToolCall,
    ToolCallResult,
    ToolDefinition,
    as_node,
)

StepCallback = Callable[[int, int, PlanEntry], None]


@dataclass
class GenerationResult:
    """Output of the Generate phase."""

    messages: list[DatasetMessage]
    tools: list[ToolSpec]
    metadata: dict[str, Any]


class TreeInterpreter:
    """
    Resolves a schema tree for one row.

    The interpreter is cheap to build and holds no per-phase state; each
    phase gets its own ``ResolutionContext``. During Check, unique selections
    go to a provisional overlay of ``unique_store`` so only Generate commits
    them.
    """

    def __init__(
        self,
        ai: AIClient | None = None,
        *,
        unique_store: UniqueSelectionStore | None = None,
        generation_context: GenerationContext | None = None,
        seed: int | None = None,
        row_index: int | None = None,
        verify_draws: bool = True,
        on_step: StepCallback | None = None,
    ) -> None:
        """
        Initialize the interpreter.

        Args:
            ai: Model collaborator used in the Generate phase.
            unique_store: Store backing ``unique_one_of``. A private store is
                created when omitted.
            generation_context: Extra prompt messages for model calls.
            seed: Row seed, reported in diagnostics and used for stable ids.
                None produces random generation ids.
            row_index: Row position in the run, reported in diagnostics.
            verify_draws: Compare per-entry draw counts against the plan.
            on_step: Called after every entry Generate emits with
                ``(step_index, total_steps, planned_entry)``.
        """
        self.ai = ai
        self.unique_store = unique_store if unique_store is not None else UniqueSelectionStore()
        self.generation_context = generation_context
        self.seed = seed
        self.row_index = row_index
        self.verify_draws = verify_draws
        self.on_step = on_step

    def _context(self, phase: Phase, stream: RngStream, plan: StructuralPlan) -> ResolutionContext:
        store = self.unique_store.overlay() if phase is Phase.CHECK else self.unique_store
        return ResolutionContext(
            phase=phase,
            stream=stream,
            unique_store=store,
            plan=plan,
            ai=self.ai,
            generation_context=self.generation_context,
            seed=self.seed,
            row_index=self.row_index,
            metadata=dict(plan.metadata),
        )

    async def check(
        self,
        root: Node,
        stream: RngStream,
        metadata: Mapping[str, Any] | None = None,
    ) -> StructuralPlan:
        """
        Dry-run ``root`` and return its structural plan.

        Args:
            root: Schema tree of the row.
            stream: Row stream; it is reset before the walk.
            metadata: Initial metadata that ``metadata()`` nodes merge into.

        Raises:
            ValidationError: On malformed weights, ranges or schema values.
            ToolCallNotFoundError: If a tool result or argument reuse names a
                call that is not planned earlier.
            UniqueCollectionExhaustedError: If a unique pool has no candidate left.
        """
        stream.reset()
        plan = StructuralPlan(metadata=dict(metadata or {}))
        ctx = self._context(Phase.CHECK, stream, plan)
        await self._visit(as_node(root), ctx)
        plan.tools = list(ctx.tools)
        plan.metadata = dict(ctx.metadata)
        logger.debug(
            f"Check complete | Row: {self.row_index} | Steps: {len(plan)} | "
            f"Draws: {stream.draws}"
        )
        return plan

    async def generate(
        self, root: Node, stream: RngStream, plan: StructuralPlan
    ) -> GenerationResult:
        """
        Materialize ``root`` following ``plan``.

        Raises:
            SeedSkewError: If an entry was reached after a different number
                of draws than planned.
            StructureMismatchError: If the emitted entries differ from the plan.
            ToolCallNotFoundError: If a tool result names an unknown call.
            AIClientError: If the model collaborator fails.
        """
        stream.reset()
        ctx = self._context(Phase.GENERATE, stream, plan)
        await self._visit(as_node(root), ctx)

        if len(ctx.messages) != len(plan):
            raise StructureMismatchError(
                seed=self.seed,
                step_index=len(ctx.messages),
                total_steps=len(plan),
                expected_draws=None,
                actual_draws=None,
                row_index=self.row_index,
                detail=(
                    f"Check planned {len(plan)} steps, "
                    f"generate produced {len(ctx.messages)}"
                ),
            )
        return GenerationResult(
            messages=list(ctx.messages), tools=list(ctx.tools), metadata=dict(plan.metadata)
        )

    async def _visit(self, node: Node, ctx: ResolutionContext) -> None:
        match node:
            case Null():
                return
            case Group(nodes=children):
                for child in children:
                    await self._visit(child, ctx)
            case StaticMessage(role=role, content=content):
                await self._static_message(ctx, role, content)
            case GeneratedMessage(role=role, prompt=prompt):
                await self._generated_message(ctx, role, prompt)
            case ToolDefinition():
                ctx.add_tool(node.spec())
            case ToolCall():
                await self._tool_call(ctx, node)
            case ToolCallResult():
                await self._tool_result(ctx, node)
            case OneOf(options=options, unique_by=unique_by):
                chosen = selection.weighted_choice(
                    ctx.stream, options, unique_by=unique_by, store=ctx.unique_store
                )
                await self._visit(as_node(chosen), ctx)
            case Times(count=count, node=child):
                for _ in range(self._repetitions(ctx, count)):
                    await self._visit(child, ctx)
            case OptionalNode(node=child, probability=probability):
                if selection.chance(ctx.stream, probability):
                    await self._visit(child, ctx)
            case Metadata(update=update):
                if ctx.is_check:
                    self._apply_metadata(ctx, update)
            case Dynamic(factory=factory):
                produced = factory(ctx)
                if inspect.isawaitable(produced):
                    produced = await produced
                await self._visit(as_node(produced), ctx)
            case _:
                raise SchemaError(f"Unknown schema node: {node!r}")

    @staticmethod
    def _repetitions(ctx: ResolutionContext, count: int | Between) -> int:
        if isinstance(count, Between):
            return selection.between(ctx.stream, count.minimum, count.maximum)
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise SchemaError(f"times count must be a non-negative integer, got {count!r}")
        return count

    @staticmethod
    def _apply_metadata(ctx: ResolutionContext, update: Any) -> None:
        if callable(update):
            draft = dict(ctx.metadata)
            returned = update(draft)
            updated = draft if returned is None else returned
        else:
            updated = {**ctx.metadata, **update}
        if not isinstance(updated, Mapping):
            raise SchemaError(
                f"metadata update must produce a mapping, got {type(updated).__name__}"
            )
        ctx.metadata = dict(updated)
        ctx.plan.metadata = dict(updated)

    # Entry emission

    @staticmethod
    def _plan(ctx: ResolutionContext, entry: PlanEntry) -> None:
        entry.draw_count = ctx.draws
        ctx.plan.entries.append(entry)

    def _append(self, ctx: ResolutionContext, message: DatasetMessage) -> None:
        """Verify ``message`` against the plan and add it to the row."""
        step = len(ctx.messages)
        total = len(ctx.plan)
        if step >= total:
            raise StructureMismatchError(
                seed=self.seed,
                step_index=step,
                total_steps=total,
                expected_draws=None,
                actual_draws=ctx.draws,
                role=message.role,
                row_index=self.row_index,
                detail=f"Generate emitted an extra {message.kind.value} entry",
            )

        planned = ctx.plan.entries[step]
        if planned.kind is not message.kind or planned.role != message.role:
            raise StructureMismatchError(
                seed=self.seed,
                step_index=step,
                total_steps=total,
                expected_draws=planned.draw_count,
                actual_draws=ctx.draws,
                role=planned.role,
                content_preview=planned.preview(),
                step_type=planned.step_type,
                row_index=self.row_index,
                detail=(
                    f"Expected {planned.kind.value} ({planned.role}), "
                    f"got {message.kind.value} ({message.role})"
                ),
            )

        if self.verify_draws and planned.draw_count != ctx.draws:
            raise SeedSkewError(
                seed=self.seed,
                step_index=step,
                total_steps=total,
                expected_draws=planned.draw_count,
                actual_draws=ctx.draws,
                role=planned.role,
                content_preview=planned.preview(),
                step_type=planned.step_type,
                row_index=self.row_index,
            )

        ctx.messages.append(message)
        if self.on_step is not None:
            self.on_step(step, total, planned)

    def _generation_id(self, ctx: ResolutionContext, prefix: str) -> str:
        return make_generation_id(prefix, self.seed, ctx.step)

    async def _static_message(self, ctx: ResolutionContext, role: str, content: Any) -> None:
        if ctx.is_check:
            self._plan(ctx, PlanEntry(kind=EntryKind.MESSAGE, role=role, content=content))
            return
        message = DatasetMessage(
            role=role, content=content, generation_id=self._generation_id(ctx, role)
        )
        self._append(ctx, message)

    async def _generated_message(self, ctx: ResolutionContext, role: str, prompt: str) -> None:
        if ctx.is_check:
            self._plan(ctx, PlanEntry(kind=EntryKind.MESSAGE, role=role, content=prompt))
            return
        text, response_id = await generators.generate_message_content(ctx, role, prompt)
        message = DatasetMessage(
            role=role,
            content=text,
            generation_id=response_id or self._generation_id(ctx, role),
        )
        self._append(ctx, message)

    async def _tool_call(self, ctx: ResolutionContext, node: ToolCall) -> None:
        definition = node.tool
        lookup_id = node.reuse_args_from or node.call_id

        if ctx.is_check:
            if node.reuse_args_from and not ctx.has_planned_tool_call(lookup_id):
                raise ToolCallNotFoundError(lookup_id, normalize_call_id(lookup_id))
            entry = PlanEntry(
                kind=EntryKind.TOOL_CALL,
                role="assistant",
                tool_name=definition.name,
                tool_call_id=node.call_id,
                content=node.prompt,
                arguments=dict(node.arguments) if node.arguments is not None else None,
            )
            self._plan(ctx, entry)
            return

        existing = ctx.find_tool_call(lookup_id)
        response_id = None
        if existing is not None:
            arguments = dict(existing.arguments)
        elif node.reuse_args_from:
            raise ToolCallNotFoundError(lookup_id, normalize_call_id(lookup_id))
        elif node.arguments is not None:
            arguments = self._validated(definition.parameters, node.arguments)
        elif not definition.takes_arguments:
            arguments = {}
        else:
            arguments, response_id = await generators.generate_tool_arguments(
                ctx, definition.name, definition.description, definition.parameters, node.prompt
            )

        message = DatasetMessage(
            role="assistant",
            content=None,
            tool_calls=[ToolCallPart(id=node.call_id, name=definition.name, arguments=arguments)],
            generation_id=response_id or self._generation_id(ctx, "tool_call"),
        )
        self._append(ctx, message)

    async def _tool_result(self, ctx: ResolutionContext, node: ToolCallResult) -> None:
        definition = node.tool

        if ctx.is_check:
            if not ctx.has_planned_tool_call(node.call_id):
                raise ToolCallNotFoundError(node.call_id, normalize_call_id(node.call_id))
            entry = PlanEntry(
                kind=EntryKind.TOOL_RESULT,
                role="tool",
                tool_name=definition.name,
                tool_call_id=node.call_id,
                content=None if node.result is NOT_GIVEN else node.result,
            )
            self._plan(ctx, entry)
            return

        call = ctx.find_tool_call(node.call_id)
        if call is None:
            raise ToolCallNotFoundError(node.call_id, normalize_call_id(node.call_id))

        response_id = None
        if node.result is not NOT_GIVEN:
            result = node.result
        elif not definition.returns_value:
            result = {}
        else:
            result, response_id = await generators.generate_tool_result(
                ctx,
                definition.name,
                definition.description,
                definition.output,
                dict(call.arguments),
                node.prompt,
            )

        message = DatasetMessage(
            role="tool",
            content=result,
            tool_call_id=node.call_id,
            name=definition.name,
            generation_id=response_id or self._generation_id(ctx, "tool_result"),
        )
        self._append(ctx, message)

    @staticmethod
    def _validated(model: Any, arguments: Mapping[str, Any]) -> dict[str, Any]:
        if model is None:
            return dict(arguments)
        return model.model_validate(dict(arguments)).model_dump(mode="json")
