"""Model calls producing message content, tool arguments and tool results."""

import json
from typing import Any

from loguru import logger
from pydantic import BaseModel

from convoset.core.errors import ConfigurationError
from convoset.core.types import Message
from convoset.llm.provider import AIClient
from convoset.prompts import generation_prompts as prompts
from convoset.schema.context import ResolutionContext

_CURRENT_MARKER = "CURRENTLY_GENERATING"


def format_conversation_flow(ctx: ResolutionContext) -> str:
    """
    Render the planned conversation with already generated messages inlined.

    Entries before the current step show their materialized content; the
    current entry carries a ``CURRENTLY_GENERATING`` marker; later entries
    show the plan. Generation ids and draw counts are left out.
    """
    current = len(ctx.messages)
    flow: list[dict[str, Any]] = []
    for index, entry in enumerate(ctx.plan.entries):
        if index < current:
            item = ctx.messages[index].model_dump(
                mode="json", exclude={"generation_id"}, exclude_none=True
            )
        else:
            item = entry.model_dump(mode="json", exclude={"draw_count"}, exclude_none=True)
        if index == current:
            item[_CURRENT_MARKER] = True
        flow.append(item)
    return json.dumps(flow, indent=2, ensure_ascii=False)


def _format_tools(ctx: ResolutionContext) -> str:
    if not ctx.tools:
        return "(none)"
    return json.dumps([t.model_dump(mode="json") for t in ctx.tools], indent=2)


def _require_ai(ctx: ResolutionContext) -> AIClient:
    if ctx.ai is None:
        raise ConfigurationError("An AIClient is required to generate content")
    return ctx.ai


async def _with_context(
    ctx: ResolutionContext, target: str, system_prompt: str, user_prompt: str
) -> list[Message]:
    messages: list[Message] = [{"role": "system", "content": system_prompt}]
    if ctx.generation_context is not None:
        messages.extend(await ctx.generation_context.messages_for(target, ctx))
    messages.append({"role": "user", "content": user_prompt})
    return messages


async def generate_message_content(
    ctx: ResolutionContext, role: str, prompt: str
) -> tuple[str, str | None]:
    """Ask the model for the content of a ``role`` message."""
    ai = _require_ai(ctx)
    system_prompt = prompts.MESSAGE_SYSTEM_TEMPLATE.format(
        role=role,
        role_instructions=prompts.ROLE_INSTRUCTIONS.get(role, ""),
        flow_explanation=prompts.CONVERSATION_FLOW_EXPLANATION,
        conversation_flow=format_conversation_flow(ctx),
        tools=_format_tools(ctx),
    )
    user_prompt = prompts.MESSAGE_USER_TEMPLATE.format(role=role, prompt=prompt)
    messages = await _with_context(ctx, role, system_prompt, user_prompt)

    logger.debug(f"Generating {role} message | Row: {ctx.row_index} | Step: {ctx.step}")
    generated = await ai.generate_text(messages)
    return generated.text, generated.response_id


async def generate_tool_arguments(
    ctx: ResolutionContext,
    tool_name: str,
    tool_description: str,
    parameters: type[BaseModel],
    prompt: str | None = None,
) -> tuple[dict[str, Any], str | None]:
    """Ask the model for arguments matching ``parameters``."""
    ai = _require_ai(ctx)
    system_prompt = prompts.TOOL_ARGS_SYSTEM_TEMPLATE.format(
        flow_explanation=prompts.CONVERSATION_FLOW_EXPLANATION,
        tool_name=tool_name,
        tool_description=tool_description,
        conversation_flow=format_conversation_flow(ctx),
        extra_instructions=prompt or "",
    )
    user_prompt = prompts.TOOL_ARGS_USER_TEMPLATE.format(
        json_schema=json.dumps(parameters.model_json_schema(), indent=2)
    )
    messages = await _with_context(ctx, "tool_call", system_prompt, user_prompt)

    logger.debug(f"Generating arguments | Tool: {tool_name} | Row: {ctx.row_index}")
    generated = await ai.generate_object(parameters, messages)
    return generated.value, generated.response_id


async def generate_tool_result(
    ctx: ResolutionContext,
    tool_name: str,
    tool_description: str,
    output: type[BaseModel],
    arguments: dict[str, Any],
    prompt: str | None = None,
) -> tuple[Any, str | None]:
    """
    Ask the model for a result matching ``output``.

    Models with a single ``result`` field are unwrapped to that field's value.
    """
    ai = _require_ai(ctx)
    system_prompt = prompts.TOOL_RESULT_SYSTEM_TEMPLATE.format(
        flow_explanation=prompts.CONVERSATION_FLOW_EXPLANATION,
        tool_name=tool_name,
        tool_description=tool_description,
        conversation_flow=format_conversation_flow(ctx),
        arguments=json.dumps(arguments, indent=2, ensure_ascii=False),
        extra_instructions=prompt or "",
    )
    user_prompt = prompts.TOOL_RESULT_USER_TEMPLATE.format(
        json_schema=json.dumps(output.model_json_schema(), indent=2)
    )
    messages = await _with_context(ctx, "tool_result", system_prompt, user_prompt)

    logger.debug(f"Generating result | Tool: {tool_name} | Row: {ctx.row_index}")
    generated = await ai.generate_object(output, messages)
    value: Any = generated.value
    if list(output.model_fields) == ["result"] and isinstance(value, dict) and "result" in value:
        value = value["result"]
    return value, generated.response_id
