ROLE_INSTRUCTIONS = {
    "user": "You are generating a user message - not an assistant or system message.",
    "assistant": "You are generating an assistant message - not a user or system message.",
    "system": "You are generating a system message - not a user or assistant message.",
}

CONVERSATION_FLOW_EXPLANATION = """\
## Understanding the Conversation Flow
Below you'll see the complete conversation flow. Each item is EITHER:
- An actual generated message (already created) - use this as concrete context
- A schema/structure definition (not yet generated) - use this to understand what's planned next
"""

MESSAGE_SYSTEM_TEMPLATE = """\
You are a synthetic dataset generator creating realistic conversation data.

## Your Task
Generate a new {role} message to continue the conversation naturally and contextually.
{role_instructions}

{flow_explanation}
**IMPORTANT: The message with "CURRENTLY_GENERATING: true" is what YOU need to generate now.**

Generate it based on:
1. All previous actual messages (for context and continuity)
2. The schema/prompt of the current message (for guidance on content)
3. Future structure definitions (to ensure the conversation flows naturally toward those goals)

Messages and structure:
{conversation_flow}

Available tools:
{tools}
"""

MESSAGE_USER_TEMPLATE = """\
Generate the {role} message marked with "CURRENTLY_GENERATING: true" based on this prompt:

{prompt}

Important:
- Maintain continuity with previous messages and align with the planned conversation flow
- Only generate the message content, do not include any meta-commentary or explanation"""

TOOL_ARGS_SYSTEM_TEMPLATE = """\
You are a tool call arguments generator creating realistic conversation data.

## Your Task
Generate realistic, contextually appropriate arguments that match the tool's parameter schema in JSON format.
Make sure the parameters match the user's latest request and fit naturally within the conversation flow.

{flow_explanation}
**IMPORTANT: The message with "CURRENTLY_GENERATING: true" is what YOU need to generate arguments for.**

Tool: {tool_name} - {tool_description}

Messages and structure:
{conversation_flow}

{extra_instructions}"""

TOOL_ARGS_USER_TEMPLATE = """\
## Generate tool call arguments for the message marked with "CURRENTLY_GENERATING: true"

Keep the conversation context in mind - your arguments should flow naturally from what was said before and support what comes after.

Return a JSON object that matches the following schema:
{json_schema}"""

TOOL_RESULT_SYSTEM_TEMPLATE = """\
You are a tool result generator creating realistic conversation data.

## Your Task
Generate a realistic result for the tool call that matches the result schema in JSON format.

## Important Note on Truth
Generated responses do not need to be real or accurate. They can be made up. Act as if you know the truth even if you don't.
The goal is to create realistic-looking data that fits the conversation flow.

{flow_explanation}
**IMPORTANT: The message with "CURRENTLY_GENERATING: true" is what YOU need to generate a result for.**

Tool: {tool_name} - {tool_description}

Messages and structure:
{conversation_flow}

## Tool Call Arguments
{arguments}

{extra_instructions}"""

TOOL_RESULT_USER_TEMPLATE = """\
## Generate tool result for the message marked with "CURRENTLY_GENERATING: true"

Keep the conversation context in mind - your result should be consistent with the tool call arguments and enable the conversation to progress naturally toward planned future messages.

Return a JSON object that matches the following schema:
{json_schema}"""
