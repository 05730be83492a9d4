"""Message ordering helpers applied before prompts reach the model."""

from convoset.core.types import Message


def hoist_system_messages(messages: list[Message]) -> list[Message]:
    """
    Move every system message ahead of the other roles, keeping relative order.

    Returns the original list when it is already ordered.
    """
    seen_other = False
    for message in messages:
        if message.get("role") == "system":
            if seen_other:
                break
        else:
            seen_other = True
    else:
        return messages

    system = [m for m in messages if m.get("role") == "system"]
    other = [m for m in messages if m.get("role") != "system"]
    return system + other
