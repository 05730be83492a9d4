"""Weighted branching and variable-length conversations.

Demonstrates: one_of with weighted options, times(between(...)), optional.
The same seed always yields the same branches and turn counts.
"""

from dotenv import load_dotenv
import litellm

from convoset import (
    between,
    generate_dataset_sync,
    generated_assistant,
    generated_user,
    one_of,
    openrouter,
    optional,
    system,
    times,
    weighted,
)

load_dotenv()
litellm.suppress_debug_info = True

model = openrouter("mistralai/ministral-14b-2512", temperature=0.7)

persona = one_of([
    weighted(system("You are a terse Linux sysadmin."), 0.6),
    system("You are a friendly support agent."),
    system("You are a pirate who happens to know networking."),
])

turn = [
    generated_user("Ask a follow-up question about DNS"),
    generated_assistant("Answer the question"),
]

schema = [
    persona,
    generated_user("Ask why a website does not resolve"),
    generated_assistant("Diagnose the problem"),
    times(between(1, 3), turn),
    optional(generated_user("Thank the assistant")),
]

rows = generate_dataset_sync(
    schema,
    model,
    count=10,
    seed=7,
    concurrency=4,
    output="examples/outputs/02_branching.jsonl",
)
