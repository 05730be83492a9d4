"""Sampling without replacement and dynamic schema parts.

Demonstrates: unique_one_of across a run, dynamic nodes using context helpers,
metadata, several SchemaEntry objects with their own seeds.
"""

from dotenv import load_dotenv
import litellm

from convoset import (
    SchemaEntry,
    dynamic,
    generate_dataset_sync,
    generated_assistant,
    metadata,
    openrouter,
    unique_one_of,
    user,
)

load_dotenv()
litellm.suppress_debug_info = True

model = openrouter("mistralai/ministral-14b-2512", temperature=0.7)

TOPICS = ["photosynthesis", "plate tectonics", "black holes", "vaccines", "tides"]

topic_question = unique_one_of(
    [user(f"Explain {topic} simply.") for topic in TOPICS],
    collection="topics",
    item_id="content",
)


def follow_ups(ctx):
    n = ctx.between(0, 2)
    return [
        metadata({"follow_ups": n}),
        [[user("Can you give an example?"), generated_assistant("Give a concrete example")]] * n,
    ]


science = [
    topic_question,
    generated_assistant("Explain at a high-school level"),
    dynamic(follow_ups),
]

smalltalk = [
    user("Hello!"),
    generated_assistant("Greet the user warmly"),
]

rows = generate_dataset_sync(
    [
        SchemaEntry(schema=science, count=len(TOPICS), seed=100),
        SchemaEntry(schema=smalltalk, count=2, seed=900),
    ],
    model,
    output="examples/outputs/04_unique_and_dynamic.jsonl",
)
