"""Static and generated messages.

Demonstrates: system/user static messages, generated_assistant, seed, JSONL output.
Output: 5 rows, each a fixed question answered by the model.
"""

from dotenv import load_dotenv
import litellm

from convoset import generate_dataset_sync, generated_assistant, openrouter, system, user

load_dotenv()
litellm.suppress_debug_info = True

# model = ollama("gemma3:4b")
model = openrouter("mistralai/ministral-14b-2512", temperature=0.7)

schema = [
    system("You are a patient physics tutor."),
    user("Why is the sky blue?"),
    generated_assistant("Explain in two or three sentences, for a curious teenager"),
]

rows = generate_dataset_sync(
    schema,
    model,
    count=5,
    seed=42,
    output="examples/outputs/01_static_and_generated.jsonl",
)
