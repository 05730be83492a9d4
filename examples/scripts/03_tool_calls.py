"""Tool calls with generated arguments and results.

Demonstrates: tool definitions, .call / .result, a deferred "-FINAL" call
reusing the arguments of its first call, chat_template export to Parquet.
"""

from dotenv import load_dotenv
import litellm
from pydantic import BaseModel, Field

from convoset import (
    generate_dataset_sync,
    generated_assistant,
    generated_user,
    openrouter,
    system,
    tool,
)

load_dotenv()
litellm.suppress_debug_info = True

model = openrouter("openai/gpt-4o-mini", temperature=0.5)


class FlightQuery(BaseModel):
    origin: str = Field(description="IATA code of the departure airport")
    destination: str = Field(description="IATA code of the arrival airport")
    date: str = Field(description="Departure date, YYYY-MM-DD")


class FlightOffers(BaseModel):
    offers: list[str] = Field(description="Flight numbers with prices")


search = tool("search_flights", "Search available flights", FlightQuery, FlightOffers)

schema = [
    search,
    system("You are a travel booking assistant."),
    generated_user("Ask for a flight between two European cities next month"),
    search.call("f1"),
    search.result("f1", {"status": "pending"}),
    generated_assistant("Tell the user the search is running"),
    search.call("f1-FINAL", reuse_args_from="f1"),
    search.result("f1-FINAL"),
    generated_assistant("Present the best offers"),
]

rows = generate_dataset_sync(
    schema,
    model,
    count=3,
    seed=1,
    format="parquet",
    export_format="chat_template",
    output="examples/outputs/03_tool_calls.parquet",
)
