"""Convoset - Reproducible synthetic conversation datasets from declarative schemas."""

from convoset.core.config import GenerationConfig, SchemaEntry
from convoset.core.errors import (
    AIClientError,
    ConfigurationError,
    ConvosetError,
    InvalidWeightError,
    InvalidWeightTotalError,
    SchemaError,
    SeedSkewError,
    StructureMismatchError,
    ToolCallNotFoundError,
    UniqueCollectionExhaustedError,
    UniqueConfigError,
    ValidationError,
)
from convoset.core.progress import LoggingProgressSink, ProgressSink
from convoset.core.rng import RngStream
from convoset.core.selection import weighted
from convoset.core.types import DatasetMessage, DatasetRow, StructuralPlan
from convoset.core.unique import UniqueBy, UniqueSelectionStore
from convoset.dataset.row import RowFailure, RowState, RowSuccess, generate_row, run_row
from convoset.dataset.runner import DatasetRunner, generate_dataset, generate_dataset_sync
from convoset.dataset.scheduler import BatchScheduler
from convoset.llm.provider import (
    AIClient,
    AnthropicProvider,
    LLMProvider,
    OllamaProvider,
    OpenAIProvider,
    OpenRouterProvider,
    anthropic,
    ollama,
    openai,
    openrouter,
)
from convoset.llm.tokens import LiteLLMTokenCounter, TokenCounter
from convoset.schema.context import GenerationContext, ResolutionContext
from convoset.schema.interpreter import TreeInterpreter
from convoset.schema.nodes import (
    assistant,
    between,
    dynamic,
    generated_assistant,
    generated_system,
    generated_user,
    group,
    metadata,
    one_of,
    optional,
    system,
    times,
    tool,
    unique_one_of,
    user,
)
from convoset.sinks.writer import JSONLWriter, ListWriter, ParquetWriter, create_writer

__all__ = [
    "GenerationConfig",
    "SchemaEntry",
    "AIClientError",
    "ConfigurationError",
    "ConvosetError",
    "InvalidWeightError",
    "InvalidWeightTotalError",
    "SchemaError",
    "SeedSkewError",
    "StructureMismatchError",
    "ToolCallNotFoundError",
    "UniqueCollectionExhaustedError",
    "UniqueConfigError",
    "ValidationError",
    "LoggingProgressSink",
    "ProgressSink",
    "RngStream",
    "weighted",
    "DatasetMessage",
    "DatasetRow",
    "StructuralPlan",
    "UniqueBy",
    "UniqueSelectionStore",
    "RowFailure",
    "RowState",
    "RowSuccess",
    "generate_row",
    "run_row",
    "DatasetRunner",
    "generate_dataset",
    "generate_dataset_sync",
    "BatchScheduler",
    "AIClient",
    "AnthropicProvider",
    "LLMProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
    "anthropic",
    "ollama",
    "openai",
    "openrouter",
    "LiteLLMTokenCounter",
    "TokenCounter",
    "GenerationContext",
    "ResolutionContext",
    "TreeInterpreter",
    "assistant",
    "between",
    "dynamic",
    "generated_assistant",
    "generated_system",
    "generated_user",
    "group",
    "metadata",
    "one_of",
    "optional",
    "system",
    "times",
    "tool",
    "unique_one_of",
    "user",
    "JSONLWriter",
    "ListWriter",
    "ParquetWriter",
    "create_writer",
]
