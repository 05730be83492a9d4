"""Core types, errors and randomness primitives for convoset."""

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
from convoset.core.rng import RngStream, derive_row_seed, row_id_from_seed
from convoset.core.selection import Weighted, weighted, weighted_choice
from convoset.core.types import (
    DatasetMessage,
    DatasetRow,
    EntryKind,
    Phase,
    PlanEntry,
    RowMeta,
    StructuralPlan,
    TokenCount,
    ToolCallPart,
    ToolSpec,
)
from convoset.core.unique import TrackingSelectionStore, UniqueBy, UniqueSelectionStore

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
    "RngStream",
    "derive_row_seed",
    "row_id_from_seed",
    "Weighted",
    "weighted",
    "weighted_choice",
    "DatasetMessage",
    "DatasetRow",
    "EntryKind",
    "Phase",
    "PlanEntry",
    "RowMeta",
    "StructuralPlan",
    "TokenCount",
    "ToolCallPart",
    "ToolSpec",
    "UniqueBy",
    "UniqueSelectionStore",
    "TrackingSelectionStore",
]
