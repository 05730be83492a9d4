"""Configuration dataclasses for dataset generation runs."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from convoset.core.errors import ConfigurationError

if TYPE_CHECKING:
    from convoset.schema.nodes import SchemaFactory


class OutputFormat(Enum):
    """On-disk format of the generated dataset."""

    JSONL = "jsonl"
    """One JSON object per line."""

    PARQUET = "parquet"
    """Parquet file, nested columns stored as JSON strings."""


class ExportFormat(Enum):
    """Shape of each row as handed to the writer."""

    MESSAGES = "messages"
    """The row exactly as generated: messages, tools, plan and meta."""

    CHAT_TEMPLATE = "chat_template"
    """OpenAI-style ``tools`` and ``messages`` with typed content parts."""


class UniqueScope(Enum):
    """Lifetime of the unique-selection store."""

    RUN = "run"
    """One store for the whole generation run; pools are shared across rows."""

    ROW = "row"
    """A fresh store per row; pools reset for every row."""


@dataclass
class SchemaEntry:
    """A schema together with how many rows to generate from it."""

    schema: "SchemaFactory"
    """Root node, or a zero-argument callable building it once per row."""

    count: int
    """Number of rows to generate from this schema."""

    seed: int | None = None
    """Base seed for this schema; falls back to ``GenerationConfig.seed``."""


@dataclass
class GenerationConfig:
    """Configuration for a dataset generation run."""

    output: str | None = None
    """Output file path. None writes to ``data/dataset_<timestamp>.<ext>``."""

    format: str = "jsonl"
    """Output format: 'jsonl' or 'parquet'."""

    export_format: str = "messages"
    """Row shape handed to the writer: 'messages' or 'chat_template'."""

    concurrency: int = 5
    """Maximum number of rows generated at the same time."""

    seed: int | None = None
    """Global base seed. None generates non-reproducible rows."""

    token_counter_workers: int = 3
    """Worker threads for advisory token counting. 0 disables counting."""

    unique_scope: str = "run"
    """Unique-selection store lifetime: 'run' or 'row'."""

    model_id: str | None = None
    """Model identifier recorded in row metadata. Defaults to the provider's."""

    metadata: dict[str, Any] | None = None
    """Static metadata merged into every row's metadata."""

    show_progress: bool = True
    """Log progress lines while generating."""

    log_level: str = "INFO"
    """Level used for progress lines."""

    def get_format(self) -> OutputFormat:
        return _parse_enum(OutputFormat, self.format, "format")

    def get_export_format(self) -> ExportFormat:
        return _parse_enum(ExportFormat, self.export_format, "export_format")

    def get_unique_scope(self) -> UniqueScope:
        return _parse_enum(UniqueScope, self.unique_scope, "unique_scope")

    def validate(self) -> None:
        """
        Check batch-level settings.

        Raises:
            ConfigurationError: If any setting is out of range or unknown.
        """
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ConfigurationError(f"concurrency must be an integer, got {self.concurrency!r}")
        if self.concurrency < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {self.concurrency}")
        if self.token_counter_workers < 0:
            raise ConfigurationError("token_counter_workers must be 0 or greater")
        self.get_format()
        self.get_export_format()
        self.get_unique_scope()


def _parse_enum(enum_cls: type[Enum], value: str, field_name: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as e:
        valid = sorted(member.value for member in enum_cls)
        raise ConfigurationError(
            f"Invalid {field_name}: {value!r}. Valid values: {valid}"
        ) from e
