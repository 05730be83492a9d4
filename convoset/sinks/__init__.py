"""Writers and row formatters for generated datasets."""

from convoset.sinks.formatters import (
    ChatTemplateFormatter,
    MessagesFormatter,
    RowFormatter,
    create_formatter,
)
from convoset.sinks.writer import (
    DatasetWriter,
    JSONLWriter,
    ListWriter,
    ParquetWriter,
    create_writer,
    default_output_path,
)

__all__ = [
    "ChatTemplateFormatter",
    "MessagesFormatter",
    "RowFormatter",
    "create_formatter",
    "DatasetWriter",
    "JSONLWriter",
    "ListWriter",
    "ParquetWriter",
    "create_writer",
    "default_output_path",
]
