"""Dataset writers that persist rows as they finish."""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from convoset.core.config import OutputFormat
from convoset.core.errors import ConfigurationError
from convoset.core.types import DatasetRow
from convoset.sinks.formatters import MessagesFormatter, RowFormatter


def default_output_path(output_format: str | OutputFormat = OutputFormat.JSONL) -> Path:
    """Return ``data/dataset_<timestamp>.<ext>``."""
    ext = OutputFormat(output_format).value
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return Path("data") / f"dataset_{timestamp}.{ext}"


class DatasetWriter(ABC):
    """
    Receives rows one at a time while the batch runs.

    ``append_row`` may be awaited from many row tasks at once; writers
    serialize their own writes.
    """

    def __init__(self, path: str | Path, formatter: RowFormatter | None = None) -> None:
        self._path = Path(path)
        self._formatter = formatter or MessagesFormatter()
        self._lock = asyncio.Lock()
        self.rows_written = 0

    @property
    def path(self) -> Path:
        return self._path

    @abstractmethod
    async def init(self) -> None:
        pass

    @abstractmethod
    async def append_row(self, row: DatasetRow) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class JSONLWriter(DatasetWriter):
    """Write rows to a JSONL file, one row per line."""

    async def init(self) -> None:
        """Create the parent directory and truncate the file."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text("", encoding="utf-8")
        self.rows_written = 0

    def _write_line(self, line: str) -> None:
        with open(self._path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    async def append_row(self, row: DatasetRow) -> None:
        line = json.dumps(self._formatter.format(row), default=str, ensure_ascii=False)
        async with self._lock:
            await asyncio.to_thread(self._write_line, line)
            self.rows_written += 1

    async def close(self) -> None:
        logger.info(f"Saved {self.rows_written} rows to {self._path}")


class ParquetWriter(DatasetWriter):
    """
    Write rows to a Parquet file.

    Every column holds the JSON encoding of the formatted value, so rows
    with differently shaped messages share one schema. Rows are written as
    they arrive, one row group each.
    """

    def __init__(self, path: str | Path, formatter: RowFormatter | None = None) -> None:
        super().__init__(path, formatter)
        self._writer: Any = None

    async def init(self) -> None:
        try:
            import pyarrow as pa
            import pyarrow.parquet as pq
        except ImportError:
            raise ImportError(
                "pyarrow is required for ParquetWriter. "
                "Install it with: pip install pyarrow"
            )

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._schema = pa.schema([(column, pa.string()) for column in self._formatter.columns])
        self._pa = pa
        self._writer = pq.ParquetWriter(self._path, self._schema)
        self.rows_written = 0

    def _write(self, record: dict[str, str]) -> None:
        table = self._pa.Table.from_pylist([record], schema=self._schema)
        self._writer.write_table(table)

    async def append_row(self, row: DatasetRow) -> None:
        if self._writer is None:
            raise RuntimeError("ParquetWriter.init() must be awaited before append_row()")
        formatted = self._formatter.format(row)
        record = {
            column: json.dumps(formatted.get(column), default=str, ensure_ascii=False)
            for column in self._formatter.columns
        }
        async with self._lock:
            await asyncio.to_thread(self._write, record)
            self.rows_written += 1

    async def close(self) -> None:
        if self._writer is None:
            return
        async with self._lock:
            await asyncio.to_thread(self._writer.close)
            self._writer = None
        logger.info(f"Saved {self.rows_written} rows to {self._path}")


class ListWriter(DatasetWriter):
    """Collect formatted rows in memory (for testing)."""

    def __init__(self, formatter: RowFormatter | None = None) -> None:
        super().__init__(Path("."), formatter)
        self.records: list[dict[str, Any]] = []

    async def init(self) -> None:
        self.records = []

    async def append_row(self, row: DatasetRow) -> None:
        async with self._lock:
            self.records.append(self._formatter.format(row))
            self.rows_written += 1

    async def close(self) -> None:
        logger.info(f"Collected {len(self.records)} rows")


def create_writer(
    output_format: str | OutputFormat,
    path: str | Path,
    formatter: RowFormatter | None = None,
) -> DatasetWriter:
    """
    Create the writer for ``output_format``.

    Raises:
        ConfigurationError: If the format is unknown.
    """
    try:
        fmt = OutputFormat(output_format)
    except ValueError as e:
        raise ConfigurationError(f"Unknown output format: {output_format!r}") from e

    match fmt:
        case OutputFormat.JSONL:
            return JSONLWriter(path, formatter)
        case OutputFormat.PARQUET:
            return ParquetWriter(path, formatter)
