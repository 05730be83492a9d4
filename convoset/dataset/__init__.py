"""Row orchestration, batch scheduling and the dataset runner."""

from convoset.dataset.row import (
    FailureKind,
    RowFailure,
    RowGenerator,
    RowResult,
    RowState,
    RowSuccess,
    generate_row,
    run_row,
)
from convoset.dataset.runner import (
    DatasetRunner,
    RowTask,
    build_tasks,
    generate_dataset,
    generate_dataset_sync,
    normalize_entries,
)
from convoset.dataset.scheduler import BatchScheduler

__all__ = [
    "FailureKind",
    "RowFailure",
    "RowGenerator",
    "RowResult",
    "RowState",
    "RowSuccess",
    "generate_row",
    "run_row",
    "DatasetRunner",
    "RowTask",
    "build_tasks",
    "generate_dataset",
    "generate_dataset_sync",
    "normalize_entries",
    "BatchScheduler",
]
