"""Bounded-concurrency batch scheduler with per-row failure isolation."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Generic, TypeVar

from loguru import logger

from convoset.core.errors import ConfigurationError, SeedSkewError
from convoset.core.progress import ProgressSink
from convoset.core.types import DatasetRow
from convoset.dataset.row import RowFailure, RowResult, RowSuccess

T = TypeVar("T")


class BatchScheduler(Generic[T]):
    """
    Run row tasks on a pool of ``concurrency`` workers.

    Each worker pulls the next pending task from a shared queue when it is
    free. A task that raises, or returns a ``RowFailure``, is logged,
    reported to the progress sink and dropped; siblings keep running.
    Successful rows are returned in task order. Failures raised by
    ``execute`` record the task's ``seed`` attribute when it has one. A
    progress sink that raises is logged and ignored.
    """

    def __init__(self, concurrency: int, progress: ProgressSink | None = None) -> None:
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ConfigurationError(f"concurrency must be at least 1, got {concurrency!r}")
        self.concurrency = concurrency
        self.progress = progress or ProgressSink()
        self.failures: list[RowFailure] = []
        self._completed = 0
        self._in_progress = 0
        self._total = 0

    def _notify(self, hook: str, *args: object) -> None:
        try:
            getattr(self.progress, hook)(*args)
        except Exception as e:
            logger.warning(f"Progress sink failed | Hook: {hook} | Error: {e}")

    def _report(self) -> None:
        self._notify("on_progress", self._completed, self._in_progress, self._total)

    def _record_failure(self, failure: RowFailure) -> None:
        self.failures.append(failure)
        if isinstance(failure.error, SeedSkewError):
            logger.error(f"Row {failure.index} dropped | Kind: {failure.kind.value}\n{failure.error}")
        else:
            logger.warning(
                f"Row {failure.index} dropped | Kind: {failure.kind.value} | "
                f"Seed: {failure.seed} | Error: {failure.error}"
            )
        self._notify("on_failure", failure.index, failure.error)

    async def run(
        self,
        tasks: Sequence[T],
        execute: Callable[[int, T], Awaitable[RowResult]],
    ) -> list[DatasetRow]:
        """
        Execute every task and collect the successful rows.

        Args:
            tasks: Row tasks, in output order.
            execute: Coroutine function running task ``i``.

        Returns:
            Rows of the tasks that succeeded, ordered by task index.
        """
        self.failures = []
        self._completed = 0
        self._in_progress = 0
        self._total = len(tasks)
        results: list[DatasetRow | None] = [None] * len(tasks)

        queue: asyncio.Queue[int] = asyncio.Queue()
        for index in range(len(tasks)):
            queue.put_nowait(index)

        async def worker() -> None:
            while True:
                try:
                    index = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return

                self._in_progress += 1
                self._report()
                try:
                    result = await execute(index, tasks[index])
                except Exception as e:
                    seed = getattr(tasks[index], "seed", None)
                    result = RowFailure.from_exception(index, seed, e)

                match result:
                    case RowSuccess(row=row):
                        results[index] = row
                    case RowFailure():
                        self._record_failure(result)

                self._in_progress -= 1
                self._completed += 1
                self._report()

        self._notify("on_start", len(tasks), self.concurrency)
        workers = min(self.concurrency, len(tasks))
        await asyncio.gather(*(worker() for _ in range(workers)))
        self._notify("on_finish", self._completed, len(self.failures), len(tasks))

        return [row for row in results if row is not None]
