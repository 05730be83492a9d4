"""Progress reporting for generation runs."""

from loguru import logger


class ProgressSink:
    """
    Observer notified by the batch scheduler.

    All hooks are no-ops by default; subclasses override what they need.
    Sinks are purely observational and must not raise.
    """

    def on_start(self, total: int, concurrency: int) -> None:
        pass

    def on_progress(self, completed: int, in_progress: int, total: int) -> None:
        pass

    def on_failure(self, index: int, error: BaseException) -> None:
        pass

    def on_finish(self, completed: int, failed: int, total: int) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Log progress lines through loguru and count failed rows."""

    def __init__(self, level: str = "INFO") -> None:
        self.level = level
        self.failed = 0
        self._last_completed = -1

    def on_start(self, total: int, concurrency: int) -> None:
        self.failed = 0
        self._last_completed = -1
        logger.log(self.level, f"Generating {total} rows | Concurrency: {concurrency}")

    def on_progress(self, completed: int, in_progress: int, total: int) -> None:
        # One line per finished row; starts only change in_progress.
        if completed == self._last_completed:
            return
        self._last_completed = completed
        logger.log(
            self.level,
            f"Progress: {completed}/{total} | In progress: {in_progress} | Failed: {self.failed}",
        )

    def on_failure(self, index: int, error: BaseException) -> None:
        self.failed += 1

    def on_finish(self, completed: int, failed: int, total: int) -> None:
        logger.log(
            self.level,
            f"Generation finished | Succeeded: {completed - failed}/{total} | Failed: {failed}",
        )
