from __future__ import annotations
from typing import Iterable, Literal, Optional, TypeVar, Generator
import logging
from tqdm import tqdm

#: ``"tqdm"`` draws a progress bar, ``"log"`` reports progress through
#: the ``crible`` logger (for jobs writing to a log file)
ProgressReport = Literal["tqdm", "log"]


class ProgressReporter:
    """Reports the progress of a long running task: documents of a
    scored corpus, or optimizer steps.
    """

    def start_(self, total: int):
        """Method called at task start time."""
        self.total = total
        self.done = 0

    def update_progress_(self, added_progress: int):
        self.done += added_progress

    def update_message_(self, message: str):
        """Describe the last finished unit of work (the last selected
        sieve, for example)."""
        pass

    def finish_(self):
        pass


class NoopProgressReporter(ProgressReporter):
    pass


class TQDMProgressReporter(ProgressReporter):
    def start_(self, total: int):
        super().start_(total)
        self.tqdm = tqdm(total=total)

    def update_progress_(self, added_progress: int):
        super().update_progress_(added_progress)
        self.tqdm.update(added_progress)

    def update_message_(self, message: str):
        self.tqdm.set_description_str(message)

    def finish_(self):
        self.tqdm.close()


class LoggingProgressReporter(ProgressReporter):
    """Logs a line each time at least ``every`` percent of the task
    is done"""

    def __init__(self, logger: Optional[logging.Logger] = None, every: int = 10):
        self.logger = logger or logging.getLogger("crible")
        self.every = every
        self.message: Optional[str] = None

    def start_(self, total: int):
        super().start_(total)
        self.last_reported = 0

    def update_progress_(self, added_progress: int):
        super().update_progress_(added_progress)
        if self.total <= 0:
            return
        percent = self.done * 100 // self.total
        if percent - self.last_reported >= self.every or self.done == self.total:
            self.last_reported = percent
            suffix = "" if self.message is None else f" ({self.message})"
            self.logger.info(f"progress: {self.done}/{self.total}{suffix}")

    def update_message_(self, message: str):
        self.message = message


T = TypeVar("T")


def progress_(
    progress_reporter: ProgressReporter,
    it: Iterable[T],
    total: Optional[int] = None,
) -> Generator[T, None, None]:
    if total is None:
        total = len(it)  # type: ignore
    progress_reporter.start_(total)
    for elt in it:
        yield elt
        progress_reporter.update_progress_(1)
    progress_reporter.finish_()


def get_progress_reporter(
    name: Optional[ProgressReport], logger: Optional[logging.Logger] = None
) -> ProgressReporter:
    """
    :param name: ``None`` for no progress reporting, ``"tqdm"`` or
        ``"log"``
    """
    if name is None:
        return NoopProgressReporter()
    if name == "tqdm":
        return TQDMProgressReporter()
    if name == "log":
        return LoggingProgressReporter(logger)
    (logger or logging.getLogger("crible")).warning(
        f"unknown progress reporter: {name}"
    )
    return NoopProgressReporter()
