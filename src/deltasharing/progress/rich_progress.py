"""Rich-based progress reporter for terminal output."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)


if TYPE_CHECKING:
    from types import TracebackType

    from rich.console import Console

    from deltasharing.core.ports import ProgressCallback


class RichProgressReporter:
    """Progress reporter showing one rich bar per data-file download.

    The total of a bar is unknown until the server sends Content-Length,
    so bars start indeterminate and pick up the total from the first
    callback that carries one.

    Example:
        with RichProgressReporter() as reporter:
            data = files.fetch(result.files[0].url, progress=reporter)
    """

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the progress display.

        Args:
            console: Optional rich Console to render to.
        """
        self._progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            console=console,
        )
        self._tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()
        self._started = False

    def __enter__(self) -> RichProgressReporter:
        """Start the progress display."""
        self._start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Stop the progress display."""
        with self._lock:
            self._progress.stop()
            self._started = False

    def _start(self) -> None:
        with self._lock:
            if not self._started:
                self._progress.start()
                self._started = True

    def start_task(self, name: str, total: int) -> ProgressCallback:
        """Start tracking a download task.

        Args:
            name: Human-readable name for the task.
            total: Total bytes to download, or 0 if not yet known.

        Returns:
            A callback taking (downloaded, total) byte counts.
        """
        # Auto-start if not in context manager
        self._start()

        task_id = self._progress.add_task(name, total=total or None)
        with self._lock:
            self._tasks[name] = task_id

        def callback(downloaded: int, total: int) -> None:
            if total > 0:
                self._progress.update(task_id, completed=downloaded, total=total)
            else:
                self._progress.update(task_id, completed=downloaded)

        return callback

    def finish_task(self, name: str) -> None:
        """Mark a task as complete.

        Args:
            name: The task name.
        """
        with self._lock:
            task_id = self._tasks.pop(name, None)
        if task_id is None:
            return
        task = self._progress.tasks[task_id]
        if task.total is None:
            self._progress.update(task_id, total=task.completed)
        else:
            self._progress.update(task_id, completed=task.total)
