"""Progress reporting adapters."""

from deltasharing.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]
