"""Progress reporting for batch publishing.

The publish workflow calls a :class:`ProgressSink` after every individual
file operation.  Publishes and deletes are counted separately so a caller
can render combined progress (``done = published + deleted``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .exceptions import PublishError
    from .types import PublishResult


class ProgressSink(Protocol):
    def on_publish(self, done: int, total: int, path: str) -> None:
        """*done* of *total* files have been committed; *path* was the last."""

    def on_delete(self, done: int, total: int, path: str) -> None:
        """*done* of *total* deletions have been processed; *path* was the last."""

    def on_complete(self, result: PublishResult) -> None: ...

    def on_error(self, error: PublishError) -> None: ...


class NullProgress:
    """A :class:`ProgressSink` that ignores every event."""

    def on_publish(self, done: int, total: int, path: str) -> None:
        pass

    def on_delete(self, done: int, total: int, path: str) -> None:
        pass

    def on_complete(self, result: PublishResult) -> None:
        pass

    def on_error(self, error: PublishError) -> None:
        pass
