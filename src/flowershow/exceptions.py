"""Exceptions for flowershow.

Every error raised by the library derives from :class:`PublishError` and
carries the failed *operation*, the *path* it concerned (if any) and the
remote *status* code (if any), so callers can render an actionable
message without parsing strings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .types import Batch, FileRecord


class PublishError(Exception):
    """Base class for all flowershow errors."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        path: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.path = path
        self.status = status

    def __str__(self) -> str:
        details = []
        if self.operation:
            details.append(f"operation={self.operation}")
        if self.path:
            details.append(f"path={self.path}")
        if self.status is not None:
            details.append(f"status={self.status}")
        if not details:
            return self.message
        return f"{self.message} ({', '.join(details)})"


class ConfigInvalid(PublishError):
    """Raised before any remote call when the configuration is incomplete.

    ``missing`` lists the offending field names.
    """

    def __init__(self, message: str, *, missing: Sequence[str] = ()) -> None:
        super().__init__(message, operation="validate config")
        self.missing = tuple(missing)


class RemoteUnavailable(PublishError):
    """The remote timed out, returned a 5xx, or could not be reached."""


class RemoteConnectionError(RemoteUnavailable):
    """The request never reached the remote (refused, DNS failure).

    Safe to repeat even for mutating calls.
    """


class RemoteNotFound(PublishError):
    """Repository, branch or path is absent where it was required to exist."""


class RemoteAuthFailed(PublishError):
    """The remote rejected the credentials (HTTP 401)."""


class RemoteAccessDenied(PublishError):
    """Authenticated, but without permission for the operation (HTTP 403)."""


class RemoteRequestFailed(PublishError):
    """The remote rejected the request with some other status."""


class BranchCreationFailed(PublishError):
    """The working branch could not be created; nothing was committed."""


class PullRequestCreationFailed(PublishError):
    """The pull request could not be opened.

    The working branch and its commits remain on the remote.
    """

    def __init__(self, message: str, *, branch: str, cause: PublishError | None = None, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.branch = branch
        self.cause = cause


class PartialBatchFailure(PublishError):
    """A batch stopped on a file commit after the working branch existed.

    The working branch is left in place for inspection.  ``committed``
    lists what already landed on it and is empty when the very first
    commit failed; ``remaining_batch()`` rebuilds a
    :class:`~flowershow.types.Batch` of everything that did not.
    """

    def __init__(
        self,
        message: str,
        *,
        branch: str,
        committed: Sequence[str],
        failed_path: str,
        remaining_files: Sequence[FileRecord],
        remaining_deletes: Sequence[str],
        cause: PublishError,
    ) -> None:
        super().__init__(
            message, operation=cause.operation, path=failed_path, status=cause.status,
        )
        self.branch = branch
        self.committed = tuple(committed)
        self.failed_path = failed_path
        self.remaining_files = tuple(remaining_files)
        self.remaining_deletes = tuple(remaining_deletes)
        self.cause = cause

    @property
    def remaining(self) -> list[str]:
        """Paths that were not committed, the failed one first."""
        return [f.path for f in self.remaining_files] + list(self.remaining_deletes)

    def remaining_batch(self) -> Batch:
        """Return a new :class:`Batch` holding the uncommitted work."""
        from .types import Batch
        return Batch(
            files_to_publish=self.remaining_files,
            files_to_delete=self.remaining_deletes,
        )
