"""The content-repository surface the publish workflow is written against."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ..types import RemoteState


@dataclass(frozen=True)
class PullRequest:
    """An opened pull request.

    Attributes:
        number: Pull request number.
        url: Browser URL of the pull request.
        node_id: Global id used by the GraphQL API (auto-merge).
    """
    number: int
    url: str
    node_id: str = ""


@runtime_checkable
class ContentRepository(Protocol):
    """Operations consumed from a Git-hosting remote.

    Every method performs exactly one logical remote operation and raises
    a :class:`~flowershow.exceptions.PublishError` subclass on failure.
    """

    def get_branch_sha(self, branch: str) -> str:
        """Return the tip commit of *branch*; ``RemoteNotFound`` if absent."""

    def branch_exists(self, branch: str) -> bool: ...

    def create_branch(self, branch: str, sha: str) -> None: ...

    def get_file_sha(self, path: str, ref: str) -> str | None:
        """Return the blob id of *path* at *ref*, or ``None`` if absent."""

    def put_file(
        self, path: str, content: bytes, *, branch: str, message: str, sha: str | None = None,
    ) -> None:
        """Create (*sha* ``None``) or update *path* on *branch* as one commit."""

    def delete_file(self, path: str, *, branch: str, message: str, sha: str) -> None: ...

    def read_tree(self, ref: str) -> RemoteState:
        """Return the full recursive listing of *ref*, bypassing caches."""

    def create_pull_request(self, *, title: str, body: str, head: str, base: str) -> PullRequest: ...

    def merge_pull_request(self, pr: PullRequest, *, commit_title: str, method: str) -> None:
        """Merge *pr* now; raise if the remote refuses."""

    def enable_auto_merge(self, pr: PullRequest, *, commit_headline: str, method: str) -> None:
        """Ask the remote to merge *pr* once its preconditions are met."""
