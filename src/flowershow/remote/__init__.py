"""Remote content repositories and the remote state reader."""

from ._base import ContentRepository, PullRequest
from ._github import GitHubRepository
from ._objects import ObjectStoreRepository
from ._reader import RemoteStateReader

__all__ = [
    "ContentRepository", "PullRequest",
    "GitHubRepository", "ObjectStoreRepository",
    "RemoteStateReader",
]
