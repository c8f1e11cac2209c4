from .config import PublishConfig
from .diff import diff
from .exceptions import (
    PublishError, ConfigInvalid, RemoteUnavailable, RemoteConnectionError, RemoteNotFound,
    RemoteAuthFailed, RemoteAccessDenied, RemoteRequestFailed,
    BranchCreationFailed, PullRequestCreationFailed, PartialBatchFailure,
)
from .progress import ProgressSink, NullProgress
from .publish import PublishOrchestrator, DirectOrchestrator
from .publisher import Publisher
from .remote import GitHubRepository, ObjectStoreRepository, RemoteStateReader, PullRequest
from .retry import RetryPolicy
from .types import (
    FileKind, FileRecord, HashAlgo, PathHash, RemoteState, PublishStatus,
    Batch, BatchState, PublishResult,
)
from .vault import LocalVault, EmbedResult
from ._hash import blob_hash, detect_algo

__all__ = [
    "PublishConfig", "diff", "blob_hash", "detect_algo",
    "PublishError", "ConfigInvalid", "RemoteUnavailable", "RemoteConnectionError",
    "RemoteNotFound", "RemoteAuthFailed", "RemoteAccessDenied", "RemoteRequestFailed",
    "BranchCreationFailed", "PullRequestCreationFailed", "PartialBatchFailure",
    "ProgressSink", "NullProgress",
    "PublishOrchestrator", "DirectOrchestrator", "Publisher",
    "GitHubRepository", "ObjectStoreRepository", "RemoteStateReader", "PullRequest",
    "RetryPolicy",
    "FileKind", "FileRecord", "HashAlgo", "PathHash", "RemoteState", "PublishStatus",
    "Batch", "BatchState", "PublishResult",
    "LocalVault", "EmbedResult",
]
