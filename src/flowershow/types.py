"""Data structures shared by the diff engine and the publish workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping


class FileKind(str, Enum):
    """How a vault file is read: ``TEXT`` (UTF-8) or ``BINARY``."""
    TEXT = "text"
    BINARY = "binary"

    def __str__(self) -> str:          # noqa: D105
        return self.value


class HashAlgo(str, Enum):
    """Digest function behind a content identifier.

    ``SHA1`` is the legacy git object format, ``SHA256`` the current one.
    """
    SHA1 = "sha1"
    SHA256 = "sha256"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @property
    def hex_length(self) -> int:
        """Length of a hex-encoded identifier under this algorithm."""
        return 40 if self is HashAlgo.SHA1 else 64


def normalize_path(path: str) -> str:
    """Return *path* with forward slashes and no leading/trailing slash.

    Raises ValueError for an empty path or an empty, ``.`` or ``..``
    segment.
    """
    path = path.replace("\\", "/").strip("/")
    if not path:
        raise ValueError("Path must not be empty")
    for seg in path.split("/"):
        if not seg:
            raise ValueError(f"Empty segment in path: {path!r}")
        if seg in (".", ".."):
            raise ValueError(f"Invalid path segment: {seg!r}")
    return path


@dataclass(frozen=True)
class FileRecord:
    """A vault file as handed over by the vault collaborator.

    Attributes:
        path: Vault-relative path (forward slashes).
        kind: :class:`FileKind` of the file.
        content: Exact bytes; text files are UTF-8 encoded.
    """
    path: str
    kind: FileKind
    content: bytes

    @classmethod
    def from_text(cls, path: str, text: str) -> FileRecord:
        from ._hash import text_bytes
        return cls(path, FileKind.TEXT, text_bytes(text))

    @classmethod
    def from_bytes(cls, path: str, data: bytes) -> FileRecord:
        return cls(path, FileKind.BINARY, data)

    @property
    def text(self) -> str:
        """Content decoded as UTF-8 (text files only)."""
        if self.kind is not FileKind.TEXT:
            raise TypeError(f"{self.path} is a binary file")
        return self.content.decode("utf-8")

    def __repr__(self) -> str:
        return f"FileRecord({self.path!r}, {self.kind}, {len(self.content)} bytes)"


@dataclass(frozen=True)
class PathHash:
    """A path together with the content identifier stored for it."""
    path: str
    hash: str


@dataclass
class RemoteState:
    """The path→hash mapping currently stored on the remote.

    Built fresh by every read; never cached.

    Attributes:
        entries: ``{normalized_path: PathHash}``.
        algo: Hash algorithm of the identifiers, or ``None`` when unknown
            (each identifier's algorithm is then guessed from its length).
        framed: ``True`` when identifiers are git blob ids (header-framed
            content), ``False`` for a plain digest of the bytes.
        truncated: ``True`` when the remote listing was cut short.
    """
    entries: dict[str, PathHash] = field(default_factory=dict)
    algo: HashAlgo | None = None
    framed: bool = True
    truncated: bool = False

    @classmethod
    def from_hashes(
        cls,
        hashes: Mapping[str, str],
        *,
        algo: HashAlgo | None = None,
        framed: bool = True,
        truncated: bool = False,
    ) -> RemoteState:
        """Build a state from a plain ``{path: hash}`` mapping."""
        entries: dict[str, PathHash] = {}
        for path, sha in hashes.items():
            norm = normalize_path(path)
            entries[norm] = PathHash(norm, sha)
        return cls(entries, algo=algo, framed=framed, truncated=truncated)

    def __contains__(self, path: object) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def get(self, path: str) -> PathHash | None:
        return self.entries.get(path)

    def paths(self) -> set[str]:
        return set(self.entries)

    def filtered(self, keep) -> RemoteState:
        """Return a copy holding only entries whose path satisfies *keep*."""
        return RemoteState(
            {p: e for p, e in self.entries.items() if keep(p)},
            algo=self.algo,
            framed=self.framed,
            truncated=self.truncated,
        )


@dataclass
class PublishStatus:
    """Partition of local and remote paths produced by the diff engine.

    Every local path is in exactly one of *unchanged_files*,
    *changed_files* or *new_files*; every remote path with no local file
    is in *deleted_paths*.  All lists are sorted by path.
    """
    unchanged_files: list[FileRecord] = field(default_factory=list)
    changed_files: list[FileRecord] = field(default_factory=list)
    new_files: list[FileRecord] = field(default_factory=list)
    deleted_paths: list[str] = field(default_factory=list)
    truncated: bool = False

    @property
    def in_sync(self) -> bool:
        """``True`` if nothing needs publishing or deleting."""
        return not self.changed_files and not self.new_files and not self.deleted_paths

    @property
    def total(self) -> int:
        """Number of paths that need an action."""
        return len(self.changed_files) + len(self.new_files) + len(self.deleted_paths)

    def batch(
        self,
        *,
        new: bool = True,
        changed: bool = True,
        deleted: bool = True,
        branch_name_hint: str | None = None,
    ) -> Batch:
        """Build a :class:`Batch` from the selected sets."""
        files: list[FileRecord] = []
        if changed:
            files.extend(self.changed_files)
        if new:
            files.extend(self.new_files)
        return Batch(
            files_to_publish=files,
            files_to_delete=self.deleted_paths if deleted else (),
            branch_name_hint=branch_name_hint,
        )


@dataclass(frozen=True)
class Batch:
    """One caller-submitted set of files to publish and/or delete."""
    files_to_publish: tuple[FileRecord, ...] = ()
    files_to_delete: tuple[str, ...] = ()
    branch_name_hint: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "files_to_publish", tuple(self.files_to_publish))
        object.__setattr__(
            self, "files_to_delete", tuple(normalize_path(p) for p in self.files_to_delete),
        )

    @property
    def empty(self) -> bool:
        return not self.files_to_publish and not self.files_to_delete

    @property
    def total(self) -> int:
        return len(self.files_to_publish) + len(self.files_to_delete)


class BatchState(str, Enum):
    """States a batch passes through.  The last four are terminal."""
    IDLE = "idle"
    BRANCH_CREATED = "branch_created"
    FILES_COMMITTED = "files_committed"
    PULL_REQUEST_OPENED = "pull_request_opened"
    MERGED = "merged"
    MERGE_PENDING = "merge_pending"
    MERGE_FAILED = "merge_failed"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass(frozen=True)
class PublishResult:
    """Outcome of one batch.

    Attributes:
        branch: Working branch name (``None`` for direct backends).
        pr_number: Pull request number (``None`` for direct backends).
        pr_url: Pull request URL (``None`` for direct backends).
        merged: ``True`` only when the changes reached the base branch.
        state: Terminal :class:`BatchState` of the run.
        published: Paths committed as create/update, in commit order.
        deleted: Paths committed as deletes, in commit order.
        skipped: Delete paths that were already absent on the branch.
    """
    branch: str | None
    pr_number: int | None
    pr_url: str | None
    merged: bool
    state: BatchState = BatchState.PULL_REQUEST_OPENED
    published: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
