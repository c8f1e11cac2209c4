"""Batch publishing: working branch, per-file commits, pull request, merge.

A batch runs through these states::

    IDLE -> BRANCH_CREATED -> FILES_COMMITTED -> PULL_REQUEST_OPENED
         -> MERGED | MERGE_PENDING | MERGE_FAILED

Files are committed strictly one at a time in input order, because each
create-vs-update decision reads the blob id left by the previous commit.
Nothing is rolled back: when a commit fails the working branch keeps what
was already committed and :class:`PartialBatchFailure` says what is left.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from .config import PublishConfig
from .exceptions import (
    BranchCreationFailed,
    PartialBatchFailure,
    PublishError,
    PullRequestCreationFailed,
    RemoteNotFound,
)
from .progress import NullProgress, ProgressSink
from .remote import ContentRepository, ObjectStoreRepository, PullRequest
from .types import Batch, BatchState, FileRecord, PublishResult, normalize_path

logger = logging.getLogger(__name__)

MAX_BRANCH_PROBES = 50

_MARKS = {"create": "+", "update": "~", "delete": "-"}


def commit_message(action: str, path: str) -> str:
    """Per-file commit message: ``Flowershow: + path`` / ``~`` / ``-``."""
    return f"Flowershow: {_MARKS[action]} {path}"


def pull_request_title(pushed: int, deleted: int) -> str:
    return f"Flowershow: {pushed} push(es), {deleted} delete(s)"


def pull_request_body(pushed: Sequence[str], deleted: Sequence[str]) -> str:
    """Markdown body listing every affected path under its heading."""
    sections = []
    if pushed:
        sections.append("## Pushed\n\n" + "\n".join(f"- `{p}`" for p in pushed))
    if deleted:
        sections.append("## Deleted\n\n" + "\n".join(f"- `{p}`" for p in deleted))
    return "\n\n".join(sections) + "\n"


def _timestamp(now: datetime) -> str:
    return now.strftime("%Y%m%d-%H%M%S")


@dataclass
class BatchRun:
    """Bookkeeping for one batch while it runs."""
    batch: Batch
    state: BatchState = BatchState.IDLE
    branch: str | None = None
    published: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def advance(self, state: BatchState) -> None:
        logger.info("batch %s: %s -> %s", self.branch or "-", self.state, state)
        self.state = state

    @property
    def committed(self) -> list[str]:
        return self.published + self.deleted

    def partial_failure(self, index: int, path: str, cause: PublishError) -> PartialBatchFailure:
        """Build the failure for an operation that stopped at *path*.

        *index* is the position of *path* in the combined publish+delete
        sequence; it and everything after it count as remaining.
        """
        n_files = len(self.batch.files_to_publish)
        if index < n_files:
            remaining_files = self.batch.files_to_publish[index:]
            remaining_deletes = self.batch.files_to_delete
        else:
            remaining_files = ()
            remaining_deletes = self.batch.files_to_delete[index - n_files:]
        return PartialBatchFailure(
            f"Batch stopped at {path} after {len(self.committed)} commit(s): {cause.message}",
            branch=self.branch or "",
            committed=self.committed,
            failed_path=path,
            remaining_files=remaining_files,
            remaining_deletes=remaining_deletes,
            cause=cause,
        )


class PublishOrchestrator:
    """Publishes batches to a Git-hosting :class:`ContentRepository`.

    Args:
        repository: The remote to write to.
        config: Read-only configuration snapshot (base branch, merge
            settings, branch prefix).
        progress: Default :class:`ProgressSink`.
        clock: Returns the current time; used for default branch names.
    """

    def __init__(
        self,
        repository: ContentRepository,
        config: PublishConfig,
        *,
        progress: ProgressSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repo = repository
        self._config = config
        self._progress = progress or NullProgress()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def __repr__(self) -> str:
        return f"PublishOrchestrator({self._repo!r}, base={self._config.branch!r})"

    # --- Batch ---

    def publish_batch(self, batch: Batch, *, progress: ProgressSink | None = None) -> PublishResult:
        """Run *batch* through branch, commits, pull request and merge.

        Raises:
            ValueError: If *batch* is empty (before any remote call).
            BranchCreationFailed: Nothing was committed.
            PartialBatchFailure: Some commits landed on the working branch.
            PullRequestCreationFailed: All commits landed, no PR exists.
        """
        if batch.empty:
            raise ValueError("Batch has nothing to publish or delete")
        sink = progress or self._progress
        run = BatchRun(batch)
        try:
            run.branch = self._create_branch(batch.branch_name_hint)
            run.advance(BatchState.BRANCH_CREATED)
            self._commit_batch(run, sink)
            run.advance(BatchState.FILES_COMMITTED)
            pr = self._open_pull_request(run)
            run.advance(BatchState.PULL_REQUEST_OPENED)
            run.advance(self._merge(pr))
        except PublishError as exc:
            sink.on_error(exc)
            raise
        result = PublishResult(
            branch=run.branch,
            pr_number=pr.number,
            pr_url=pr.url,
            merged=run.state is BatchState.MERGED,
            state=run.state,
            published=tuple(run.published),
            deleted=tuple(run.deleted),
            skipped=tuple(run.skipped),
        )
        sink.on_complete(result)
        return result

    def _branch_name(self, hint: str | None) -> str:
        if hint:
            return normalize_path(hint)
        return f"{self._config.branch_prefix}-{_timestamp(self._clock())}"

    def _unique_branch_name(self, hint: str | None) -> str:
        base = self._branch_name(hint)
        for n in range(1, MAX_BRANCH_PROBES + 1):
            name = base if n == 1 else f"{base}-{n}"
            if not self._repo.branch_exists(name):
                return name
        raise BranchCreationFailed(
            f"No free branch name after {MAX_BRANCH_PROBES} attempts",
            operation="create branch", path=base,
        )

    def _create_branch(self, hint: str | None) -> str:
        base = self._config.branch
        try:
            base_sha = self._repo.get_branch_sha(base)
        except PublishError as exc:
            raise BranchCreationFailed(
                f"Cannot resolve base branch {base!r}: {exc.message}",
                operation="create branch", path=base, status=exc.status,
            ) from exc
        try:
            name = self._unique_branch_name(hint)
            self._repo.create_branch(name, base_sha)
        except BranchCreationFailed:
            raise
        except PublishError as exc:
            raise BranchCreationFailed(
                f"Cannot create working branch: {exc.message}",
                operation="create branch", path=exc.path, status=exc.status,
            ) from exc
        logger.info("Created working branch %s from %s@%s", name, base, base_sha[:7])
        return name

    def _commit_batch(self, run: BatchRun, sink: ProgressSink) -> None:
        batch = run.batch
        branch = run.branch
        n_files = len(batch.files_to_publish)
        for i, record in enumerate(batch.files_to_publish):
            path = normalize_path(record.path)
            try:
                self._commit_file(record, branch)
            except PublishError as exc:
                raise run.partial_failure(i, path, exc) from exc
            run.published.append(path)
            sink.on_publish(i + 1, n_files, path)

        n_deletes = len(batch.files_to_delete)
        for i, path in enumerate(batch.files_to_delete):
            try:
                removed = self._delete_file(path, branch)
            except PublishError as exc:
                raise run.partial_failure(n_files + i, path, exc) from exc
            if removed:
                run.deleted.append(path)
            else:
                run.skipped.append(path)
            sink.on_delete(i + 1, n_deletes, path)

    def _commit_file(self, record: FileRecord, branch: str) -> None:
        """Create or update *record* on *branch* as one commit."""
        path = normalize_path(record.path)
        sha = self._repo.get_file_sha(path, branch)
        action = "update" if sha else "create"
        self._repo.put_file(
            path, record.content, branch=branch, message=commit_message(action, path), sha=sha,
        )
        logger.debug("%s %s on %s", action, path, branch)

    def _delete_file(self, path: str, branch: str) -> bool:
        """Delete *path* from *branch*; return False if it was not there."""
        sha = self._repo.get_file_sha(path, branch)
        if sha is None:
            logger.debug("skip delete of %s: absent on %s", path, branch)
            return False
        self._repo.delete_file(path, branch=branch, message=commit_message("delete", path), sha=sha)
        logger.debug("delete %s on %s", path, branch)
        return True

    def _open_pull_request(self, run: BatchRun) -> PullRequest:
        if not run.committed:
            raise PullRequestCreationFailed(
                "No changes were committed; there is nothing to propose",
                branch=run.branch, operation="create pull request", path=run.branch,
            )
        try:
            pr = self._repo.create_pull_request(
                title=pull_request_title(len(run.published), len(run.deleted)),
                body=pull_request_body(run.published, run.deleted),
                head=run.branch,
                base=self._config.branch,
            )
        except PublishError as exc:
            raise PullRequestCreationFailed(
                f"Cannot open pull request: {exc.message}",
                branch=run.branch, cause=exc,
                operation="create pull request", path=run.branch, status=exc.status,
            ) from exc
        logger.info("Opened pull request #%d (%s)", pr.number, pr.url)
        return pr

    def _merge(self, pr: PullRequest) -> BatchState:
        config = self._config
        if not config.auto_merge:
            return BatchState.PULL_REQUEST_OPENED
        try:
            self._repo.merge_pull_request(
                pr, commit_title=config.merge_commit_message, method=config.merge_method,
            )
            return BatchState.MERGED
        except PublishError as exc:
            logger.info("Immediate merge of #%d refused (%s); enabling auto-merge", pr.number, exc)
        try:
            self._repo.enable_auto_merge(
                pr, commit_headline=config.merge_commit_message, method=config.merge_method,
            )
            return BatchState.MERGE_PENDING
        except PublishError as exc:
            logger.warning("Could not enable auto-merge for #%d: %s", pr.number, exc)
            return BatchState.MERGE_FAILED

    # --- Single files ---

    def publish_one(self, record: FileRecord, assets: Sequence[FileRecord] = ()) -> list[str]:
        """Commit *record* and its *assets* straight to the base branch.

        Assets are deduplicated by path.  Returns the committed paths.
        """
        branch = self._config.branch
        done: list[str] = []
        for item in (record, *assets):
            path = normalize_path(item.path)
            if path in done:
                continue
            self._commit_file(item, branch)
            done.append(path)
        logger.info("Published %s to %s (%d asset(s))", done[0], branch, len(done) - 1)
        return done

    def unpublish_one(self, path: str) -> None:
        """Delete *path* from the base branch.

        Raises:
            RemoteNotFound: If *path* is not on the base branch.
        """
        path = normalize_path(path)
        branch = self._config.branch
        if not self._delete_file(path, branch):
            raise RemoteNotFound(
                f"{path} is not published on {branch}", operation="delete file", path=path,
            )
        logger.info("Unpublished %s from %s", path, branch)


class DirectOrchestrator:
    """Publishes to an :class:`ObjectStoreRepository`.

    There are no branches or pull requests: each object write is live
    immediately, so a batch reports ``merged=True`` once every file is
    written.
    """

    def __init__(self, store: ObjectStoreRepository, *, progress: ProgressSink | None = None) -> None:
        self._store = store
        self._progress = progress or NullProgress()

    def __repr__(self) -> str:
        return f"DirectOrchestrator({self._store!r})"

    def publish_batch(self, batch: Batch, *, progress: ProgressSink | None = None) -> PublishResult:
        if batch.empty:
            raise ValueError("Batch has nothing to publish or delete")
        sink = progress or self._progress
        run = BatchRun(batch)
        n_files = len(batch.files_to_publish)
        n_deletes = len(batch.files_to_delete)
        try:
            for i, record in enumerate(batch.files_to_publish):
                path = normalize_path(record.path)
                try:
                    self._store.put_object(path, record.content)
                except PublishError as exc:
                    raise run.partial_failure(i, path, exc) from exc
                run.published.append(path)
                sink.on_publish(i + 1, n_files, path)
            for i, path in enumerate(batch.files_to_delete):
                try:
                    removed = self._store.delete_object(path)
                except PublishError as exc:
                    raise run.partial_failure(n_files + i, path, exc) from exc
                (run.deleted if removed else run.skipped).append(path)
                sink.on_delete(i + 1, n_deletes, path)
        except PublishError as exc:
            sink.on_error(exc)
            raise
        run.advance(BatchState.MERGED)
        result = PublishResult(
            branch=None, pr_number=None, pr_url=None, merged=True, state=run.state,
            published=tuple(run.published), deleted=tuple(run.deleted), skipped=tuple(run.skipped),
        )
        sink.on_complete(result)
        return result

    def publish_one(self, record: FileRecord, assets: Sequence[FileRecord] = ()) -> list[str]:
        done: list[str] = []
        for item in (record, *assets):
            path = normalize_path(item.path)
            if path in done:
                continue
            self._store.put_object(path, item.content)
            done.append(path)
        return done

    def unpublish_one(self, path: str) -> None:
        path = normalize_path(path)
        if not self._store.delete_object(path):
            raise RemoteNotFound(f"{path} is not published", operation="delete object", path=path)
