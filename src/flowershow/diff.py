"""Classify vault files against the remote state.

Each local path lands in exactly one of ``new`` (absent remotely),
``unchanged`` (same content identifier) or ``changed``; every remote path
with no local counterpart is ``deleted``.  Only paths present on both
sides are hashed, and that hashing may run in a thread pool since it is
read-only.  Every output list is sorted by path, so the result does not
depend on input order or scheduling.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from ._hash import local_hash
from .types import FileRecord, PublishStatus, RemoteState, normalize_path

logger = logging.getLogger(__name__)


def _sorted(records: list[FileRecord]) -> list[FileRecord]:
    return sorted(records, key=lambda r: normalize_path(r.path))


def _is_unchanged(record: FileRecord, remote_sha: str, remote: RemoteState) -> bool:
    return local_hash(
        record.content, remote_sha, algo=remote.algo, framed=remote.framed,
    ) == remote_sha


def diff(
    local_files: Iterable[FileRecord],
    remote: RemoteState,
    *,
    max_workers: int = 1,
) -> PublishStatus:
    """Partition *local_files* and *remote* into a :class:`PublishStatus`.

    Args:
        local_files: Vault files; paths are normalized before lookup.
        remote: Fresh remote state.
        max_workers: Threads used to hash files present on both sides.

    Raises:
        ValueError: If two local files normalize to the same path.
    """
    by_path: dict[str, FileRecord] = {}
    for record in local_files:
        path = normalize_path(record.path)
        if path in by_path:
            raise ValueError(f"Duplicate local path: {path}")
        by_path[path] = record

    new: list[FileRecord] = []
    both: list[tuple[FileRecord, str]] = []
    seen: set[str] = set()
    for path, record in by_path.items():
        entry = remote.get(path)
        if entry is None:
            new.append(record)
        else:
            seen.add(path)
            both.append((record, entry.hash))

    if max_workers > 1 and len(both) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            same = list(pool.map(lambda item: _is_unchanged(item[0], item[1], remote), both))
    else:
        same = [_is_unchanged(record, sha, remote) for record, sha in both]

    unchanged = [record for (record, _), eq in zip(both, same) if eq]
    changed = [record for (record, _), eq in zip(both, same) if not eq]
    deleted = sorted(p for p in remote if p not in seen)

    status = PublishStatus(
        unchanged_files=_sorted(unchanged),
        changed_files=_sorted(changed),
        new_files=_sorted(new),
        deleted_paths=deleted,
        truncated=remote.truncated,
    )
    logger.debug(
        "diff: %d new, %d changed, %d unchanged, %d deleted",
        len(status.new_files), len(status.changed_files),
        len(status.unchanged_files), len(status.deleted_paths),
    )
    return status
