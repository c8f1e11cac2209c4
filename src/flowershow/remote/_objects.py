"""Simplified object-storage backend.

``PUT <base>/<path>`` uploads raw bytes with their SHA-256 in
``X-Content-SHA256``; ``DELETE <base>/<path>`` removes an object;
``GET <base>/`` returns a paginated listing::

    {"objects": [{"key": "note.md", "checksums": {"sha256": "..."}}],
     "truncated": true, "cursor": "..."}
"""

from __future__ import annotations

import logging
from urllib.parse import quote

from .._hash import content_hash
from .._http import HttpClient, Transport
from ..config import PublishConfig
from ..retry import READS, WRITES, RetryPolicy
from ..types import HashAlgo, PathHash, RemoteState, normalize_path

logger = logging.getLogger(__name__)

_MAX_PAGES = 10_000


class ObjectStoreRepository:
    """Objects addressed by path under a base URL; no branches or history."""

    def __init__(
        self,
        client: HttpClient,
        *,
        reads: RetryPolicy = READS,
        writes: RetryPolicy = WRITES,
    ) -> None:
        self._client = client
        self._reads = reads
        self._writes = writes

    @classmethod
    def from_config(cls, config: PublishConfig, *, transport: Transport | None = None, **kwargs) -> ObjectStoreRepository:
        client = HttpClient(
            config.objects_url, token=config.token or None,
            timeout=config.timeout, transport=transport,
        )
        return cls(client, **kwargs)

    def __repr__(self) -> str:
        return f"ObjectStoreRepository({self._client.base_url!r})"

    @staticmethod
    def _key(path: str) -> str:
        return quote(normalize_path(path), safe="/")

    def put_object(self, path: str, content: bytes) -> None:
        self._writes.call(
            self._client.request_raw, "PUT", self._key(path), body=content,
            headers={
                "Content-Type": "application/octet-stream",
                "X-Content-SHA256": content_hash(content, HashAlgo.SHA256),
            },
            operation="upload object", subject=path,
        )

    def delete_object(self, path: str) -> bool:
        """Delete *path*; return ``False`` if it did not exist."""
        resp = self._writes.call(
            self._client.request_raw, "DELETE", self._key(path),
            operation="delete object", subject=path, allow=(404,),
        )
        return resp.status != 404

    def read_tree(self, ref: str | None = None) -> RemoteState:
        """List every object, following pagination cursors.

        *ref* is accepted for interface parity and ignored.
        """
        entries: dict[str, PathHash] = {}
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            params = {"cursor": cursor} if cursor else None
            resp = self._reads.call(
                self._client.request, "GET", "", params=params,
                headers={"Cache-Control": "no-cache"},
                operation="list objects",
            )
            payload = resp.json() or {}
            for obj in payload.get("objects", []):
                sha = (obj.get("checksums") or {}).get("sha256")
                if not sha:
                    logger.warning("Object %s has no sha256 checksum; skipping", obj.get("key"))
                    continue
                path = normalize_path(obj["key"])
                entries[path] = PathHash(path, sha)
            cursor = payload.get("cursor")
            if not payload.get("truncated") or not cursor:
                break
        else:
            logger.warning("Object listing stopped after %d pages", _MAX_PAGES)
            return RemoteState(entries, algo=HashAlgo.SHA256, framed=False, truncated=True)
        return RemoteState(entries, algo=HashAlgo.SHA256, framed=False)
