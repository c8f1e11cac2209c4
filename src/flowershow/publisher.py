"""Publisher: the caller-facing API.

Wires a configuration snapshot, a vault and a remote backend together::

    config = PublishConfig(owner="me", repo="garden", token=token)
    publisher = Publisher(config, LocalVault("~/notes", config))
    status = publisher.get_publish_status()
    result = publisher.publish_batch(status.batch())
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Protocol

from ._http import Transport
from .config import PublishConfig
from .diff import diff
from .progress import ProgressSink
from .publish import DirectOrchestrator, PublishOrchestrator
from .remote import GitHubRepository, ObjectStoreRepository, RemoteStateReader
from .types import Batch, FileRecord, PublishResult, PublishStatus
from .vault import EmbedResult, is_note

logger = logging.getLogger(__name__)


class Vault(Protocol):
    def files(self) -> list[FileRecord]: ...

    def embedded_assets(self, record: FileRecord) -> list[EmbedResult]: ...


class Publisher:
    """Computes publish status and publishes batches or single notes.

    The configuration is validated here, before any remote call.

    Args:
        config: Configuration snapshot; never mutated.
        vault: Source of local files and embed resolution.
        repository: Backend override (defaults to one built from *config*).
        transport: HTTP transport override for the default backend.
        progress: Default progress sink for batches.
        clock: Time source for default branch names.
    """

    def __init__(
        self,
        config: PublishConfig,
        vault: Vault | None = None,
        *,
        repository=None,
        transport: Transport | None = None,
        progress: ProgressSink | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config.validate()
        self.vault = vault
        if config.backend == "objects":
            self.repository = repository or ObjectStoreRepository.from_config(config, transport=transport)
            self._orchestrator = DirectOrchestrator(self.repository, progress=progress)
        else:
            self.repository = repository or GitHubRepository.from_config(config, transport=transport)
            self._orchestrator = PublishOrchestrator(
                self.repository, config, progress=progress, clock=clock,
            )
        self._reader = RemoteStateReader(self.repository, config.branch, keep=config.path_filter())

    def __repr__(self) -> str:
        return f"Publisher({self.repository!r}, branch={self.config.branch!r})"

    def _require_vault(self) -> Vault:
        if self.vault is None:
            raise RuntimeError("This operation needs a vault")
        return self.vault

    def get_publish_status(self) -> PublishStatus:
        """Diff the vault against a fresh read of the remote.

        Any failure reading the remote fails the whole computation.
        """
        vault = self._require_vault()
        remote = self._reader.read_tree()
        return diff(vault.files(), remote, max_workers=self.config.max_workers)

    def publish_batch(self, batch: Batch, *, progress: ProgressSink | None = None) -> PublishResult:
        return self._orchestrator.publish_batch(batch, progress=progress)

    def publish_one(self, record: FileRecord) -> list[EmbedResult]:
        """Publish one note directly, together with its embedded images.

        Returns one :class:`EmbedResult` per embed found, so skipped embeds
        are visible to the caller.
        """
        embeds: list[EmbedResult] = []
        if self.vault is not None and is_note(record.path):
            embeds = self.vault.embedded_assets(record)
        assets = [e.record for e in embeds if e.record is not None]
        self._orchestrator.publish_one(record, assets)
        return embeds

    def unpublish_one(self, path: str) -> None:
        self._orchestrator.unpublish_one(path)
