"""Fresh reads of the remote path→hash mapping."""

from __future__ import annotations

import logging
from typing import Callable

from ..types import RemoteState

logger = logging.getLogger(__name__)


class RemoteStateReader:
    """Reads the complete :class:`RemoteState` of one ref.

    Nothing is cached: every :meth:`read_tree` call goes to the remote, so
    merges made by other actors in the meantime are always observed.

    Args:
        repository: Anything with a ``read_tree(ref)`` method.
        ref: Branch (or other ref) to list.
        keep: Optional predicate; paths for which it returns False are
            dropped from the state (e.g. site code next to the content).
    """

    def __init__(self, repository, ref: str, *, keep: Callable[[str], bool] | None = None) -> None:
        self._repository = repository
        self.ref = ref
        self._keep = keep

    def __repr__(self) -> str:
        return f"RemoteStateReader({self._repository!r}, ref={self.ref!r})"

    def read_tree(self) -> RemoteState:
        state = self._repository.read_tree(self.ref)
        if self._keep is not None:
            total = len(state)
            state = state.filtered(self._keep)
            logger.debug("Remote listing: %d entries, %d after filtering", total, len(state))
        return state
