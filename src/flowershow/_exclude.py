"""Path filtering for vault files and remote listings.

Combines regular-expression ``exclude_patterns`` (matched with
``re.search`` against the normalized path), gitignore-style
``ignore_patterns`` (implemented by ``dulwich.ignore.IgnoreFilter``) and
an allow-list of content extensions into a single predicate.  The same
filter runs over local files and over the remote tree, so an excluded
path is never reported as deleted.
"""

from __future__ import annotations

import re
from typing import Sequence

from dulwich.ignore import IgnoreFilter

from .exceptions import ConfigInvalid


class PathFilter:
    """Decides which paths take part in publishing."""

    def __init__(
        self,
        *,
        exclude_patterns: Sequence[str] | None = None,
        ignore_patterns: Sequence[str] | None = None,
        extensions: Sequence[str] | None = None,
    ) -> None:
        self._regexes: list[re.Pattern[str]] = []
        for pattern in exclude_patterns or ():
            try:
                self._regexes.append(re.compile(pattern))
            except re.error as exc:
                raise ConfigInvalid(
                    f"Invalid exclude pattern {pattern!r}: {exc}",
                    missing=("exclude_patterns",),
                ) from exc
        lines = [p.encode("utf-8") for p in ignore_patterns or ()]
        self._ignore: IgnoreFilter | None = IgnoreFilter(lines) if lines else None
        self._extensions: frozenset[str] | None = (
            frozenset(e.lower().lstrip(".") for e in extensions)
            if extensions is not None else None
        )

    # ------------------------------------------------------------------
    @property
    def active(self) -> bool:
        """True if any filtering is configured."""
        return bool(self._regexes) or self._ignore is not None or self._extensions is not None

    # ------------------------------------------------------------------
    def is_excluded(self, path: str) -> bool:
        """Check *path* against the regex and gitignore patterns."""
        for rx in self._regexes:
            if rx.search(path):
                return True
        if self._ignore is not None and self._ignore.is_ignored(path) is True:
            return True
        return False

    # ------------------------------------------------------------------
    def has_content_extension(self, path: str) -> bool:
        if self._extensions is None:
            return True
        name = path.rsplit("/", 1)[-1]
        if "." not in name:
            return False
        return name.rsplit(".", 1)[-1].lower() in self._extensions

    # ------------------------------------------------------------------
    def __call__(self, path: str) -> bool:
        """Return True if *path* should be published."""
        return self.has_content_extension(path) and not self.is_excluded(path)
