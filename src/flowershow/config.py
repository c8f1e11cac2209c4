"""Read-only configuration snapshot for publishing.

A :class:`PublishConfig` is built once (from keyword arguments, a mapping
or the environment) and handed by value to the components that need it.
Nothing in the library mutates it; use :meth:`PublishConfig.replace` to
derive a changed copy.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass
from typing import Any, Mapping

from ._exclude import PathFilter
from .exceptions import ConfigInvalid

DEFAULT_EXCLUDE_PATTERNS = (r"\.excalidraw(\.(md|excalidraw))?$",)

NOTE_EXTENSIONS = ("md", "mdx")
IMAGE_EXTENSIONS = ("png", "webp", "jpg", "jpeg", "gif", "bmp", "svg")
TEXT_EXTENSIONS = ("md", "mdx", "json", "yaml", "yml", "css")

BACKENDS = ("github", "objects")
MERGE_METHODS = ("merge", "squash", "rebase")

_ENV_PREFIX = "FLOWERSHOW_"


def _split_list(value: str) -> tuple[str, ...]:
    """Split a newline- or comma-separated environment value."""
    sep = "\n" if "\n" in value else ","
    return tuple(v.strip() for v in value.split(sep) if v.strip())


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class PublishConfig:
    """Settings consumed read-only by the diff and publish workflow."""

    owner: str = ""
    repo: str = ""
    token: str = ""
    branch: str = "main"
    user_name: str = ""
    auto_merge: bool = True
    merge_commit_message: str = "Merge content updates"
    merge_method: str = "merge"
    exclude_patterns: tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    ignore_patterns: tuple[str, ...] = ()
    content_extensions: tuple[str, ...] = NOTE_EXTENSIONS + IMAGE_EXTENSIONS
    branch_prefix: str = "flowershow/publish"
    api_url: str = "https://api.github.com"
    backend: str = "github"
    objects_url: str = ""
    timeout: float = 30.0
    max_workers: int = 8

    def __post_init__(self):
        for name in ("exclude_patterns", "ignore_patterns", "content_extensions"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value))

    # --- Derived values ---

    @property
    def committer_name(self) -> str:
        return self.user_name or self.owner

    @property
    def committer_email(self) -> str:
        return f"{self.committer_name}@users.noreply.github.com"

    @property
    def committer(self) -> dict[str, str]:
        """Committer identity in the shape the contents API expects."""
        return {"name": self.committer_name, "email": self.committer_email}

    def path_filter(self) -> PathFilter:
        """Build the :class:`PathFilter` described by this configuration."""
        return PathFilter(
            exclude_patterns=self.exclude_patterns,
            ignore_patterns=self.ignore_patterns,
            extensions=self.content_extensions or None,
        )

    # --- Validation ---

    def validate(self) -> PublishConfig:
        """Raise :class:`ConfigInvalid` unless every required field is set.

        Returns *self* so it can be chained.
        """
        if self.backend not in BACKENDS:
            raise ConfigInvalid(
                f"Unknown backend {self.backend!r} (expected one of {', '.join(BACKENDS)})",
                missing=("backend",),
            )
        if self.backend == "objects":
            required = ("objects_url",)
        else:
            required = ("owner", "repo", "token", "branch")
        missing = [name for name in required if not str(getattr(self, name)).strip()]
        if missing:
            raise ConfigInvalid(
                f"Missing required setting(s): {', '.join(missing)}",
                missing=missing,
            )
        if self.merge_method not in MERGE_METHODS:
            raise ConfigInvalid(
                f"Unknown merge method {self.merge_method!r}",
                missing=("merge_method",),
            )
        if self.timeout <= 0:
            raise ConfigInvalid("Timeout must be positive", missing=("timeout",))
        # Compile patterns now so a bad regex fails before any remote call.
        self.path_filter()
        return self

    # --- Construction ---

    def replace(self, **changes: Any) -> PublishConfig:
        """Return a copy with *changes* applied."""
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PublishConfig:
        """Build from a mapping, ignoring unknown keys."""
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names and v is not None})

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PublishConfig:
        """Build from ``FLOWERSHOW_*`` environment variables.

        List fields accept comma- or newline-separated values.
        """
        if environ is None:
            environ = os.environ
        values: dict[str, Any] = {}
        for f in dataclasses.fields(cls):
            raw = environ.get(_ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            if f.name == "auto_merge":
                values[f.name] = _parse_bool(raw)
            elif f.name in ("exclude_patterns", "ignore_patterns", "content_extensions"):
                values[f.name] = _split_list(raw)
            elif f.name == "timeout":
                values[f.name] = float(raw)
            elif f.name == "max_workers":
                values[f.name] = int(raw)
            else:
                values[f.name] = raw
        return cls(**values)
