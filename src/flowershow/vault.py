"""Filesystem-backed vault: reads notes and their embedded images.

Paths are vault-relative with forward slashes.  Directories whose name
starts with a dot (``.obsidian``, ``.git``, ``.trash``) are not walked.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import unquote

from ._exclude import PathFilter
from .config import IMAGE_EXTENSIONS, NOTE_EXTENSIONS, TEXT_EXTENSIONS, PublishConfig
from .types import FileKind, FileRecord, normalize_path

logger = logging.getLogger(__name__)

_IMAGE_EXT = "|".join(IMAGE_EXTENSIONS)
# ![[image.png]] / ![[image.png|300]]
_WIKI_EMBED = re.compile(r"!\[\[([^\]|]*?\.(?:" + _IMAGE_EXT + r"))(?:\|[^\]]*)?\]\]", re.IGNORECASE)
# ![alt](image.png) / ![alt](<image with spaces.png>)
_MD_EMBED = re.compile(r"!\[[^\]]*\]\(<?([^)>]*?\.(?:" + _IMAGE_EXT + r"))>?(?:\s+\"[^\"]*\")?\)", re.IGNORECASE)


def file_kind(path: str) -> FileKind:
    """``TEXT`` for plain-text extensions, ``BINARY`` otherwise."""
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return FileKind.TEXT if suffix in TEXT_EXTENSIONS else FileKind.BINARY


def is_note(path: str) -> bool:
    return PurePosixPath(path).suffix.lower().lstrip(".") in NOTE_EXTENSIONS


@dataclass(frozen=True)
class EmbedResult:
    """Outcome of resolving one embed found in a note.

    Attributes:
        link: The link text as written in the note.
        path: Resolved vault path (``None`` when unresolved).
        record: The asset, when it should be uploaded.
        skip_reason: Why the embed is not uploaded: ``"remote"``,
            ``"missing"``, ``"outside"`` (resolves outside the vault root),
            ``"ambiguous"``, ``"excluded"`` or ``"duplicate"``; ``None``
            for uploaded assets.
    """
    link: str
    path: str | None = None
    record: FileRecord | None = None
    skip_reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


def extract_embed_links(markdown: str) -> list[str]:
    """Return image embed targets in document order (wiki-style first)."""
    links = [m.group(1).strip() for m in _WIKI_EMBED.finditer(markdown)]
    links.extend(m.group(1).strip() for m in _MD_EMBED.finditer(markdown))
    return links


class LocalVault:
    """A directory of notes and attachments."""

    def __init__(self, root: str | os.PathLike[str], config: PublishConfig | None = None) -> None:
        self.root = Path(root)
        self._filter: PathFilter = (config or PublishConfig()).path_filter()
        self._index: dict[str, list[str]] | None = None

    def __repr__(self) -> str:
        return f"LocalVault({str(self.root)!r})"

    # --- Walking ---

    def _walk(self) -> list[str]:
        """All vault-relative file paths, sorted, before filtering."""
        result: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            dp = Path(dirpath)
            for fname in filenames:
                rel = (dp / fname).relative_to(self.root).as_posix()
                result.append(rel)
        result.sort()
        return result

    def paths(self) -> list[str]:
        """Publishable paths, sorted."""
        return [p for p in self._walk() if self._filter(p)]

    def read(self, path: str) -> FileRecord:
        """Read *path* into a :class:`FileRecord`.

        Text files are decoded as UTF-8 and re-encoded, so the record holds
        exactly the bytes that are hashed and uploaded.  A text file that is
        not valid UTF-8 is read as ``BINARY`` with a warning.

        Raises:
            ValueError: If *path* has a ``.`` or ``..`` segment.
        """
        path = normalize_path(path)
        full = self.root / path
        data = full.read_bytes()
        if file_kind(path) is FileKind.TEXT:
            try:
                return FileRecord.from_text(path, data.decode("utf-8"))
            except UnicodeDecodeError as exc:
                logger.warning("%s is not valid UTF-8 (%s); publishing raw bytes", path, exc.reason)
        return FileRecord.from_bytes(path, data)

    def files(self) -> list[FileRecord]:
        """Every publishable file as a :class:`FileRecord`."""
        return [self.read(p) for p in self.paths()]

    # --- Embeds ---

    def _basename_index(self) -> dict[str, list[str]]:
        if self._index is None:
            index: dict[str, list[str]] = {}
            for rel in self._walk():
                index.setdefault(rel.rsplit("/", 1)[-1].lower(), []).append(rel)
            self._index = index
        return self._index

    def _resolve(self, link: str, note_path: str) -> tuple[str | None, str | None]:
        """Resolve *link* from *note_path*; return ``(path, skip_reason)``."""
        target = unquote(link).split("#", 1)[0].strip()
        note_dir = PurePosixPath(note_path).parent
        candidates = []
        if not target.startswith("/"):
            candidates.append(str(note_dir / target))
        candidates.append(target.lstrip("/"))
        root = self.root.resolve()
        for candidate in candidates:
            candidate = os.path.normpath(candidate).replace(os.sep, "/")
            if candidate in ("", "."):
                continue
            full = (self.root / candidate).resolve()
            if candidate.startswith("../") or candidate == ".." or not full.is_relative_to(root):
                return None, "outside"
            if full.is_file():
                return candidate, None
        matches = self._basename_index().get(PurePosixPath(target).name.lower(), [])
        if len(matches) == 1:
            return matches[0], None
        if len(matches) > 1:
            return None, "ambiguous"
        return None, "missing"

    def embedded_assets(self, record: FileRecord) -> list[EmbedResult]:
        """Resolve every image embedded in the note *record*.

        Each embed produces exactly one :class:`EmbedResult`; unresolved or
        unsuitable embeds carry a ``skip_reason`` rather than being dropped.
        """
        if record.kind is not FileKind.TEXT:
            return []
        results: list[EmbedResult] = []
        seen: set[str] = set()
        for link in extract_embed_links(record.text):
            if link.startswith(("http://", "https://")):
                results.append(EmbedResult(link, skip_reason="remote"))
                continue
            path, reason = self._resolve(link, record.path)
            if path is None:
                logger.warning("Embed %r in %s not resolved: %s", link, record.path, reason)
                results.append(EmbedResult(link, skip_reason=reason))
            elif path in seen:
                results.append(EmbedResult(link, path, skip_reason="duplicate"))
            elif self._filter.is_excluded(path):
                results.append(EmbedResult(link, path, skip_reason="excluded"))
            else:
                seen.add(path)
                results.append(EmbedResult(link, path, record=self.read(path)))
        return results
