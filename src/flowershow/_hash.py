"""Content identifiers compatible with git blob object ids.

A git blob id is ``H(b"blob <size>\\0" + content)`` where ``H`` is SHA-1
for legacy repositories and SHA-256 for repositories in the newer object
format.  Computing it locally lets the diff engine compare vault files
against a remote tree listing without uploading anything.
"""

from __future__ import annotations

import hashlib

from dulwich.objects import Blob, object_header

from .types import HashAlgo

_DIGESTS = {
    HashAlgo.SHA1: hashlib.sha1,
    HashAlgo.SHA256: hashlib.sha256,
}


def text_bytes(text: str) -> bytes:
    """Encode note text the way it is hashed and uploaded (UTF-8)."""
    return text.encode("utf-8")


def _blob_hasher(size: int, algo: HashAlgo):
    """Return a hasher pre-loaded with the git blob header for *size* bytes."""
    return _DIGESTS[algo](object_header(Blob.type_num, size))


def blob_hash(data: bytes, algo: HashAlgo = HashAlgo.SHA1) -> str:
    """Return the hex git blob id of *data* under *algo*."""
    h = _blob_hasher(len(data), algo)
    h.update(data)
    return h.hexdigest()


def content_hash(data: bytes, algo: HashAlgo = HashAlgo.SHA256) -> str:
    """Return the plain (unframed) hex digest of *data*.

    Used by object-storage backends, whose checksums cover the bytes only.
    """
    return _DIGESTS[algo](data).hexdigest()


def detect_algo(sha: str | None) -> HashAlgo:
    """Guess the algorithm behind a hex identifier from its length.

    64 characters means SHA-256; anything else is treated as SHA-1.
    """
    if sha is not None and len(sha) == HashAlgo.SHA256.hex_length:
        return HashAlgo.SHA256
    return HashAlgo.SHA1


def local_hash(
    data: bytes,
    remote_sha: str | None,
    *,
    algo: HashAlgo | None = None,
    framed: bool = True,
) -> str:
    """Hash *data* so it is comparable with *remote_sha*.

    *algo* is used when known; otherwise it is detected from *remote_sha*.
    """
    if algo is None:
        algo = detect_algo(remote_sha)
    if framed:
        return blob_hash(data, algo)
    return content_hash(data, algo)
