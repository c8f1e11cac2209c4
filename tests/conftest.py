"""Shared fixtures for flowershow tests."""

import json
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from flowershow._hash import blob_hash, content_hash
from flowershow._http import HttpClient, HttpResponse
from flowershow.config import PublishConfig
from flowershow.exceptions import RemoteNotFound, RemoteRequestFailed
from flowershow.remote import PullRequest
from flowershow.types import HashAlgo, RemoteState


FIXED_NOW = datetime(2024, 5, 1, 12, 30, 45, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# In-memory content repository
# ---------------------------------------------------------------------------

class FakeRepository:
    """A ContentRepository keeping every branch as a ``{path: bytes}`` dict.

    Every call is appended to ``calls`` as ``(method, subject)``.  Put an
    exception in ``failures[(method, subject)]`` (or ``(method, None)``
    for any subject) to make that call raise.
    """

    def __init__(self, files=None, *, base="main"):
        self.branches = {base: dict(files or {})}
        self.heads = {base: self._new_sha()}
        self.calls = []
        self.commits = []
        self.failures = {}
        self.pull_requests = []
        self.merged = []
        self.auto_merge_requests = []

    _counter = 0

    @classmethod
    def _new_sha(cls):
        cls._counter += 1
        return f"{cls._counter:040x}"

    def _record(self, method, subject):
        self.calls.append((method, subject))
        exc = self.failures.get((method, subject)) or self.failures.get((method, None))
        if exc is not None:
            raise exc

    def _branch(self, branch):
        if branch not in self.branches:
            raise RemoteNotFound(f"Branch {branch} not found", operation="get branch", path=branch, status=404)
        return self.branches[branch]

    def _commit(self, branch, message):
        self.commits.append((branch, message))
        self.heads[branch] = self._new_sha()

    # --- ContentRepository ---

    def get_branch_sha(self, branch):
        self._record("get_branch_sha", branch)
        self._branch(branch)
        return self.heads[branch]

    def branch_exists(self, branch):
        self._record("branch_exists", branch)
        return branch in self.branches

    def create_branch(self, branch, sha):
        self._record("create_branch", branch)
        if branch in self.branches:
            raise RemoteRequestFailed("Reference already exists", operation="create branch", status=422)
        source = next(b for b, head in self.heads.items() if head == sha)
        self.branches[branch] = dict(self.branches[source])
        self.heads[branch] = sha

    def get_file_sha(self, path, ref):
        self._record("get_file_sha", path)
        files = self._branch(ref)
        if path not in files:
            return None
        return blob_hash(files[path])

    def put_file(self, path, content, *, branch, message, sha=None):
        self._record("put_file", path)
        files = self._branch(branch)
        current = blob_hash(files[path]) if path in files else None
        if current != sha:
            raise RemoteRequestFailed("sha mismatch", operation="put file", path=path, status=409)
        files[path] = content
        self._commit(branch, message)

    def delete_file(self, path, *, branch, message, sha):
        self._record("delete_file", path)
        files = self._branch(branch)
        if path not in files or blob_hash(files[path]) != sha:
            raise RemoteRequestFailed("sha mismatch", operation="delete file", path=path, status=409)
        del files[path]
        self._commit(branch, message)

    def read_tree(self, ref):
        self._record("read_tree", ref)
        files = self._branch(ref)
        return RemoteState.from_hashes(
            {p: blob_hash(c) for p, c in files.items()}, algo=HashAlgo.SHA1,
        )

    def create_pull_request(self, *, title, body, head, base):
        self._record("create_pull_request", head)
        n = len(self.pull_requests) + 1
        pr = PullRequest(n, f"https://github.test/me/garden/pull/{n}", f"PR_{n}")
        self.pull_requests.append({"pr": pr, "title": title, "body": body, "head": head, "base": base})
        return pr

    def merge_pull_request(self, pr, *, commit_title, method):
        self._record("merge_pull_request", pr.number)
        info = self.pull_requests[pr.number - 1]
        self.branches[info["base"]] = dict(self.branches[info["head"]])
        self._commit(info["base"], commit_title)
        self.merged.append(pr.number)

    def enable_auto_merge(self, pr, *, commit_headline, method):
        self._record("enable_auto_merge", pr.number)
        self.auto_merge_requests.append(pr.number)

    # --- Helpers for assertions ---

    def methods(self):
        return [m for m, _ in self.calls]


class FakeObjectStore:
    """In-memory stand-in for ObjectStoreRepository."""

    def __init__(self, objects=None):
        self.objects = dict(objects or {})
        self.calls = []
        self.failures = {}

    def _record(self, method, subject):
        self.calls.append((method, subject))
        exc = self.failures.get((method, subject))
        if exc is not None:
            raise exc

    def put_object(self, path, content):
        self._record("put_object", path)
        self.objects[path] = content

    def delete_object(self, path):
        self._record("delete_object", path)
        return self.objects.pop(path, None) is not None

    def read_tree(self, ref=None):
        self._record("read_tree", ref)
        return RemoteState.from_hashes(
            {p: content_hash(c) for p, c in self.objects.items()},
            algo=HashAlgo.SHA256, framed=False,
        )


# ---------------------------------------------------------------------------
# HTTP stub
# ---------------------------------------------------------------------------

class StubTransport:
    """Transport replaying queued responses in order.

    Queue an :class:`HttpResponse` (or an exception to raise) per expected
    request; every request is recorded in ``requests``.
    """

    def __init__(self, *responses):
        self.queue = list(responses)
        self.requests = []

    def add(self, status=200, payload=None, *, body=b"", headers=None):
        if payload is not None:
            body = json.dumps(payload).encode("utf-8")
        self.queue.append(HttpResponse(status, body, dict(headers or {})))
        return self

    def fail(self, exc):
        self.queue.append(exc)
        return self

    def request(self, method, url, *, body=None, headers=None, timeout):
        self.requests.append({
            "method": method, "url": url, "body": body,
            "headers": dict(headers or {}), "timeout": timeout,
        })
        if not self.queue:
            raise AssertionError(f"unexpected request {method} {url}")
        item = self.queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def json_body(self, index=-1):
        return json.loads(self.requests[index]["body"].decode("utf-8"))


# ---------------------------------------------------------------------------
# Progress recorder
# ---------------------------------------------------------------------------

class RecordingProgress:
    def __init__(self):
        self.events = []

    def on_publish(self, done, total, path):
        self.events.append(("publish", done, total, path))

    def on_delete(self, done, total, path):
        self.events.append(("delete", done, total, path))

    def on_complete(self, result):
        self.events.append(("complete", result))

    def on_error(self, error):
        self.events.append(("error", error))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def config():
    return PublishConfig(owner="me", repo="garden", token="tok")


@pytest.fixture
def fake_repo():
    return FakeRepository()


@pytest.fixture
def make_repo():
    """Factory: ``make_repo({"a.md": b"..."})`` seeds the base branch."""
    return FakeRepository


@pytest.fixture
def make_store():
    return FakeObjectStore


@pytest.fixture
def progress():
    return RecordingProgress()


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def client(transport):
    return HttpClient("https://api.github.test", token="tok", transport=transport)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def vault_dir(tmp_path):
    """A small vault on disk.

    Tree:
        index.md (embeds img/cat.png), notes/a.md, img/cat.png,
        drawing.excalidraw.md, .obsidian/app.json, scripts/site.js
    """
    root = tmp_path / "vault"
    (root / "notes").mkdir(parents=True)
    (root / "img").mkdir()
    (root / ".obsidian").mkdir()
    (root / "scripts").mkdir()
    (root / "index.md").write_text("# Home\n\n![[cat.png]]\n", encoding="utf-8")
    (root / "notes" / "a.md").write_text("Note A\n", encoding="utf-8")
    (root / "img" / "cat.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")
    (root / "drawing.excalidraw.md").write_text("{}", encoding="utf-8")
    (root / ".obsidian" / "app.json").write_text("{}", encoding="utf-8")
    (root / "scripts" / "site.js").write_text("//", encoding="utf-8")
    return root
