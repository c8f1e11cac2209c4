"""Tests for the flowershow CLI."""

import json
import logging

import pytest

from flowershow.cli import main
from flowershow.cli import _helpers
from flowershow.exceptions import RemoteUnavailable
from flowershow.publisher import Publisher

ENV = {"FLOWERSHOW_OWNER": None, "FLOWERSHOW_REPO": None, "FLOWERSHOW_TOKEN": None}
CREDS = ["--owner", "me", "--repo", "garden", "--token", "tok"]


@pytest.fixture
def remote(make_repo, clock, monkeypatch):
    """Route every Publisher the CLI builds to an in-memory repository."""
    repo = make_repo()

    def build(config, vault, **kw):
        return Publisher(config, vault, repository=repo, clock=clock, **kw)

    monkeypatch.setattr(_helpers, "Publisher", build)
    return repo


@pytest.fixture
def invoke(runner, vault_dir, remote):
    def _invoke(*args, creds=True):
        argv = ["-C", str(vault_dir)] + (CREDS if creds else []) + list(args)
        return runner.invoke(main, argv, env=ENV)
    return _invoke


class TestStatus:
    def test_lists_sections(self, invoke):
        result = invoke("status")
        assert result.exit_code == 0, result.output
        assert "New (3):" in result.output
        assert "  index.md" in result.output
        assert "Deleted (0):" in result.output

    def test_json(self, invoke, remote):
        remote.branches["main"]["old.md"] = b"x"
        result = invoke("status", "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["new"] == ["img/cat.png", "index.md", "notes/a.md"]
        assert data["deleted"] == ["old.md"]
        assert data["truncated"] is False

    def test_exclude_option(self, invoke):
        result = invoke("--exclude", "^notes/", "status", "--json")
        assert result.exit_code == 0, result.output
        assert "notes/a.md" not in json.loads(result.output)["new"]

    def test_missing_settings(self, invoke):
        result = invoke("status", creds=False)
        assert result.exit_code == 1
        assert "Missing required setting(s): owner, repo, token" in result.output

    def test_settings_from_environment(self, runner, vault_dir, remote):
        env = {"FLOWERSHOW_OWNER": "me", "FLOWERSHOW_REPO": "garden", "FLOWERSHOW_TOKEN": "tok",
               "FLOWERSHOW_VAULT": str(vault_dir)}
        result = runner.invoke(main, ["status"], env=env)
        assert result.exit_code == 0, result.output
        assert "New (3):" in result.output


class TestPublish:
    def test_publish_batch(self, invoke, remote):
        result = invoke("publish")
        assert result.exit_code == 0, result.output
        assert "Pull request #1: https://github.test/me/garden/pull/1" in result.output
        assert "Branch: flowershow/publish-20240501-123045" in result.output
        assert "Merge: merged" in result.output
        assert set(remote.branches["main"]) == {"img/cat.png", "index.md", "notes/a.md"}

    def test_nothing_to_publish(self, invoke):
        invoke("publish")
        result = invoke("publish")
        assert result.exit_code == 0, result.output
        assert "Nothing to publish." in result.output

    def test_dry_run(self, invoke, remote):
        remote.branches["main"]["old.md"] = b"x"
        result = invoke("publish", "--dry-run")
        assert result.exit_code == 0, result.output
        assert "push   index.md" in result.output
        assert "delete old.md" in result.output
        assert "put_file" not in remote.methods()

    def test_no_deleted(self, invoke, remote):
        remote.branches["main"]["old.md"] = b"x"
        result = invoke("publish", "--no-deleted", "--no-auto-merge")
        assert result.exit_code == 0, result.output
        assert "Merge: pull_request_opened" in result.output
        assert "old.md" not in remote.pull_requests[0]["body"]

    def test_branch_name(self, invoke, remote):
        result = invoke("publish", "--branch-name", "garden/update")
        assert result.exit_code == 0, result.output
        assert "Branch: garden/update" in result.output

    def test_partial_failure_reported(self, invoke, remote):
        remote.failures[("put_file", "index.md")] = RemoteUnavailable("bad gateway", status=502)
        result = invoke("publish")
        assert result.exit_code == 1
        assert "Working branch left in place: flowershow/publish-20240501-123045" in result.output
        assert "Remaining: index.md, notes/a.md" in result.output


class TestSingleNote:
    def test_publish_note(self, invoke, remote):
        result = invoke("publish-note", "index.md")
        assert result.exit_code == 0, result.output
        assert "Published index.md" in result.output
        assert "  + img/cat.png" in result.output
        assert set(remote.branches["main"]) == {"index.md", "img/cat.png"}

    def test_publish_missing_note(self, invoke):
        result = invoke("publish-note", "nope.md")
        assert result.exit_code == 1
        assert "Cannot read nope.md" in result.output

    def test_publish_note_outside_vault(self, invoke, vault_dir, remote):
        (vault_dir.parent / "secret.md").write_text("secret", encoding="utf-8")
        result = invoke("publish-note", "../secret.md")
        assert result.exit_code == 1
        assert "Cannot read ../secret.md" in result.output
        assert "put_file" not in remote.methods()

    def test_unpublish(self, invoke, remote):
        remote.branches["main"]["old.md"] = b"x"
        result = invoke("unpublish", "old.md")
        assert result.exit_code == 0, result.output
        assert "Unpublished old.md" in result.output
        assert remote.branches["main"] == {}

    def test_unpublish_absent(self, invoke):
        result = invoke("unpublish", "old.md")
        assert result.exit_code == 1
        assert "not published" in result.output


@pytest.fixture
def restore_logging():
    logger = logging.getLogger("flowershow")
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestVerbose:
    def test_status_line(self, invoke, restore_logging):
        result = invoke("-v", "status")
        assert result.exit_code == 0, result.output
        assert "Vault " in result.output
        assert "(main)" in result.output
        assert restore_logging.level == logging.INFO

    def test_debug_logging(self, invoke, restore_logging):
        result = invoke("-vv", "status")
        assert result.exit_code == 0, result.output
        assert "DEBUG flowershow.diff: diff: 3 new" in result.output
