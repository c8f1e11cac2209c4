"""Tests for PublishConfig."""

import dataclasses

import pytest

from flowershow.config import DEFAULT_EXCLUDE_PATTERNS, PublishConfig
from flowershow.exceptions import ConfigInvalid


class TestDefaults:
    def test_values(self):
        c = PublishConfig()
        assert c.branch == "main"
        assert c.auto_merge is True
        assert c.merge_commit_message == "Merge content updates"
        assert c.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS

    def test_frozen(self, config):
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.branch = "other"

    def test_committer_from_owner(self, config):
        assert config.committer == {"name": "me", "email": "me@users.noreply.github.com"}

    def test_committer_from_user_name(self, config):
        assert config.replace(user_name="ann").committer_email == "ann@users.noreply.github.com"

    def test_string_pattern_becomes_tuple(self):
        assert PublishConfig(exclude_patterns="^drafts/").exclude_patterns == ("^drafts/",)


class TestValidate:
    def test_valid_returns_self(self, config):
        assert config.validate() is config

    def test_missing_fields(self):
        with pytest.raises(ConfigInvalid) as exc_info:
            PublishConfig(owner="me").validate()
        assert exc_info.value.missing == ("repo", "token")
        assert exc_info.value.operation == "validate config"

    def test_blank_branch(self, config):
        with pytest.raises(ConfigInvalid) as exc_info:
            config.replace(branch="  ").validate()
        assert exc_info.value.missing == ("branch",)

    def test_objects_backend_needs_url(self):
        with pytest.raises(ConfigInvalid) as exc_info:
            PublishConfig(backend="objects").validate()
        assert exc_info.value.missing == ("objects_url",)
        PublishConfig(backend="objects", objects_url="https://s.test").validate()

    def test_unknown_backend(self, config):
        with pytest.raises(ConfigInvalid, match="Unknown backend"):
            config.replace(backend="ftp").validate()

    def test_unknown_merge_method(self, config):
        with pytest.raises(ConfigInvalid, match="merge method"):
            config.replace(merge_method="octopus").validate()

    def test_timeout(self, config):
        with pytest.raises(ConfigInvalid):
            config.replace(timeout=0).validate()

    def test_bad_regex(self, config):
        with pytest.raises(ConfigInvalid, match="Invalid exclude pattern"):
            config.replace(exclude_patterns=("(",)).validate()


class TestConstruction:
    def test_replace_leaves_original(self, config):
        other = config.replace(branch="gh-pages")
        assert other.branch == "gh-pages"
        assert config.branch == "main"

    def test_from_mapping_ignores_unknown(self):
        c = PublishConfig.from_mapping({"owner": "me", "vaultName": "x", "repo": None})
        assert c.owner == "me"
        assert c.repo == ""

    def test_from_env(self):
        env = {
            "FLOWERSHOW_OWNER": "me",
            "FLOWERSHOW_REPO": "garden",
            "FLOWERSHOW_TOKEN": "t",
            "FLOWERSHOW_AUTO_MERGE": "false",
            "FLOWERSHOW_EXCLUDE_PATTERNS": "^drafts/, \\.tmp$",
            "FLOWERSHOW_TIMEOUT": "5",
            "FLOWERSHOW_MAX_WORKERS": "2",
            "UNRELATED": "x",
        }
        c = PublishConfig.from_env(env)
        assert (c.owner, c.repo, c.token) == ("me", "garden", "t")
        assert c.auto_merge is False
        assert c.exclude_patterns == ("^drafts/", "\\.tmp$")
        assert c.timeout == 5.0
        assert c.max_workers == 2

    def test_from_env_newline_list(self):
        c = PublishConfig.from_env({"FLOWERSHOW_IGNORE_PATTERNS": "*.tmp\nbuild/\n"})
        assert c.ignore_patterns == ("*.tmp", "build/")


class TestPathFilter:
    def test_default_filter(self, config):
        f = config.path_filter()
        assert f("notes/a.md") is True
        assert f("img/cat.PNG") is True
        assert f("drawing.excalidraw.md") is False
        assert f("scripts/site.js") is False
