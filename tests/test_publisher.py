"""Tests for the Publisher facade over a vault on disk."""

import pytest

from flowershow.config import PublishConfig
from flowershow.exceptions import ConfigInvalid, RemoteUnavailable
from flowershow.publisher import Publisher
from flowershow.remote import GitHubRepository, ObjectStoreRepository
from flowershow.types import BatchState
from flowershow.vault import LocalVault


@pytest.fixture
def vault(vault_dir, config):
    return LocalVault(vault_dir, config)


def _new(status):
    return [f.path for f in status.new_files]


class TestStatus:
    def test_fresh_vault(self, config, vault, fake_repo):
        st = Publisher(config, vault, repository=fake_repo).get_publish_status()
        assert _new(st) == ["img/cat.png", "index.md", "notes/a.md"]
        assert st.deleted_paths == []

    def test_site_code_never_deleted(self, config, vault, make_repo):
        repo = make_repo({"scripts/site.js": b"//", "old.md": b"x", "index.md": b"# Home\n\n![[cat.png]]\n"})
        st = Publisher(config, vault, repository=repo).get_publish_status()
        assert st.deleted_paths == ["old.md"]
        assert [f.path for f in st.unchanged_files] == ["index.md"]

    def test_reads_remote_every_time(self, config, vault, fake_repo):
        pub = Publisher(config, vault, repository=fake_repo)
        pub.get_publish_status()
        pub.get_publish_status()
        assert fake_repo.methods().count("read_tree") == 2

    def test_remote_failure_fails_status(self, config, vault, fake_repo):
        fake_repo.failures[("read_tree", None)] = RemoteUnavailable("down")
        with pytest.raises(RemoteUnavailable):
            Publisher(config, vault, repository=fake_repo).get_publish_status()

    def test_needs_vault(self, config, fake_repo):
        with pytest.raises(RuntimeError):
            Publisher(config, repository=fake_repo).get_publish_status()


class TestPublish:
    def test_batch_then_in_sync(self, config, vault, fake_repo, clock):
        pub = Publisher(config, vault, repository=fake_repo, clock=clock)
        result = pub.publish_batch(pub.get_publish_status().batch())
        assert result.state is BatchState.MERGED
        assert pub.get_publish_status().in_sync

    def test_publish_one_with_embeds(self, config, vault, fake_repo):
        pub = Publisher(config, vault, repository=fake_repo)
        embeds = pub.publish_one(vault.read("index.md"))
        assert [e.path for e in embeds] == ["img/cat.png"]
        assert set(fake_repo.branches["main"]) == {"index.md", "img/cat.png"}

    def test_publish_one_image(self, config, vault, fake_repo):
        pub = Publisher(config, vault, repository=fake_repo)
        assert pub.publish_one(vault.read("img/cat.png")) == []
        assert set(fake_repo.branches["main"]) == {"img/cat.png"}

    def test_unpublish_one(self, config, vault, make_repo):
        repo = make_repo({"old.md": b"x"})
        Publisher(config, vault, repository=repo).unpublish_one("old.md")
        assert repo.branches["main"] == {}


class TestBackends:
    def test_invalid_config_before_remote(self, vault, fake_repo):
        with pytest.raises(ConfigInvalid):
            Publisher(PublishConfig(owner="me"), vault, repository=fake_repo)
        assert fake_repo.calls == []

    def test_default_github(self, config, vault):
        assert isinstance(Publisher(config, vault).repository, GitHubRepository)

    def test_objects_backend(self, config, vault, make_store):
        store = make_store()
        cfg = config.replace(backend="objects", objects_url="https://store.test")
        pub = Publisher(cfg, vault, repository=store)
        result = pub.publish_batch(pub.get_publish_status().batch())
        assert result.merged is True
        assert set(store.objects) == {"img/cat.png", "index.md", "notes/a.md"}
        assert pub.get_publish_status().in_sync

    def test_objects_backend_default(self, config, vault):
        cfg = config.replace(backend="objects", objects_url="https://store.test")
        assert isinstance(Publisher(cfg, vault).repository, ObjectStoreRepository)
