"""Tests for resolving material revisions with GitPython."""

import asyncio

import pytest

from gocdpipe.core.services.git_module import (
    GitCloneError,
    GitLocalPathError,
    GitMaterialResolver,
)
from gocdpipe.model import GitMaterial

from conftest import requires_git


@requires_git
class TestCheckout:
    def test_shallow_checkout(self, git_repo, tmp_path):
        origin, revision = git_repo
        material = GitMaterial(
            name="relay_repo",
            git=origin.as_uri(),
            branch="master",
            shallow_clone=True,
            destination="relay",
        )
        resolver = GitMaterialResolver(base_dir=tmp_path / "work")

        local = asyncio.run(resolver.checkout(material))
        try:
            assert local.revision == revision
            assert local.repo_path.name == "relay"
            assert (local.repo_path / "README.md").exists()
            assert local.is_temporary
        finally:
            local.cleanup()
        assert not local.root_dir.exists()

    def test_url_override(self, git_repo, tmp_path):
        origin, revision = git_repo
        material = GitMaterial(name="relay_repo", git="git@github.com:getsentry/relay.git")
        resolver = GitMaterialResolver(base_dir=tmp_path / "work")

        local = asyncio.run(resolver.checkout(material, url=str(origin)))
        local.cleanup()
        assert local.revision == revision

    def test_missing_branch(self, git_repo, tmp_path):
        origin, _ = git_repo
        material = GitMaterial(name="relay_repo", git=str(origin), branch="does-not-exist")
        resolver = GitMaterialResolver(base_dir=tmp_path / "work")

        with pytest.raises(GitCloneError) as exc:
            asyncio.run(resolver.checkout(material))
        assert exc.value.branch == "does-not-exist"
        assert exc.value.logs
        assert list((tmp_path / "work").iterdir()) == []


@requires_git
class TestExistingPath:
    def test_head_revision(self, git_repo):
        origin, revision = git_repo
        local = asyncio.run(GitMaterialResolver().from_existing_path(origin))
        assert local.revision == revision
        assert not local.is_temporary
        local.cleanup()
        assert origin.exists()

    def test_not_a_repository(self, tmp_path):
        with pytest.raises(GitLocalPathError):
            asyncio.run(GitMaterialResolver().from_existing_path(tmp_path))

    def test_missing_path(self, tmp_path):
        with pytest.raises(GitLocalPathError) as exc:
            asyncio.run(GitMaterialResolver().from_existing_path(tmp_path / "nope"))
        assert exc.value.path.endswith("nope")
