"""
Общие фикстуры для тестов gocdpipe.
"""

import shutil
from pathlib import Path

import pytest

from gocdpipe.core.services.builders.pipeline import build_relay_pipeline


REPO_ROOT = Path(__file__).parent.parent
RELAY_PIPELINE_FILE = REPO_ROOT / "gocd" / "pipelines" / "relay-experimental.yaml"

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not installed")


@pytest.fixture
def relay_document():
    document, _, _ = build_relay_pipeline()
    return document


@pytest.fixture
def relay_pipeline(relay_document):
    return relay_document.pipelines[0]


@pytest.fixture
def relay_yaml_path() -> Path:
    return RELAY_PIPELINE_FILE


@pytest.fixture
def minimal_yaml() -> str:
    return """\
format_version: 10
pipelines:
  sample:
    group: demo
    materials:
      app:
        git: https://example.com/app.git
    stages:
      - build:
          jobs:
            compile:
              timeout: 60
              elastic_profile_id: demo
              tasks:
                - script: make ${GO_REVISION_APP}
"""


@pytest.fixture
def git_repo(tmp_path):
    """
    Локальный git-репозиторий с одним коммитом на ветке master.
    """
    from git import Actor, Repo

    path = tmp_path / "origin"
    repo = Repo.init(path, initial_branch="master")
    (path / "README.md").write_text("relay\n", encoding="utf-8")
    repo.index.add(["README.md"])
    author = Actor("Test", "test@example.com")
    commit = repo.index.commit("initial", author=author, committer=author)
    repo.close()
    return path, commit.hexsha
