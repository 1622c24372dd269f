from datetime import date
from pathlib import Path

import pytest

from cache.file_store import FileReleaseStore
from clients.git_client import GitError
from configs.config import Config

RELEASE_DAY = date(2026, 10, 19)

PROD_DESCRIPTOR = """\
version: 1.0
runtime: nodejs18
run:
  command: npm start
  env:
    - name: ENVIRONMENT
      value: prod
"""

DEV_DESCRIPTOR = PROD_DESCRIPTOR.replace("value: prod", "value: dev")


class FakeGit:
    """In-memory source control that writes real files under ``root``."""

    def __init__(self, root: Path, branch: str = "main"):
        self.root = Path(root)
        self.branch = branch
        self.modified = []
        self.staged = []
        self.untracked = []
        self.diffs = {}
        self.fail_on = set()
        self.calls = []
        self.commits = []
        self.pushed = []

    def _call(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise GitError(f"git {name} failed", code="COMMAND_FAILED")

    def add_file(self, path, content, *, kind="modified", diff=None):
        target = self.root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        if kind == "untracked":
            self.untracked.append(path)
        elif kind == "staged":
            self.staged.append(path)
        else:
            self.modified.append(path)
        if diff is not None:
            self.diffs[path] = diff

    def list_modified_paths(self):
        self._call("list_modified_paths")
        return list(self.modified)

    def list_staged_paths(self):
        self._call("list_staged_paths")
        return list(self.staged)

    def list_untracked_paths(self):
        self._call("list_untracked_paths")
        return list(self.untracked)

    def diff(self, path):
        self._call("diff")
        return self.diffs.get(path, "")

    def current_branch(self):
        self._call("current_branch")
        return self.branch

    def stage_all(self):
        self._call("stage_all")

    def commit(self, message):
        self._call("commit")
        self.commits.append(message)

    def push(self, branch):
        self._call("push")
        self.pushed.append(branch)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    monkeypatch.setattr(Config, "REPO_ROOT", str(tmp_path))
    monkeypatch.setattr(Config, "STORE_ROOT", str(tmp_path / ".release-store"))
    monkeypatch.setattr(Config, "STORE_BACKEND", "file")
    monkeypatch.setattr(Config, "PRODUCT_NAME", "Practice Tools")
    monkeypatch.setattr(Config, "RELEASE_RULES_PATH", "release_rules.yaml")
    yield


@pytest.fixture()
def fake_git(tmp_path):
    return FakeGit(tmp_path)


@pytest.fixture()
def prod_store(tmp_path):
    return FileReleaseStore(str(tmp_path / ".release-store" / "prod"))


@pytest.fixture()
def dev_store(tmp_path):
    return FileReleaseStore(str(tmp_path / ".release-store" / "dev"))


@pytest.fixture()
def descriptors(tmp_path):
    (tmp_path / "apprunner-prod.yaml").write_text(PROD_DESCRIPTOR, encoding="utf-8")
    (tmp_path / "apprunner-dev.yaml").write_text(DEV_DESCRIPTOR, encoding="utf-8")
    return tmp_path
