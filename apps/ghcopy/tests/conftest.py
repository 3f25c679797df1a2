from pathlib import Path

import pytest

from ghcopy.errors import NoBranch, NoRepos, NoUser, SourceError
from ghcopy.history import HistoryStore


class FakeSource:
    """In-memory RepositorySource."""

    def __init__(
        self,
        user="alice",
        repositories=None,
        branches=None,
        trees=None,
        fail_transfer=False,
    ):
        self.user = user
        self.repositories = repositories if repositories is not None else []
        self.branches = branches or {}
        self.trees = trees or {}
        self.fail_transfer = fail_transfer
        self.calls = []
        self.transfers = []

    def default_user(self):
        self.calls.append(("default_user",))
        if not self.user:
            raise NoUser("Failed to get GitHub user")
        return self.user

    def repository_names(self, user):
        self.calls.append(("repository_names", user))
        if not self.repositories:
            raise NoRepos(f"No repositories found for {user}")
        return list(self.repositories)

    def default_branch(self, repository):
        self.calls.append(("default_branch", repository))
        if repository not in self.branches:
            raise NoBranch(f"Failed to get default branch of {repository}")
        return self.branches[repository]

    def repository_tree(self, repository, branch):
        self.calls.append(("repository_tree", repository, branch))
        return self.trees[repository]

    def transfer(self, url, destination):
        self.calls.append(("transfer", url, destination))
        if self.fail_transfer:
            raise SourceError(f"Failed to download {url}: 404")
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(url, encoding="utf-8")
        self.transfers.append((url, destination))


class FakePicker:
    """Answers picker rounds from a script and records what was offered."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.offered = []

    def pick_one(self, candidates):
        self.offered.append(list(candidates))
        return self.answers.pop(0)


def tree_payload(*entries, truncated=False):
    return {
        "sha": "0" * 40,
        "url": "https://api.github.com/repos/x/y/git/trees/main",
        "tree": [{"path": path, "mode": "100644", "type": kind, "sha": "1" * 40} for path, kind in entries],
        "truncated": truncated,
    }


@pytest.fixture
def store(tmp_path):
    return HistoryStore(tmp_path / "config" / "ghcopy" / "history.json")


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def make_source():
    return FakeSource


@pytest.fixture
def make_picker():
    return FakePicker


@pytest.fixture
def make_tree():
    return tree_payload
