import asyncio
from pathlib import Path

import pytest
from git import Actor, Repo
from git.exc import GitCommandError

from services import git_service
from services.git_service import AuthenticationError, GitService, RepositoryError

AUTHOR = Actor("Agent Bridge", "bridge@example.com")


def _commit(repo: Repo, name: str, content: str, message: str):
    (Path(repo.working_tree_dir) / name).write_text(content)
    repo.index.add([name])
    repo.index.commit(message, author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def origin(tmp_path):
    """Repositório bare local com a branch main e um clone de trabalho para novos commits"""
    seed = Repo.init(tmp_path / "seed")
    _commit(seed, "README.md", "v1", "first")
    seed.git.branch("-M", "main")
    seed.clone(str(tmp_path / "origin.git"), bare=True)
    seed.create_remote("origin", str(tmp_path / "origin.git"))
    return seed, f"file://{tmp_path / 'origin.git'}"


def _checkout(service, url, target, branch="main"):
    return asyncio.run(service.clone_or_pull(url, branch, str(target)))


def test_fresh_clone(origin, tmp_path):
    _, url = origin
    target = tmp_path / "work" / "proj_1"

    path = _checkout(GitService(), url, target)

    assert path == str(target)
    assert (target / "README.md").read_text() == "v1"


def test_existing_checkout_is_pulled(origin, tmp_path):
    seed, url = origin
    target = tmp_path / "work" / "proj_1"
    service = GitService()
    _checkout(service, url, target)
    marker = target / "local.txt"
    marker.write_text("kept")

    _commit(seed, "README.md", "v2", "second")
    seed.git.push("origin", "main")
    _checkout(service, url, target)

    assert (target / "README.md").read_text() == "v2"
    assert marker.exists()


def test_failed_pull_falls_back_to_fresh_clone(origin, tmp_path):
    _, url = origin
    target = tmp_path / "work" / "proj_1"
    Repo.init(target)
    (target / "stale.txt").write_text("old")

    _checkout(GitService(), url, target)

    assert (target / "README.md").read_text() == "v1"
    assert not (target / "stale.txt").exists()


def test_plain_directory_is_replaced_by_clone(origin, tmp_path):
    _, url = origin
    target = tmp_path / "work" / "proj_1"
    target.mkdir(parents=True)
    (target / "junk.txt").write_text("x")

    _checkout(GitService(), url, target)

    assert (target / "README.md").exists()
    assert not (target / "junk.txt").exists()


def test_missing_branch_is_repository_error(origin, tmp_path):
    _, url = origin
    with pytest.raises(RepositoryError):
        _checkout(GitService(), url, tmp_path / "work" / "proj_1", branch="does-not-exist")


def test_missing_repository_is_repository_error(tmp_path):
    with pytest.raises(RepositoryError):
        _checkout(GitService(), f"file://{tmp_path / 'nowhere.git'}", tmp_path / "work" / "proj_1")


class RecordingGit:
    calls: list = []
    error = None

    def __init__(self, working_dir):
        self.working_dir = working_dir

    def clone(self, url, path, **kwargs):
        RecordingGit.calls.append((url, path, kwargs))
        if RecordingGit.error is not None:
            raise RecordingGit.error
        Path(path).mkdir()


@pytest.fixture
def recording_git(monkeypatch):
    RecordingGit.calls = []
    RecordingGit.error = None
    monkeypatch.setattr(git_service, "Git", RecordingGit)
    return RecordingGit


def test_clone_embeds_token_and_timeout(recording_git, tmp_path):
    service = GitService(default_token="server-token")

    _checkout(service, "acme/app", tmp_path / "proj_1")
    _checkout(service, "acme/app", tmp_path / "proj_2", branch="cursor/fix")
    asyncio.run(service.clone_or_pull("acme/app", "main", str(tmp_path / "proj_3"), "user-token"))

    urls = [call[0] for call in recording_git.calls]
    assert urls == [
        "https://server-token@github.com/acme/app.git",
        "https://server-token@github.com/acme/app.git",
        "https://user-token@github.com/acme/app.git",
    ]
    assert recording_git.calls[0][2] == {"depth": 1, "branch": "main", "kill_after_timeout": 60}
    assert recording_git.calls[1][2]["branch"] == "cursor/fix"


def test_rejected_credentials_are_redacted(recording_git, tmp_path):
    recording_git.error = GitCommandError(
        ["git", "clone", "https://user-token@github.com/acme/app.git"],
        128,
        stderr="fatal: Authentication failed for 'https://user-token@github.com/acme/app.git/'",
    )

    with pytest.raises(AuthenticationError) as excinfo:
        asyncio.run(GitService().clone_or_pull("acme/app", "main", str(tmp_path / "proj_1"), "user-token"))

    assert "user-token" not in str(excinfo.value)
