"""Pytest configuration and fixtures for gitpull tests."""

import tempfile
from pathlib import Path

import pytest
from git import Repo

from gitpull.config import Settings
from gitpull.log_buffer import LogBuffer


def configure_user(repo: Repo) -> None:
    """Give a test repo a committer identity."""
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")


def commit_file(repo_path: Path, filename: str, content: str, message: str) -> str:
    """Write a file, commit it and return the new commit hash."""
    repo = Repo(repo_path)
    (repo_path / filename).write_text(content)
    repo.index.add([filename])
    return repo.index.commit(message).hexsha


def push(repo_path: Path, branch: str = "master") -> None:
    """Push a branch of the given clone to its origin."""
    Repo(repo_path).remote("origin").push(f"{branch}:{branch}")


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def upstream_repo(temp_dir: Path):
    """Create a bare repository acting as the shared origin."""
    repo_path = temp_dir / "upstream.git"
    Repo.init(repo_path, bare=True, initial_branch="master")
    yield repo_path


@pytest.fixture
def seed_repo(temp_dir: Path, upstream_repo: Path):
    """Create a clone that publishes new commits to the upstream."""
    repo_path = temp_dir / "seed"
    repo_path.mkdir()

    repo = Repo.init(repo_path, initial_branch="master")
    configure_user(repo)

    # Create initial commit
    commit_file(repo_path, "README.md", "# Project\n", "Initial commit")
    repo.create_remote("origin", str(upstream_repo))
    push(repo_path)

    yield repo_path


@pytest.fixture
def local_repo(temp_dir: Path, upstream_repo: Path, seed_repo: Path):
    """Create the local clone that gitpull keeps up to date."""
    repo_path = temp_dir / "local"
    repo = Repo.clone_from(str(upstream_repo), str(repo_path))
    configure_user(repo)
    yield repo_path


@pytest.fixture
def no_remote_repo(temp_dir: Path):
    """Create a git repository without any remote."""
    repo_path = temp_dir / "no-remote"
    repo_path.mkdir()

    repo = Repo.init(repo_path, initial_branch="master")
    configure_user(repo)
    commit_file(repo_path, "README.md", "# Lonely\n", "Initial commit")

    yield repo_path


@pytest.fixture
def plain_dir(temp_dir: Path):
    """Create a directory that is not a git repository."""
    path = temp_dir / "not-a-repo"
    path.mkdir()
    yield path


@pytest.fixture
def log():
    return LogBuffer()


@pytest.fixture
def settings(temp_dir: Path):
    """Settings pointing the project list into the temp directory."""
    return Settings(projects_file=temp_dir / "state" / "projects.json")
