"""
Git operations for gitpull.

Provides a wrapper around the git operations the syncer needs using
GitPython: opening a repository, looking up and fetching a remote,
resolving FETCH_HEAD, merge analysis and fast-forwarding a branch.
"""

from enum import Enum
from pathlib import Path

from git import Commit, Remote, Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError


class RepositoryOpenError(ValueError):
    """Raised when a path does not open as a git repository."""


class MergeAnalysis(str, Enum):
    """Relationship between the local tip and a fetched commit."""

    UP_TO_DATE = "up-to-date"
    FAST_FORWARD = "fast-forward"
    DIVERGED = "diverged"


def describe_git_error(error: GitCommandError) -> str:
    """Get the human-readable part of a failed git command."""
    stderr = str(error.stderr or "").strip()
    # GitPython wraps stderr as "stderr: '<text>'"
    if stderr.startswith("stderr:"):
        stderr = stderr[len("stderr:") :].strip().strip("'").strip()
    return stderr or str(error)


class GitRepository:
    """Wrapper around a git repository for pull operations."""

    def __init__(self, path: Path | str):
        """Open the repository at ``path`` without searching parent directories."""
        self.path = Path(path).expanduser().resolve()
        try:
            self.repo = Repo(self.path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryOpenError(f"Not a valid git repository: {self.path}") from e

    def close(self) -> None:
        """Release git subprocesses held by the underlying repo."""
        self.repo.close()

    def __enter__(self) -> "GitRepository":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def get_remote(self, name: str = "origin") -> Remote:
        """
        Look up a remote by name.

        Raises:
            ValueError: If the remote does not exist
        """
        return self.repo.remote(name)

    def has_remote(self, name: str = "origin") -> bool:
        """Check whether a remote with the given name is configured."""
        return any(remote.name == name for remote in self.repo.remotes)

    def get_current_branch(self) -> str | None:
        """Get the current branch name, or None when HEAD is detached."""
        if self.repo.head.is_detached:
            return None
        return self.repo.active_branch.name

    def get_current_commit(self) -> str | None:
        """Get the current HEAD commit hash, or None for an unborn branch."""
        try:
            return self.repo.head.commit.hexsha
        except ValueError:
            return None

    def fetch_branch(self, branch: str, remote: str = "origin") -> None:
        """
        Fetch a single branch from a remote, recording it in FETCH_HEAD.

        Raises:
            ValueError: If the remote does not exist
            GitCommandError: If the fetch fails
        """
        self.get_remote(remote).fetch(refspec=branch)

    def resolve_fetch_head(self) -> Commit:
        """
        Get the commit recorded in FETCH_HEAD.

        Raises:
            ValueError: If FETCH_HEAD is missing or does not name a commit
        """
        try:
            sha = self.repo.git.rev_parse("--verify", "--quiet", "FETCH_HEAD^{commit}")
            return self.repo.commit(sha.strip())
        except (GitCommandError, ValueError) as e:
            raise ValueError(f"FETCH_HEAD is missing or corrupt in {self.path}") from e

    def get_local_tip(self) -> Commit | None:
        """
        Get the commit HEAD points at, which the fetched commit is compared
        against. Returns None when there is no local history yet.
        """
        try:
            return self.repo.head.commit
        except ValueError:
            return None

    def merge_analysis(self, local: Commit | None, fetched: Commit) -> MergeAnalysis:
        """Classify how ``fetched`` relates to the local tip."""
        if local is None:
            return MergeAnalysis.FAST_FORWARD
        if local == fetched or self.repo.is_ancestor(fetched, local):
            return MergeAnalysis.UP_TO_DATE
        if self.repo.is_ancestor(local, fetched):
            return MergeAnalysis.FAST_FORWARD
        return MergeAnalysis.DIVERGED

    def fast_forward(self, branch: str, commit: Commit) -> None:
        """
        Move ``branch`` to ``commit``, check it out and force the working tree.

        Uncommitted changes to tracked files are discarded. Untracked files
        are left alone.
        """
        if branch in self.repo.heads:
            head = self.repo.heads[branch]
            head.set_commit(commit, logmsg="Fast-Forward")
        else:
            head = self.repo.create_head(branch, commit)
        self.repo.head.reference = head
        self.repo.head.reset(index=True, working_tree=True)
