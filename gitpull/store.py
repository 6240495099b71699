"""
Project store for gitpull.

Keeps the ordered list of registered projects and its JSON image on disk.
"""

from collections.abc import Iterable, Iterator
from pathlib import Path

from .config import (
    DEFAULT_REMOTE,
    PersistenceError,
    ProjectRecord,
    read_projects,
    write_projects,
)
from .git_ops import GitRepository, RepositoryOpenError
from .log_buffer import LogBuffer


class RegistrationError(ValueError):
    """Base class for reasons a project cannot be registered."""


class EmptyFieldError(RegistrationError):
    """Raised when a required field of a project is empty."""


class NotARepositoryError(RegistrationError):
    """Raised when the project path does not open as a git repository."""


class NoOriginRemoteError(RegistrationError):
    """Raised when the repository has no remote of the required name."""


class ProjectStore:
    """Ordered collection of registered projects backed by a JSON file."""

    def __init__(
        self,
        path: Path,
        log: LogBuffer | None = None,
        remote: str = DEFAULT_REMOTE,
    ):
        self.path = Path(path)
        self.log = log if log is not None else LogBuffer()
        self.remote = remote
        self._projects: list[ProjectRecord] = []

    @property
    def projects(self) -> list[ProjectRecord]:
        """Get a copy of the registered projects in display order."""
        return list(self._projects)

    def __len__(self) -> int:
        return len(self._projects)

    def __iter__(self) -> Iterator[ProjectRecord]:
        return iter(list(self._projects))

    def __getitem__(self, index: int) -> ProjectRecord:
        return self._projects[index]

    def load(self) -> list[ProjectRecord]:
        """
        Replace the in-memory list with the one on disk.

        A missing or unreadable file gives an empty list rather than an error.
        """
        try:
            self._projects = read_projects(self.path)
        except FileNotFoundError:
            self._projects = []
        except (OSError, ValueError) as e:
            self.log.warning(f"Ignoring unreadable project list: {e}")
            self._projects = []
        return self.projects

    def persist(self) -> bool:
        """
        Write the whole list to disk.

        Failures are logged and swallowed; the in-memory list stays
        authoritative. Returns whether the write succeeded.
        """
        try:
            write_projects(self.path, self._projects)
        except PersistenceError as e:
            self.log.error(str(e))
            return False
        return True

    def validate(self, candidate: ProjectRecord) -> None:
        """
        Check that a candidate may be registered.

        Raises:
            EmptyFieldError: If path or name is empty
            NotARepositoryError: If path does not open as a git repository
            NoOriginRemoteError: If the repository lacks the required remote
        """
        if not candidate.path.strip() or not candidate.name.strip():
            raise EmptyFieldError("Project path and name must not be empty")

        try:
            repo = GitRepository(candidate.path)
        except RepositoryOpenError as e:
            raise NotARepositoryError(
                f"Project path {candidate.path} does not exist or is not a valid git repository"
            ) from e

        with repo:
            if not repo.has_remote(self.remote):
                raise NoOriginRemoteError(
                    f"Project {candidate.name} has no '{self.remote}' remote"
                )

    def register(self, candidate: ProjectRecord) -> None:
        """Validate and append a project, then persist the list."""
        self.validate(candidate)
        self._projects.append(candidate)
        self.persist()

    def edit(
        self,
        index: int,
        name: str | None = None,
        notes: str | None = None,
    ) -> ProjectRecord:
        """
        Update the name and/or notes of the project at ``index``.

        The path is fixed once registered since it was validated then.
        """
        if index < 0:
            raise IndexError(f"Project index out of range: {index}")
        project = self._projects[index]
        if name is not None and not name.strip():
            raise EmptyFieldError("Project name must not be empty")

        updates = {}
        if name is not None:
            updates["name"] = name
        if notes is not None:
            updates["notes"] = notes
        updated = project.model_copy(update=updates)
        self._projects[index] = updated
        self.persist()
        return updated

    def remove(self, indices: Iterable[int]) -> list[ProjectRecord]:
        """
        Remove the projects at the given positions and persist the list.

        Out-of-range indices are skipped. Returns the removed projects.
        """
        doomed = {i for i in indices if 0 <= i < len(self._projects)}
        removed = [p for i, p in enumerate(self._projects) if i in doomed]
        self._projects = [p for i, p in enumerate(self._projects) if i not in doomed]
        self.persist()
        return removed
