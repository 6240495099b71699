"""
Caller-facing API tying the project store, the syncer and the log together.

Any front end (the CLI here) only talks to ProjectManager.
"""

import threading
from collections.abc import Callable, Iterable, Iterator

from rich.console import Console

from .config import ProjectRecord, Settings
from .log_buffer import LogBuffer
from .store import ProjectStore, RegistrationError
from .syncer import ProjectSyncer, SyncOutcome, SyncProgress, SyncTask


class ProjectManager:
    """Registers, edits, deletes and pulls projects."""

    def __init__(self, settings: Settings | None = None, console: Console | None = None):
        self.settings = settings or Settings()
        self.log = LogBuffer(self.settings.log_max_lines, console=console)
        self.store = ProjectStore(
            self.settings.projects_file,
            log=self.log,
            remote=self.settings.remote,
        )
        self.store.load()

    def __enter__(self) -> "ProjectManager":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Persist the project list; called on exit."""
        self.store.persist()

    def list_projects(self) -> list[ProjectRecord]:
        return self.store.projects

    def register_project(self, path: str, name: str, notes: str = "") -> ProjectRecord:
        """
        Register a new project.

        Raises:
            RegistrationError: If the project fails validation; the error is
                also written to the log
        """
        record = ProjectRecord(path=path, name=name, notes=notes)
        try:
            self.store.register(record)
        except RegistrationError as e:
            self.log.error(str(e))
            raise
        self.log.info(f"Added project {name}")
        return record

    def edit_project(
        self,
        index: int,
        name: str | None = None,
        notes: str | None = None,
    ) -> ProjectRecord:
        return self.store.edit(index, name=name, notes=notes)

    def delete_projects(self, indices: Iterable[int]) -> list[ProjectRecord]:
        removed = self.store.remove(indices)
        for project in removed:
            self.log.info(f"Removed project {project.name}")
        return removed

    def select(self, indices: Iterable[int]) -> list[ProjectRecord]:
        """
        Get the projects at the given positions in store order.

        Out-of-range and repeated indices are ignored.
        """
        wanted = set(indices)
        return [p for i, p in enumerate(self.store.projects) if i in wanted]

    def _syncer(self, branch: str | None = None, remote: str | None = None) -> ProjectSyncer:
        return ProjectSyncer(
            branch=branch or self.settings.branch,
            remote=remote or self.settings.remote,
            log=self.log,
        )

    def sync_projects(
        self,
        indices: Iterable[int],
        cancel: threading.Event | None = None,
        branch: str | None = None,
        remote: str | None = None,
    ) -> Iterator[tuple[SyncOutcome, float]]:
        """Pull the selected projects, yielding (outcome, fraction) pairs."""
        for progress in self._syncer(branch, remote).sync(self.select(indices), cancel=cancel):
            yield progress.outcome, progress.fraction

    def start_sync(
        self,
        indices: Iterable[int],
        callback: Callable[[SyncProgress], None] | None = None,
        branch: str | None = None,
        remote: str | None = None,
    ) -> SyncTask:
        """Pull the selected projects on a background thread."""
        return SyncTask(self._syncer(branch, remote), self.select(indices), callback=callback).start()
