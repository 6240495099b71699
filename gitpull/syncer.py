"""
Main syncer logic for batch fast-forward pulls.

This module fetches the configured branch of each selected project from its
remote, classifies the fetched commit against the local tip and
fast-forwards when that is possible, one project at a time.
"""

import queue
import threading
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from enum import Enum

from git.exc import GitCommandError

from .config import DEFAULT_BRANCH, DEFAULT_REMOTE, ProjectRecord
from .git_ops import GitRepository, MergeAnalysis, RepositoryOpenError, describe_git_error
from .log_buffer import LogBuffer


def _reason(error: Exception) -> str:
    if isinstance(error, GitCommandError):
        return describe_git_error(error)
    return str(error)


class OutcomeKind(str, Enum):
    """Classification of one project's pull attempt."""

    UP_TO_DATE = "up-to-date"
    FAST_FORWARDED = "fast-forwarded"
    CONFLICT = "conflict"
    FETCH_FAILED = "fetch-failed"
    REMOTE_MISSING = "remote-missing"
    REPOSITORY_OPEN_FAILED = "repository-open-failed"
    CORRUPT_FETCH_HEAD = "corrupt-fetch-head"
    FAST_FORWARD_FAILED = "fast-forward-failed"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of pulling a single project."""

    kind: OutcomeKind
    reason: str | None = None  # Error text for failures that carry one
    old_commit: str | None = None  # Local tip before a fast-forward
    new_commit: str | None = None  # Local tip after a fast-forward

    @property
    def is_error(self) -> bool:
        return self.kind not in (OutcomeKind.UP_TO_DATE, OutcomeKind.FAST_FORWARDED)

    def describe(self, project: ProjectRecord, remote: str = DEFAULT_REMOTE) -> str:
        """Get the log message for this outcome, without severity tag."""
        kind = self.kind
        if kind is OutcomeKind.UP_TO_DATE:
            return f"Project {project.name} is already up to date"
        if kind is OutcomeKind.FAST_FORWARDED:
            old = self.old_commit[:8] if self.old_commit else "(none)"
            new = self.new_commit[:8] if self.new_commit else "?"
            return f"Project {project.name} updated successfully ({old} -> {new})"
        if kind is OutcomeKind.CONFLICT:
            message = f"Project {project.name} has diverged and needs manual resolution"
            return f"{message}: {self.reason}" if self.reason else message
        if kind is OutcomeKind.FETCH_FAILED:
            return f"Cannot fetch remote updates for {project.name}: {self.reason}"
        if kind is OutcomeKind.REMOTE_MISSING:
            return f"Cannot find remote '{remote}': {project.name}"
        if kind is OutcomeKind.REPOSITORY_OPEN_FAILED:
            return f"Cannot open repository: {project.path}"
        if kind is OutcomeKind.CORRUPT_FETCH_HEAD:
            return f"FETCH_HEAD of project {project.name} is corrupt or missing"
        return f"Cannot fast-forward project {project.name}: {self.reason}"


@dataclass(frozen=True)
class SyncProgress:
    """One step of a batch: a project, its outcome and the completed fraction."""

    project: ProjectRecord
    outcome: SyncOutcome
    fraction: float


class ProjectSyncer:
    """Pulls selected projects from their remote one after another."""

    def __init__(
        self,
        branch: str = DEFAULT_BRANCH,
        remote: str = DEFAULT_REMOTE,
        log: LogBuffer | None = None,
    ):
        """Initialize the syncer with the branch and remote to pull."""
        self.branch = branch
        self.remote = remote
        self.log = log if log is not None else LogBuffer()

    def sync(
        self,
        selected: Iterable[ProjectRecord],
        cancel: threading.Event | None = None,
    ) -> Iterator[SyncProgress]:
        """
        Pull each selected project in order.

        Args:
            selected: Projects to pull, in the order they are processed
            cancel: Optional event checked before starting each project

        Yields:
            SyncProgress after each project, with fraction k/N for the k-th
        """
        projects = list(selected)
        total = len(projects)

        for done, project in enumerate(projects, start=1):
            if cancel is not None and cancel.is_set():
                self.log.warning(f"Sync cancelled; {total - done + 1} project(s) skipped")
                return

            outcome = self.sync_project(project)
            message = outcome.describe(project, self.remote)
            if outcome.is_error:
                self.log.error(message)
            else:
                self.log.info(message)

            yield SyncProgress(project=project, outcome=outcome, fraction=done / total)

    def sync_project(self, project: ProjectRecord) -> SyncOutcome:
        """Pull a single project. Never raises; failures become outcomes."""
        try:
            repo = GitRepository(project.path)
        except RepositoryOpenError:
            return SyncOutcome(OutcomeKind.REPOSITORY_OPEN_FAILED)
        except Exception as e:
            return SyncOutcome(OutcomeKind.REPOSITORY_OPEN_FAILED, reason=_reason(e))

        with repo:
            return self._pull(repo)

    def _pull(self, repo: GitRepository) -> SyncOutcome:
        """
        Fetch, analyze and fast-forward an opened repository.

        Each step reports its own failures, so an error is classified by the
        step it happened in.
        """
        try:
            if not repo.has_remote(self.remote):
                return SyncOutcome(OutcomeKind.REMOTE_MISSING)
        except Exception as e:
            return SyncOutcome(OutcomeKind.REMOTE_MISSING, reason=_reason(e))

        try:
            repo.fetch_branch(self.branch, self.remote)
        except Exception as e:
            return SyncOutcome(OutcomeKind.FETCH_FAILED, reason=_reason(e))

        try:
            fetched = repo.resolve_fetch_head()
        except Exception as e:
            return SyncOutcome(OutcomeKind.CORRUPT_FETCH_HEAD, reason=_reason(e))

        try:
            local = repo.get_local_tip()
            analysis = repo.merge_analysis(local, fetched)
        except Exception as e:
            # Without a known relationship the project needs a human
            return SyncOutcome(OutcomeKind.CONFLICT, reason=_reason(e))

        if analysis is MergeAnalysis.UP_TO_DATE:
            return SyncOutcome(OutcomeKind.UP_TO_DATE)
        if analysis is MergeAnalysis.DIVERGED:
            return SyncOutcome(OutcomeKind.CONFLICT)

        try:
            repo.fast_forward(self.branch, fetched)
        except Exception as e:
            return SyncOutcome(OutcomeKind.FAST_FORWARD_FAILED, reason=_reason(e))

        return SyncOutcome(
            OutcomeKind.FAST_FORWARDED,
            old_commit=local.hexsha if local is not None else None,
            new_commit=fetched.hexsha,
        )


class SyncTask:
    """
    Runs a sync batch on a worker thread.

    Progress is delivered through a queue and, optionally, a callback that is
    invoked on the worker thread. Projects are still pulled one at a time.
    """

    _DONE = object()

    def __init__(
        self,
        syncer: ProjectSyncer,
        selected: Iterable[ProjectRecord],
        callback: Callable[[SyncProgress], None] | None = None,
    ):
        self.syncer = syncer
        self.selected = list(selected)
        self.callback = callback
        self.results: list[SyncProgress] = []
        self._queue: queue.Queue = queue.Queue()
        self._cancel = threading.Event()
        self._thread = threading.Thread(target=self._run, name="gitpull-sync", daemon=True)

    def start(self) -> "SyncTask":
        self._thread.start()
        return self

    def cancel(self) -> None:
        """Stop before the next project; a project in progress finishes."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def join(self, timeout: float | None = None) -> list[SyncProgress]:
        self._thread.join(timeout)
        return list(self.results)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def __iter__(self) -> Iterator[SyncProgress]:
        """Consume progress items as they arrive until the batch ends."""
        while True:
            item = self._queue.get()
            if item is self._DONE:
                return
            yield item

    def _notify(self, progress: SyncProgress) -> None:
        """Hand a progress item to the callback; its failures do not end the batch."""
        try:
            self.callback(progress)
        except Exception as e:
            self.syncer.log.warning(f"Progress callback failed for {progress.project.name}: {e}")

    def _run(self) -> None:
        try:
            for progress in self.syncer.sync(self.selected, cancel=self._cancel):
                self.results.append(progress)
                self._queue.put(progress)
                if self.callback is not None:
                    self._notify(progress)
        finally:
            self._queue.put(self._DONE)
