"""
Configuration handling for gitpull.

Defines the project record and settings schemas and provides methods for
loading/saving settings from YAML and the project list from JSON.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, TypeAdapter, ValidationError


# Default location for gitpull's per-user files
DEFAULT_CONFIG_DIR = Path.home() / ".gitpull"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_PROJECTS_FILE = DEFAULT_CONFIG_DIR / "projects.json"

DEFAULT_BRANCH = "master"
DEFAULT_REMOTE = "origin"
DEFAULT_LOG_MAX_LINES = 1000


class PersistenceError(OSError):
    """Raised when the project list cannot be written to disk."""


class ProjectRecord(BaseModel):
    """A registered local clone."""

    # Filesystem path to the working directory
    path: str = Field(..., description="Path to the local git working directory")
    name: str = Field(..., description="User-facing label for the project")
    notes: str = Field(default="", description="Free-form notes")


class Settings(BaseModel):
    """Tool-wide settings for gitpull."""

    branch: str = Field(
        default=DEFAULT_BRANCH,
        min_length=1,
        description="Branch fetched from the remote and fast-forwarded locally",
    )
    remote: str = Field(
        default=DEFAULT_REMOTE,
        min_length=1,
        description="Name of the remote every project must have",
    )
    projects_file: Path = Field(
        default=DEFAULT_PROJECTS_FILE,
        description="JSON file holding the registered projects",
    )
    log_max_lines: int = Field(
        default=DEFAULT_LOG_MAX_LINES,
        ge=1,
        description="Number of most recent log lines kept in the log",
    )

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        # An empty file means all defaults
        return cls.model_validate(data or {})

    @classmethod
    def load(cls, path: Path) -> "Settings":
        """Load settings, falling back to defaults when the file is absent."""
        if not path.exists():
            return cls()
        return cls.from_yaml(path)

    def to_yaml(self, path: Path) -> None:
        """Save settings to a YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(
                self.model_dump(mode="json"),
                f,
                default_flow_style=False,
                sort_keys=False,
            )


_project_list = TypeAdapter(list[ProjectRecord])


def read_projects(path: Path) -> list[ProjectRecord]:
    """
    Read the project list from a JSON file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not a valid project list
    """
    with open(path, encoding="utf-8") as f:
        data = f.read()
    try:
        return _project_list.validate_json(data)
    except ValidationError as e:
        raise ValueError(f"Invalid project list in {path}: {e}") from e


def write_projects(path: Path, projects: list[ProjectRecord]) -> None:
    """Overwrite the project list file with the given records."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(_project_list.dump_json(projects, indent=2))
    except OSError as e:
        raise PersistenceError(f"Cannot save project list to {path}: {e}") from e
