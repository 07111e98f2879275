"""Errors raised while scaffolding projects into a workspace.

Pre-flight errors (:class:`InvalidNameError`, :class:`DuplicateProjectError`)
are raised before any mutation step runs.  Step-level errors abort the whole
staged transaction and reach the caller wrapped in a :class:`ScaffoldError`.
Bundler failures live in :mod:`vite_workspace.executors.bundler` because the
executors turn them into data instead of raising them.
"""

from __future__ import annotations


class WorkspaceError(Exception):
    """Base class for every scaffold-time failure."""


class InvalidNameError(WorkspaceError):
    """Raised when a project name or directory cannot form a path segment."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid project name '{value}': {reason}")


class DuplicateProjectError(WorkspaceError):
    """Raised when a project name or root is already taken in the workspace."""

    def __init__(self, project_name: str, detail: str = "") -> None:
        self.project_name = project_name
        message = f"Project '{project_name}' already exists in the workspace"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedConfigError(WorkspaceError):
    """Raised when a JSON config file is missing or cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot update {path}: {reason}")


class PathNotFoundError(WorkspaceError):
    """Raised when a staged-file operation targets a path that is not in the tree."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Path not found in tree: {path}")


class ProjectNotFoundError(WorkspaceError):
    """Raised when a registry lookup or update targets an unknown project.

    Updates are only allowed on projects added in the same transaction.
    """

    def __init__(self, project_name: str, detail: str = "") -> None:
        self.project_name = project_name
        message = f"Project '{project_name}' not found"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ScaffoldError(WorkspaceError):
    """Raised when a mutation step fails; nothing has been committed."""

    def __init__(self, step: str, index: int, cause: Exception) -> None:
        self.step = step
        self.index = index
        self.cause = cause
        super().__init__(f"Step {index} ({step}) failed: {cause}")


class CommitError(WorkspaceError):
    """Raised when staged changes cannot be written; prior writes were rolled back."""

    def __init__(self, path: str, cause: OSError) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to commit {path}: {cause}")


class PendingTaskError(WorkspaceError):
    """Raised when a post-commit task exits with a non-zero status."""

    def __init__(self, task_name: str, returncode: int, stderr: str = "") -> None:
        self.task_name = task_name
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"Task '{task_name}' failed (exit {returncode})")
