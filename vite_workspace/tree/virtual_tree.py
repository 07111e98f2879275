"""In-memory workspace tree with staged changes and an all-or-nothing commit.

A :class:`VirtualTree` layers a set of staged changes (``path -> bytes``, or
``None`` for a deletion) over an optional durable root directory.  Reads see
staged content first, so every step observes the writes of the steps before
it.  Nothing touches the durable root until :meth:`VirtualTree.commit`.

Trees are forked copy-on-write: :meth:`fork` copies the change map and the
registry, and staged contents are immutable ``bytes``, so a fork never shares
mutable state with its parent.
"""

from __future__ import annotations

import asyncio
import json
import os
import posixpath
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from ..errors import CommitError, MalformedConfigError, PathNotFoundError
from .registry import ProjectRegistry

WORKSPACE_FILE = "workspace.json"


@dataclass(frozen=True)
class FileChange:
    """A single staged change, as reported by :meth:`VirtualTree.list_changes`."""

    path: str
    kind: Literal["CREATE", "UPDATE", "DELETE"]
    content: bytes | None = None


def normalize_path(path: str) -> str:
    """Normalise a tree path to a relative POSIX path inside the workspace.

    Raises:
        ValueError: If the path is empty or escapes the workspace root.
    """
    cleaned = posixpath.normpath(path.replace("\\", "/").lstrip("/"))
    if cleaned in ("", ".") or cleaned == ".." or cleaned.startswith("../"):
        raise ValueError(f"Path '{path}' is outside the workspace")
    return cleaned


class VirtualTree:
    """Staged view of a workspace: files plus the project registry.

    Args:
        root: Durable workspace directory.  ``None`` gives a purely in-memory
            tree, which can be inspected but not committed.
        registry: Registry to start from.  Defaults to the ``projects`` map
            of ``workspace.json`` under *root*.
    """

    def __init__(
        self,
        root: str | Path | None = None,
        registry: ProjectRegistry | None = None,
    ) -> None:
        self.root = Path(root) if root is not None else None
        self._changes: dict[str, bytes | None] = {}
        self._committing = False
        self.registry = registry if registry is not None else self._load_registry()

    def _load_registry(self) -> ProjectRegistry:
        if self.read(WORKSPACE_FILE) is None:
            return ProjectRegistry()
        return ProjectRegistry.from_workspace_json(self.read_json(WORKSPACE_FILE))

    def fork(self) -> "VirtualTree":
        """Return a copy-on-write snapshot that can be mutated independently."""
        clone = VirtualTree.__new__(VirtualTree)
        clone.root = self.root
        clone._changes = dict(self._changes)
        clone._committing = False
        clone.registry = self.registry.copy()
        return clone

    # -- Reads -----------------------------------------------------------------

    def _durable(self, path: str) -> Path | None:
        return self.root / path if self.root is not None else None

    def read(self, path: str) -> bytes | None:
        """Return the content at *path*, or ``None`` if it does not exist."""
        key = normalize_path(path)
        if key in self._changes:
            return self._changes[key]
        durable = self._durable(key)
        if durable is not None and durable.is_file():
            return durable.read_bytes()
        return None

    def read_text(self, path: str) -> str | None:
        content = self.read(path)
        return content.decode("utf-8") if content is not None else None

    def read_json(self, path: str) -> Any:
        """Parse the JSON document at *path*.

        Raises:
            MalformedConfigError: If the file is absent or not valid JSON.
        """
        text = self.read_text(path)
        if text is None:
            raise MalformedConfigError(path, "file does not exist")
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedConfigError(path, f"invalid JSON ({exc.msg} at line {exc.lineno})") from exc

    def exists(self, path: str) -> bool:
        """True if *path* is a file, or a directory holding files, in the tree."""
        key = normalize_path(path)
        if key in self._changes:
            return self._changes[key] is not None
        prefix = f"{key}/"
        if any(p.startswith(prefix) and c is not None for p, c in self._changes.items()):
            return True
        durable = self._durable(key)
        return durable is not None and durable.exists()

    def is_staged(self, path: str) -> bool:
        """True if *path* has content written in this transaction."""
        return self._changes.get(normalize_path(path)) is not None

    def staged_files(self, prefix: str | None = None) -> list[str]:
        """Sorted paths with staged content, optionally restricted to *prefix*."""
        paths = [p for p, c in self._changes.items() if c is not None]
        if prefix is not None:
            root = normalize_path(prefix)
            paths = [p for p in paths if p == root or p.startswith(f"{root}/")]
        return sorted(paths)

    # -- Writes ----------------------------------------------------------------

    def write(self, path: str, content: str | bytes) -> None:
        """Stage *content* at *path*, creating or replacing it."""
        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        self._changes[normalize_path(path)] = data

    def overwrite(self, path: str, content: str | bytes) -> None:
        """Replace the content of an existing file."""
        if self.read(path) is None:
            raise PathNotFoundError(path)
        self.write(path, content)

    def delete(self, path: str) -> None:
        """Stage the removal of *path*."""
        key = normalize_path(path)
        durable = self._durable(key)
        if durable is not None and durable.is_file():
            self._changes[key] = None
        else:
            self._changes.pop(key, None)

    def rename(self, src: str, dst: str) -> None:
        """Move the file at *src* to *dst*."""
        content = self.read(src)
        if content is None:
            raise PathNotFoundError(src)
        self.delete(src)
        self.write(dst, content)

    # -- Change listing --------------------------------------------------------

    def _workspace_document(self) -> bytes:
        existing = self.read(WORKSPACE_FILE)
        document: dict[str, Any] = {"version": 2}
        if existing is not None:
            document = self.read_json(WORKSPACE_FILE)
        document["projects"] = self.registry.to_json()
        return (json.dumps(document, indent=2) + "\n").encode("utf-8")

    def list_changes(self) -> list[FileChange]:
        """Return every pending change, including the serialised registry.

        Changes that would leave a durable file byte-identical are omitted.
        """
        pending = dict(self._changes)
        if self.registry.changed:
            pending[WORKSPACE_FILE] = self._workspace_document()

        changes: list[FileChange] = []
        for path in sorted(pending):
            content = pending[path]
            durable = self._durable(path)
            on_disk = durable is not None and durable.is_file()
            if content is None:
                if on_disk:
                    changes.append(FileChange(path, "DELETE"))
                continue
            if on_disk and durable.read_bytes() == content:
                continue
            changes.append(FileChange(path, "UPDATE" if on_disk else "CREATE", content))
        return changes

    # -- Commit ----------------------------------------------------------------

    async def commit(self) -> list[FileChange]:
        """Write every staged change to the durable root, all or nothing.

        The blocking file-system work runs in a worker thread.  On success the
        staged changes become the new durable base of this tree.

        Returns:
            The changes that were written.

        Raises:
            CommitError: If any write failed; all earlier writes were undone.
        """
        if self.root is None:
            raise ValueError("An in-memory tree has no durable root to commit to")
        if self._committing:
            raise RuntimeError("A commit is already in progress for this tree")

        self._committing = True
        try:
            changes = self.list_changes()
            await asyncio.to_thread(_apply_changes, self.root, changes)
        finally:
            self._committing = False

        self._changes.clear()
        self.registry.mark_committed()
        return changes


# ---------------------------------------------------------------------------
# Durable writes
# ---------------------------------------------------------------------------


def _apply_changes(root: Path, changes: list[FileChange]) -> None:
    """Write *changes* under *root*, rolling everything back on the first failure.

    New contents are first written to temporary files beside their targets;
    only when every temporary file exists are targets swapped in with
    ``os.replace``.  Replaced and deleted originals are kept as backups until
    the whole set is in place.
    """
    staged: list[tuple[Path, Path | None]] = []
    created_dirs: list[Path] = []
    backups: list[tuple[Path, Path]] = []
    placed: list[Path] = []
    current = ""

    try:
        for change in changes:
            current = change.path
            target = root / change.path
            if change.content is None:
                staged.append((target, None))
                continue
            _make_parents(target.parent, created_dirs)
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
            staged.append((target, Path(tmp_name)))
            with os.fdopen(fd, "wb") as handle:
                handle.write(change.content)
                handle.flush()
                os.fsync(handle.fileno())

        for target, tmp in staged:
            current = target.relative_to(root).as_posix()
            if target.exists():
                backup = target.with_name(f".{target.name}.{uuid.uuid4().hex}.bak")
                os.replace(target, backup)
                backups.append((target, backup))
            if tmp is not None:
                os.replace(tmp, target)
                placed.append(target)
    except OSError as exc:
        _rollback(staged, placed, backups, created_dirs)
        raise CommitError(current, exc) from exc

    for _, backup in backups:
        backup.unlink(missing_ok=True)


def _rollback(
    staged: list[tuple[Path, Path | None]],
    placed: list[Path],
    backups: list[tuple[Path, Path]],
    created_dirs: list[Path],
) -> None:
    for target in reversed(placed):
        target.unlink(missing_ok=True)
    for target, backup in reversed(backups):
        os.replace(backup, target)
    for _, tmp in staged:
        if tmp is not None:
            tmp.unlink(missing_ok=True)
    for directory in reversed(created_dirs):
        try:
            directory.rmdir()
        except OSError:
            # Not empty: something else lives there now.
            continue


def _make_parents(directory: Path, created: list[Path]) -> None:
    """Create *directory* and missing parents, recording each one in *created*."""
    missing: list[Path] = []
    current = directory
    while not current.exists():
        missing.append(current)
        current = current.parent
    for path in reversed(missing):
        path.mkdir()
        created.append(path)
