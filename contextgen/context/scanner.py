"""Directory traversal for context assembly.

Walks a workspace subtree, consults the PatternStore for every entry, and
yields the files the extension policy admits. Excluded directories are
never listed. Entries are visited in sorted name order so repeated runs over
an unchanged tree produce the same sequence.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from collections.abc import Iterator
from pathlib import Path

from contextgen.context.patterns import VCS_DIR, PatternStore, normalize_relative
from contextgen.errors import ScanCancelledError
from contextgen.schemas.context import FileEntry, TraversalPolicy

logger = logging.getLogger(__name__)


def file_extension(path: str | Path) -> str:
    """Lowercase extension without the dot ('' when there is none)."""
    return Path(path).suffix.lower().lstrip(".")


class CancelToken:
    """Cooperative cancellation flag, checked before each directory listing.

    Safe to set from another thread while a scan is running.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ScanCancelledError("Context scan was cancelled")


class ContextScanner:
    """Produces the admissible FileEntry sequence for a directory tree.

    Paths are made relative to the PatternStore's workspace root, which may
    be an ancestor of the directory being scanned.
    """

    def __init__(
        self,
        root: str | Path,
        store: PatternStore | None = None,
        policy: TraversalPolicy | None = None,
    ) -> None:
        self._root = Path(root).resolve()
        self._store = store or PatternStore(self._root)
        self._policy = policy or TraversalPolicy(enforce_extensions=False)
        self.warnings: list[str] = []

    def iter_entries(self, cancel: CancelToken | None = None) -> Iterator[FileEntry]:
        """Lazily yield admitted files in traversal order.

        Raises:
            ScanCancelledError: If ``cancel`` is set between directories.
        """
        self.warnings = []
        if not self._root.is_dir():
            logger.warning("Context directory does not exist: %s", self._root)
            return
        yield from self._walk(self._root, cancel)

    def scan(self, cancel: CancelToken | None = None) -> list[FileEntry]:
        """Walk the tree and return every admitted file."""
        files = list(self.iter_entries(cancel))
        logger.info("Scanned %d files in %s", len(files), self._root)
        return files

    async def collect(self, cancel: CancelToken | None = None) -> list[FileEntry]:
        """Walk the tree with one concurrent branch per subdirectory.

        Each branch builds its own list; results are merged in listing order
        once the branch finishes, so the output matches ``scan()``. A listing
        failure in one branch does not affect its siblings.
        """
        self.warnings = []
        if not self._root.is_dir():
            logger.warning("Context directory does not exist: %s", self._root)
            return []
        files = await self._collect_dir(self._root, cancel)
        logger.info("Collected %d files in %s", len(files), self._root)
        return files

    def _walk(self, directory: Path, cancel: CancelToken | None) -> Iterator[FileEntry]:
        if cancel is not None:
            cancel.raise_if_cancelled()

        entries = self._list_dir(directory)
        if entries is None:
            return

        for entry in entries:
            child = self._admit(entry)
            if child is None:
                continue
            if child.is_directory:
                yield from self._walk(Path(child.absolute_path), cancel)
            else:
                yield child

    async def _collect_dir(
        self, directory: Path, cancel: CancelToken | None,
    ) -> list[FileEntry]:
        if cancel is not None:
            cancel.raise_if_cancelled()

        entries = await asyncio.to_thread(self._list_dir, directory)
        if entries is None:
            return []

        admitted = [c for c in map(self._admit, entries) if c is not None]
        subdirs = [c for c in admitted if c.is_directory]
        branches = await asyncio.gather(
            *(self._collect_dir(Path(d.absolute_path), cancel) for d in subdirs)
        )
        by_dir = {d.relative_path: branch for d, branch in zip(subdirs, branches)}

        merged: list[FileEntry] = []
        for child in admitted:
            if child.is_directory:
                merged.extend(by_dir[child.relative_path])
            else:
                merged.append(child)
        return merged

    def _list_dir(self, directory: Path) -> list[os.DirEntry] | None:
        try:
            with os.scandir(directory) as it:
                return sorted(it, key=lambda e: e.name)
        except OSError as exc:
            msg = f"Could not read directory {directory}: {exc.strerror or exc}"
            logger.warning(msg)
            self.warnings.append(msg)
            return None

    def _admit(self, entry: os.DirEntry) -> FileEntry | None:
        """Apply the VCS safety net, ignore scopes and extension policy."""
        if entry.name == VCS_DIR:
            return None

        rel_path = normalize_relative(os.path.relpath(entry.path, self._store.root))

        try:
            if entry.is_symlink() and entry.is_dir():
                logger.debug("Not following directory symlink: %s", rel_path)
                return None
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError as exc:
            logger.warning("Could not stat %s: %s", rel_path, exc)
            return None

        if self._store.is_excluded(rel_path, is_dir=is_dir):
            logger.debug("Ignored by patterns: %s", rel_path)
            return None

        if is_dir:
            return FileEntry(
                absolute_path=entry.path,
                relative_path=rel_path,
                is_directory=True,
            )

        ext = file_extension(entry.name)
        if not self._policy.admits(ext):
            logger.debug("Skipping unsupported file type %r: %s", ext, rel_path)
            return None

        return FileEntry(
            absolute_path=entry.path,
            relative_path=rel_path,
            extension=ext,
        )
