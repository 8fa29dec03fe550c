"""Lexical import extraction and on-disk resolution.

Finds static ``import ... from "x"``, side-effect ``import "x"`` and dynamic
``import("x")`` specifiers with a single regular expression, then resolves
relative specifiers against the importing file's directory. This is not a
parser: specifiers inside comments or strings are picked up too, and
package imports are left unresolved on purpose.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from contextgen.context.patterns import PatternStore, normalize_relative
from contextgen.context.scanner import file_extension
from contextgen.schemas.context import normalize_extensions

logger = logging.getLogger(__name__)

# Bindings start on a non-space character so no two whitespace runs overlap;
# matching stays linear in the length of a blank run after ``import``.
IMPORT_PATTERN = re.compile(
    r"""import\s+(?:[\w${},*][\w${},*\s]*?from\s*)?['"]([^'"\n]+)['"]"""
    r"""|import\(\s*['"]([^'"\n]+)['"]\s*\)"""
)


def extract_imports(content: str) -> list[str]:
    """Return raw import specifiers in source order, duplicates kept."""
    return [
        static or dynamic
        for static, dynamic in IMPORT_PATTERN.findall(content)
        if static or dynamic
    ]


def is_relative_specifier(specifier: str) -> bool:
    return specifier in (".", "..") or specifier.startswith(("./", "../"))


class ImportResolver:
    """Resolves import specifiers to existing files inside the workspace.

    A specifier that already ends in a detected extension must exist as-is.
    Otherwise each detected extension is appended in priority order, then
    ``index.<ext>`` inside a directory of that name is tried. The first
    existing file wins. Results outside the workspace or excluded by the
    PatternStore are dropped.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        detected_extensions: list[str],
        store: PatternStore | None = None,
    ) -> None:
        self._root = Path(workspace_root).resolve()
        self._extensions = normalize_extensions(detected_extensions)
        self._store = store

    def resolve(self, source_file: str | Path, specifier: str) -> Path | None:
        """Resolve one specifier relative to ``source_file``.

        Returns:
            The absolute path of the resolved file, or None for package
            imports, missing targets, and excluded or out-of-tree files.
        """
        if not is_relative_specifier(specifier):
            logger.debug("Skipping package import %r", specifier)
            return None

        base = Path(os.path.normpath(Path(source_file).resolve().parent / specifier))
        candidate = self._find_file(base)
        if candidate is None:
            logger.debug("Unresolved import %r from %s", specifier, source_file)
            return None

        try:
            rel_path = candidate.relative_to(self._root)
        except ValueError:
            logger.debug("Import %r resolves outside the workspace", specifier)
            return None

        if self._store is not None and self._store.is_excluded(normalize_relative(rel_path)):
            logger.debug("Import %r is ignored by patterns", specifier)
            return None

        return candidate

    def resolve_all(self, source_file: str | Path, content: str) -> list[Path]:
        """Resolve every import in ``content``, keeping source order."""
        resolved: list[Path] = []
        for specifier in extract_imports(content):
            path = self.resolve(source_file, specifier)
            if path is not None:
                resolved.append(path)
        return resolved

    def _find_file(self, base: Path) -> Path | None:
        ext = file_extension(base)
        if ext and ext in self._extensions:
            return base if base.is_file() else None

        for ext in self._extensions:
            candidate = Path(f"{base}.{ext}")
            if candidate.is_file():
                return candidate

        if base.is_dir():
            for ext in self._extensions:
                candidate = base / f"index.{ext}"
                if candidate.is_file():
                    return candidate
        return None
