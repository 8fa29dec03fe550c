"""Hierarchical ignore-pattern store.

Parses every ignore file found in a workspace (any of the configured
dialect names, e.g. .gitignore, .dockerignore) into a per-directory scope
and answers whether a workspace-relative path is excluded. Patterns follow
gitignore semantics, including ``!`` negation, via pathspec.

A path is excluded when the synthetic root scope matches it, or when any
ancestor directory's scope matches the path re-relativized to that
directory. Scopes are consulted from the workspace root downward and the
first match wins, so a child ignore file can only narrow what its parents
already allow.
"""

from __future__ import annotations

import logging
import os
import posixpath
import re
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

logger = logging.getLogger(__name__)

# Version-control metadata directory, never searched for ignore files
VCS_DIR = ".git"

# Upper bound on ignore files collected from one tree
_MAX_IGNORE_FILES = 1000

_GLOB_SPECIALS = re.compile(r"([\\*?\[\]])")


@dataclass(frozen=True)
class PatternScope:
    """Ignore patterns interpreted relative to one directory."""

    directory: str
    patterns: tuple[str, ...]
    spec: pathspec.PathSpec = field(repr=False, compare=False)

    def matches(self, relative_path: str) -> bool:
        return self.spec.match_file(relative_path)


def parse_ignore_lines(text: str) -> list[str]:
    """Turn ignore-file content into a list of compilable patterns.

    Blank lines and ``#`` comments are dropped. A line that pathspec refuses
    to compile is escaped and kept as a literal name instead.
    """
    patterns: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        try:
            pathspec.GitIgnoreSpec.from_lines([stripped])
        except ValueError:
            literal = _escape_literal(stripped)
            logger.debug("Treating malformed pattern %r as literal %r", stripped, literal)
            stripped = literal
        patterns.append(stripped)
    return patterns


def _escape_literal(pattern: str) -> str:
    escaped = _GLOB_SPECIALS.sub(r"\\\1", pattern)
    if escaped.startswith(("!", "#")):
        escaped = "\\" + escaped
    return escaped


def _compile(directory: str, patterns: list[str]) -> PatternScope:
    return PatternScope(
        directory=directory,
        patterns=tuple(patterns),
        spec=pathspec.GitIgnoreSpec.from_lines(patterns),
    )


def normalize_relative(path: str | Path) -> str:
    """Normalize a workspace-relative path to '/' separators, no './' prefix."""
    text = str(path).replace("\\", "/")
    if not text:
        return ""
    text = posixpath.normpath(text)
    return "" if text == "." else text


class PatternStore:
    """Caller-owned index of ignore scopes for one workspace.

    Built once with ``initialize()`` and treated as read-only afterwards.
    When an ignore file changes, call ``rebuild()``; scopes are never
    patched in place.
    """

    def __init__(
        self,
        workspace_root: str | Path,
        ignore_file_names: list[str] | None = None,
    ) -> None:
        self._root = Path(workspace_root).resolve()
        self._ignore_file_names = [n for n in (ignore_file_names or []) if n]
        self._root_scope = _compile("", [])
        self._scopes: dict[str, PatternScope] = {}
        self.warnings: list[str] = []

    @property
    def root(self) -> Path:
        return self._root

    @property
    def ignore_file_names(self) -> list[str]:
        return list(self._ignore_file_names)

    @property
    def root_scope(self) -> PatternScope:
        return self._root_scope

    @property
    def scopes(self) -> dict[str, PatternScope]:
        """Directory-scoped matchers keyed by workspace-relative directory."""
        return dict(self._scopes)

    def initialize(self) -> PatternStore:
        """Locate and parse every ignore file under the workspace root."""
        self._scopes = {}
        self.warnings = []
        self._root_scope = _compile(
            "", [_escape_literal(name) for name in self._ignore_file_names],
        )

        if not self._ignore_file_names:
            logger.debug("No ignore files configured; store is permissive")
            return self
        if not self._root.is_dir():
            logger.warning("Workspace root is not a directory: %s", self._root)
            return self

        found = self._register_ignore_files()

        for rel_dir, name in sorted(found, key=lambda f: (f[0].count("/") + bool(f[0]), f)):
            scope = self._scopes.get(rel_dir)
            logger.debug(
                "Ignore scope %r from %s (%d patterns)",
                rel_dir or ".", name, len(scope.patterns) if scope else 0,
            )
        logger.info(
            "Loaded %d ignore scopes from %d files in %s",
            len(self._scopes), len(found), self._root,
        )
        return self

    def rebuild(self) -> PatternStore:
        """Discard every scope and re-scan the tree."""
        logger.info("Rebuilding ignore scopes for %s", self._root)
        return self.initialize()

    def _register_ignore_files(self) -> list[tuple[str, str]]:
        found: list[tuple[str, str]] = []

        def _on_error(err: OSError) -> None:
            logger.warning("Cannot list %s while searching ignore files: %s", err.filename, err)

        for dirpath, dirnames, filenames in os.walk(self._root, onerror=_on_error):
            rel_dir = normalize_relative(os.path.relpath(dirpath, self._root))
            present = set(filenames)

            patterns: list[str] = []
            capped = False
            for name in self._ignore_file_names:
                if name not in present:
                    continue
                if len(found) >= _MAX_IGNORE_FILES:
                    msg = f"Stopped after {_MAX_IGNORE_FILES} ignore files; remaining files not loaded"
                    logger.warning(msg)
                    self.warnings.append(msg)
                    capped = True
                    break
                ignore_path = Path(dirpath) / name
                try:
                    text = ignore_path.read_text(encoding="utf-8")
                except (UnicodeDecodeError, OSError) as exc:
                    msg = f"Skipping unreadable ignore file {ignore_path}: {exc}"
                    logger.warning(msg)
                    self.warnings.append(msg)
                    continue
                patterns.extend(parse_ignore_lines(text))
                found.append((rel_dir, name))

            if patterns:
                self._scopes[rel_dir] = _compile(rel_dir, patterns)
            if capped:
                return found

            # Excluded subtrees are never searched for nested ignore files
            kept = []
            for name in sorted(dirnames):
                child = f"{rel_dir}/{name}" if rel_dir else name
                if name == VCS_DIR or self.is_excluded(child, is_dir=True):
                    continue
                if os.path.islink(os.path.join(dirpath, name)):
                    continue
                kept.append(name)
            dirnames[:] = kept

        return found

    def is_excluded(self, relative_path: str | Path, is_dir: bool = False) -> bool:
        """Whether a workspace-relative path is excluded by any scope.

        Args:
            relative_path: Path relative to the workspace root. Absolute
                paths are made relative first.
            is_dir: Test the path as a directory, so directory-only
                patterns such as ``node_modules/`` apply.
        """
        if os.path.isabs(relative_path):
            relative_path = os.path.relpath(str(relative_path), self._root)

        path = normalize_relative(relative_path)
        if not path or path == ".." or path.startswith("../"):
            return False

        suffix = "/" if is_dir else ""
        if self._root_scope.matches(path + suffix):
            return True

        parts = path.split("/")
        for depth in range(len(parts)):
            scope = self._scopes.get("/".join(parts[:depth]))
            if scope is None:
                continue
            if scope.matches("/".join(parts[depth:]) + suffix):
                return True
        return False
