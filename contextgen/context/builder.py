"""Context assembler for LLM-ready project context.

Turns a SelectionRequest into an ordered list of ContextFragments, renders
them through the fragment template into one document, and estimates the
document's token count. Three selection modes are supported:

- WHOLE_TREE: every admitted file from a traversal of the workspace.
- OPEN_FILE: the open file (force-included) followed by its resolved
  relative imports.
- EXPLICIT_FILES: a caller-chosen file set; a single file is force-included,
  several files are taken at face value.

Fragments are emitted in selection order and never de-duplicated, so a file
both opened and imported appears twice.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from contextgen.context.formatter import FragmentFormatter
from contextgen.context.imports import ImportResolver
from contextgen.context.patterns import PatternStore, normalize_relative
from contextgen.context.scanner import CancelToken, ContextScanner, file_extension
from contextgen.context.tokens import TokenEstimator
from contextgen.errors import PreconditionError
from contextgen.schemas.config import ContextConfig
from contextgen.schemas.context import (
    ContextFragment,
    ContextResult,
    FileEntry,
    SelectionMode,
    SelectionRequest,
)

logger = logging.getLogger(__name__)


class ContextAssembler:
    """Assembles context documents for one workspace.

    Holds no per-run state: every call takes its request and returns its
    fragments, so the same assembler can serve repeated runs. The
    PatternStore is caller-owned; pass one in to share it (and call its
    ``rebuild()`` when ignore files change), or let the assembler build one
    from the configured ignore-file names.
    """

    def __init__(
        self,
        workspace_root: str | Path | None,
        config: ContextConfig | None = None,
        store: PatternStore | None = None,
        formatter: FragmentFormatter | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        if not workspace_root:
            raise PreconditionError("Please open a workspace before generating context.")
        root = Path(workspace_root).resolve()
        if not root.is_dir():
            raise PreconditionError(f"Workspace folder does not exist: {root}")

        self._root = root
        self._config = config or ContextConfig()
        self._store = store or PatternStore(root, self._config.ignore_files).initialize()
        self._policy = self._config.traversal_policy()
        self._resolver = ImportResolver(
            root, self._config.detected_file_extensions, self._store,
        )
        self._formatter = formatter or FragmentFormatter(self._config.file_comment_format)
        self._estimator = estimator or TokenEstimator(self._config.tokenizer_model)

    @property
    def root(self) -> Path:
        return self._root

    @property
    def store(self) -> PatternStore:
        return self._store

    @property
    def config(self) -> ContextConfig:
        return self._config

    # ── Assembly ─────────────────────────────────────────────────

    def assemble(
        self,
        request: SelectionRequest | None = None,
        cancel: CancelToken | None = None,
        warnings: list[str] | None = None,
    ) -> list[ContextFragment]:
        """Select and read files for ``request``.

        Args:
            request: What to assemble. Defaults to the whole tree.
            cancel: Checked between directories during traversal.
            warnings: Receives non-fatal problems (unreadable files,
                force-included ignored files, unlistable directories).

        Returns:
            Fragments in emission order.

        Raises:
            PreconditionError: If the request names no file, or a file
                that does not exist.
            ScanCancelledError: If ``cancel`` is set mid-traversal. No
                fragments are returned in that case.
        """
        request = request or SelectionRequest.whole_tree()
        warnings = warnings if warnings is not None else []
        warnings.extend(self._store.warnings)
        fragments: list[ContextFragment] = []

        if request.mode == SelectionMode.WHOLE_TREE:
            scanner = ContextScanner(self._root, self._store, self._policy)
            for entry in scanner.iter_entries(cancel):
                self._append_entry(entry, fragments, warnings)
            warnings.extend(scanner.warnings)
        elif request.mode == SelectionMode.OPEN_FILE:
            self._add_open_file(request.path, fragments, warnings)
        else:
            self._add_explicit_files(request.paths, fragments, warnings)

        self._append_manifest(fragments, warnings)
        logger.info(
            "Context generation complete (%s). Files processed: %d",
            request.mode, len(fragments),
        )
        return fragments

    async def assemble_async(
        self,
        request: SelectionRequest | None = None,
        cancel: CancelToken | None = None,
        warnings: list[str] | None = None,
    ) -> list[ContextFragment]:
        """Like ``assemble()``, but traverses subdirectories concurrently."""
        request = request or SelectionRequest.whole_tree()
        warnings = warnings if warnings is not None else []
        if request.mode != SelectionMode.WHOLE_TREE:
            return await asyncio.to_thread(self.assemble, request, cancel, warnings)

        warnings.extend(self._store.warnings)
        scanner = ContextScanner(self._root, self._store, self._policy)
        entries = await scanner.collect(cancel)
        warnings.extend(scanner.warnings)

        def _read_all() -> list[ContextFragment]:
            fragments: list[ContextFragment] = []
            for entry in entries:
                self._append_entry(entry, fragments, warnings)
            self._append_manifest(fragments, warnings)
            return fragments

        fragments = await asyncio.to_thread(_read_all)
        logger.info("Context generation complete (async). Files processed: %d", len(fragments))
        return fragments

    def render(self, fragments: list[ContextFragment]) -> str:
        """Concatenate formatted fragments, each followed by a blank line."""
        return "\n".join(f"{self._formatter.format(f)}\n\n" for f in fragments)

    def build(
        self,
        request: SelectionRequest | None = None,
        cancel: CancelToken | None = None,
    ) -> ContextResult:
        """Assemble, render and estimate tokens in one call."""
        warnings: list[str] = []
        fragments = self.assemble(request, cancel, warnings)
        return self._result(fragments, warnings)

    async def build_async(
        self,
        request: SelectionRequest | None = None,
        cancel: CancelToken | None = None,
    ) -> ContextResult:
        warnings: list[str] = []
        fragments = await self.assemble_async(request, cancel, warnings)
        return await asyncio.to_thread(self._result, fragments, warnings)

    def _result(self, fragments: list[ContextFragment], warnings: list[str]) -> ContextResult:
        document = self.render(fragments)
        token_estimate = self._estimator.estimate(document)
        return ContextResult(
            document=document,
            fragments=fragments,
            token_estimate=token_estimate,
            token_strategy=self._estimator.last_strategy,
            warnings=warnings,
            over_threshold=token_estimate > self._config.token_warning_threshold,
        )

    # ── Selection modes ──────────────────────────────────────────

    def _add_open_file(
        self,
        raw_path: str | None,
        fragments: list[ContextFragment],
        warnings: list[str],
    ) -> None:
        if not raw_path:
            raise PreconditionError("No file is open.")

        path = self._absolute(raw_path)
        fragment = self._force_include(path, warnings)
        if fragment is None:
            return
        fragments.append(fragment)

        for resolved in self._resolver.resolve_all(path, fragment.content):
            imported = self._read_fragment(resolved, self._relative(resolved), warnings)
            if imported is not None:
                fragments.append(imported)

    def _add_explicit_files(
        self,
        raw_paths: list[str],
        fragments: list[ContextFragment],
        warnings: list[str],
    ) -> None:
        if not raw_paths:
            raise PreconditionError("No files were selected.")

        if len(raw_paths) == 1:
            fragment = self._force_include(self._absolute(raw_paths[0]), warnings)
            if fragment is not None:
                fragments.append(fragment)
            return

        # Several files: the selection already applied its own policy
        for raw_path in raw_paths:
            path = self._absolute(raw_path)
            if path.is_dir():
                continue
            fragment = self._read_fragment(path, self._relative(path), warnings)
            if fragment is not None:
                fragments.append(fragment)

    def _force_include(self, path: Path, warnings: list[str]) -> ContextFragment | None:
        """Read a user-chosen file regardless of ignore and extension rules."""
        if not path.exists():
            raise PreconditionError(f"File not found: {path}")

        rel_path = self._relative(path)
        is_dir = path.is_dir()
        if self._store.is_excluded(rel_path, is_dir=is_dir):
            msg = (
                f'Note: "{path.name}" matches patterns in your ignore files but '
                "will be included anyway since it was specifically selected."
            )
            logger.warning(msg)
            warnings.append(msg)

        if is_dir:
            logger.debug("Selected path is a directory, nothing to include: %s", rel_path)
            return None
        return self._read_fragment(path, rel_path, warnings)

    def _append_entry(
        self,
        entry: FileEntry,
        fragments: list[ContextFragment],
        warnings: list[str],
    ) -> None:
        fragment = self._read_fragment(Path(entry.absolute_path), entry.relative_path, warnings)
        if fragment is not None:
            fragments.append(fragment)

    def _append_manifest(self, fragments: list[ContextFragment], warnings: list[str]) -> None:
        if not self._config.include_manifest:
            return
        manifest = self._root / self._config.manifest_file
        if not manifest.is_file():
            logger.debug("No manifest at %s", manifest)
            return
        fragment = self._read_fragment(manifest, self._config.manifest_file, warnings)
        if fragment is not None:
            fragments.append(fragment)

    # ── File access ──────────────────────────────────────────────

    def _read_fragment(
        self, path: Path, rel_path: str, warnings: list[str],
    ) -> ContextFragment | None:
        """Read one file into a fragment, or record why it was skipped."""
        try:
            size = path.stat().st_size
            if size > self._config.max_file_bytes:
                msg = f"Skipping {rel_path}: {size:,} bytes exceeds the {self._config.max_file_bytes:,} byte limit"
                logger.warning(msg)
                warnings.append(msg)
                return None
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            msg = f"Skipping {rel_path}: not UTF-8 text"
            logger.warning(msg)
            warnings.append(msg)
            return None
        except OSError as e:
            msg = f"Could not read {rel_path}: {e.strerror or e}"
            logger.warning(msg)
            warnings.append(msg)
            return None

        logger.debug("Added to context: %s", rel_path)
        return ContextFragment(
            relative_path=rel_path,
            extension=file_extension(path),
            content=content,
        )

    def _absolute(self, raw_path: str | Path) -> Path:
        path = Path(raw_path)
        if not path.is_absolute():
            path = self._root / path
        return path.resolve()

    def _relative(self, path: Path) -> str:
        return normalize_relative(os.path.relpath(path, self._root))
