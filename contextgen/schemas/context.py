"""Context assembly schemas.

Defines models for traversal policy, file entries, context fragments,
selection requests, and the final assembly result.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


def normalize_extension(ext: str) -> str:
    """Lowercase an extension and drop any leading dot."""
    return ext.strip().lower().lstrip(".")


def normalize_extensions(extensions: list[str]) -> list[str]:
    """Normalize each extension, dropping blanks and later duplicates."""
    normalized: list[str] = []
    for ext in extensions:
        ext = normalize_extension(ext)
        if ext and ext not in normalized:
            normalized.append(ext)
    return normalized


class SelectionMode(StrEnum):
    """Which part of the workspace a context run draws from.

    Exactly one mode is active per run. WHOLE_TREE is the default when
    the caller names neither an open file nor an explicit file set.
    """

    WHOLE_TREE = "whole_tree"
    OPEN_FILE = "open_file"
    EXPLICIT_FILES = "explicit_files"


class TokenStrategy(StrEnum):
    """How a token estimate was produced."""

    TOKENIZER = "tokenizer"
    HEURISTIC = "heuristic"


class TraversalPolicy(BaseModel):
    """Extension policy applied to files found during traversal."""

    detected_extensions: list[str] = Field(
        default_factory=list,
        description="Lowercase extensions without the dot, in priority order",
    )
    enforce_extensions: bool = Field(
        default=True,
        description="Only admit files whose extension is in detected_extensions",
    )

    @field_validator("detected_extensions")
    @classmethod
    def _normalize(cls, value: list[str]) -> list[str]:
        return normalize_extensions(value)

    def admits(self, extension: str) -> bool:
        """Whether a file with this extension passes the policy."""
        return not self.enforce_extensions or extension in self.detected_extensions


class FileEntry(BaseModel):
    """A file or directory discovered by the ContextScanner."""

    absolute_path: str = Field(description="Absolute filesystem path")
    relative_path: str = Field(
        description="Path relative to the workspace root, '/' separated"
    )
    extension: str = Field(
        default="", description="Lowercase extension without the dot"
    )
    is_directory: bool = Field(default=False, description="Whether the entry is a directory")


class ContextFragment(BaseModel):
    """One file's worth of content in the assembled document."""

    relative_path: str = Field(description="Path shown in the fragment header")
    extension: str = Field(default="", description="Lowercase extension without the dot")
    content: str = Field(default="", description="Verbatim file content")


class SelectionRequest(BaseModel):
    """What to assemble: the whole tree, one open file, or a file set."""

    mode: SelectionMode = Field(
        default=SelectionMode.WHOLE_TREE, description="Active selection mode"
    )
    path: str | None = Field(
        default=None, description="Open file path (OPEN_FILE mode)"
    )
    paths: list[str] = Field(
        default_factory=list, description="Explicit file paths (EXPLICIT_FILES mode)"
    )

    @classmethod
    def whole_tree(cls) -> SelectionRequest:
        return cls(mode=SelectionMode.WHOLE_TREE)

    @classmethod
    def open_file(cls, path: str) -> SelectionRequest:
        return cls(mode=SelectionMode.OPEN_FILE, path=str(path))

    @classmethod
    def explicit_files(cls, paths: list[str]) -> SelectionRequest:
        return cls(mode=SelectionMode.EXPLICIT_FILES, paths=[str(p) for p in paths])


class ContextResult(BaseModel):
    """Result of one assembly call: the document plus its token footprint."""

    document: str = Field(default="", description="Concatenated formatted fragments")
    fragments: list[ContextFragment] = Field(
        default_factory=list, description="Fragments in emission order"
    )
    token_estimate: int = Field(default=0, ge=0, description="Estimated token count")
    token_strategy: TokenStrategy = Field(
        default=TokenStrategy.TOKENIZER,
        description="Strategy that produced token_estimate",
    )
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-fatal problems worth showing to the user",
    )
    over_threshold: bool = Field(
        default=False,
        description="Whether token_estimate exceeds the configured warning threshold",
    )
