"""Context generation configuration schema.

Loaded from defaults.toml and overridden by CLI flags.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from contextgen.schemas.context import TraversalPolicy, normalize_extensions

DEFAULT_FILE_COMMENT_FORMAT = "{filePath}\\n```{markdownLang}\\n{fileContent}\\n```"


class ContextConfig(BaseModel):
    """Top-level configuration for a context run.

    Controls which ignore-file dialects are honored, which extensions are
    collected, whether the dependency manifest is appended, and how each
    fragment is rendered.
    """

    detected_file_extensions: list[str] = Field(
        default_factory=lambda: [
            "js", "jsx", "ts", "tsx", "py", "md", "json", "css", "html",
        ],
        description="Extensions collected by traversal and tried by import resolution",
    )
    enforce_file_types: bool = Field(
        default=True,
        description="Skip files whose extension is not in detected_file_extensions",
    )
    ignore_files: list[str] = Field(
        default_factory=lambda: [".gitignore", ".dockerignore", ".contextignore"],
        description="Ignore-file names honored anywhere in the tree, in order",
    )
    include_manifest: bool = Field(
        default=False, description="Append the dependency manifest as a last fragment"
    )
    manifest_file: str = Field(
        default="package.json", description="Manifest filename at the workspace root"
    )
    file_comment_format: str = Field(
        default=DEFAULT_FILE_COMMENT_FORMAT,
        description="Fragment template with {filePath}, {markdownLang}, {fileContent}",
    )
    token_warning_threshold: int = Field(
        default=8000, gt=0, description="Token count above which the report warns"
    )
    tokenizer_model: str = Field(
        default="gpt-4", description="Model whose tokenizer litellm should use"
    )
    max_file_bytes: int = Field(
        default=1_048_576, gt=0, description="Files larger than this are skipped"
    )

    @field_validator("detected_file_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        return normalize_extensions(value)

    def traversal_policy(self) -> TraversalPolicy:
        """Build the TraversalPolicy this configuration implies."""
        return TraversalPolicy(
            detected_extensions=self.detected_file_extensions,
            enforce_extensions=self.enforce_file_types,
        )
