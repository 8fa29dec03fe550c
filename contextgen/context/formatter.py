"""Fragment rendering through a user-configurable template."""

from __future__ import annotations

from contextgen.schemas.config import DEFAULT_FILE_COMMENT_FORMAT
from contextgen.schemas.context import ContextFragment

# Extension → Markdown code-fence language, when they differ
_MARKDOWN_LANG: dict[str, str] = {
    "js": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "md": "markdown",
    "py": "python",
    "rb": "ruby",
    "rs": "rust",
    "sh": "bash",
    "yml": "yaml",
}


def markdown_lang(extension: str) -> str:
    return _MARKDOWN_LANG.get(extension, extension)


class FragmentFormatter:
    """Renders a ContextFragment with ``{filePath}``, ``{markdownLang}``
    and ``{fileContent}`` placeholders.

    Literal ``\\n`` sequences in the template become newlines, so templates
    can be written on one line in TOML. Content is substituted last and is
    never scanned for placeholders.
    """

    def __init__(self, template: str = DEFAULT_FILE_COMMENT_FORMAT) -> None:
        self._template = template.replace("\\n", "\n")

    def format(self, fragment: ContextFragment) -> str:
        head, sep, tail = self._template.partition("{fileContent}")
        head = self._fill(head, fragment)
        tail = self._fill(tail, fragment)
        return head + (fragment.content if sep else "") + tail

    @staticmethod
    def _fill(text: str, fragment: ContextFragment) -> str:
        return (
            text.replace("{filePath}", fragment.relative_path)
            .replace("{markdownLang}", markdown_lang(fragment.extension))
        )
