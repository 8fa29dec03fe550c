"""contextgen schema definitions.

All Pydantic v2 models used by the selection and assembly engine.
"""

from contextgen.schemas.config import ContextConfig
from contextgen.schemas.context import (
    ContextFragment,
    ContextResult,
    FileEntry,
    SelectionMode,
    SelectionRequest,
    TokenStrategy,
    TraversalPolicy,
)

__all__ = [
    "ContextConfig",
    "ContextFragment",
    "ContextResult",
    "FileEntry",
    "SelectionMode",
    "SelectionRequest",
    "TokenStrategy",
    "TraversalPolicy",
]
