"""contextgen — assemble LLM-ready context from a project tree."""

__version__ = "0.4.0"

from .context import ContextAssembler, PatternStore, TokenEstimator
from .schemas import ContextConfig, ContextResult, SelectionRequest

__all__ = [
    "ContextAssembler",
    "ContextConfig",
    "ContextResult",
    "PatternStore",
    "SelectionRequest",
    "TokenEstimator",
]
