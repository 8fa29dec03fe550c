"""Selection and assembly engine.

Matches hierarchical ignore patterns, walks the workspace, expands a file's
relative imports, and assembles the selected files into one document with a
token estimate.
"""

from contextgen.context.builder import ContextAssembler
from contextgen.context.formatter import FragmentFormatter
from contextgen.context.imports import ImportResolver, extract_imports
from contextgen.context.patterns import PatternStore
from contextgen.context.scanner import CancelToken, ContextScanner
from contextgen.context.tokens import TokenEstimator

__all__ = [
    "CancelToken",
    "ContextAssembler",
    "ContextScanner",
    "FragmentFormatter",
    "ImportResolver",
    "PatternStore",
    "TokenEstimator",
    "extract_imports",
]
