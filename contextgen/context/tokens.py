"""Token estimation for assembled context.

Counts tokens with a real sub-word tokenizer (litellm's ``token_counter``,
which picks the right encoding for the configured model). If the tokenizer
cannot be created or fails on the text, falls back to a word-count
heuristic that never raises.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Callable
from contextlib import closing
from typing import Protocol

from contextgen.schemas.context import TokenStrategy

logger = logging.getLogger(__name__)

# Average tokens per whitespace-delimited word for the heuristic
_TOKENS_PER_WORD = 1.3


class Tokenizer(Protocol):
    """A tokenizer handle; ``close()`` releases whatever it holds."""

    def count(self, text: str) -> int: ...

    def close(self) -> None: ...


class LiteLLMTokenizer:
    """Counts tokens with the encoding litellm selects for ``model``.

    litellm is imported on first use, with its bundled model cost map,
    so importing contextgen never touches the network. The handle holds
    no resources; ``close()`` only marks it unusable.
    """

    def __init__(self, model: str) -> None:
        self._model = model
        self._closed = False

    def count(self, text: str) -> int:
        if self._closed:
            raise RuntimeError("Tokenizer is closed")

        os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")
        import litellm

        litellm.suppress_debug_info = True
        return int(litellm.token_counter(model=self._model, text=text))

    def close(self) -> None:
        self._closed = True


def heuristic_estimate(text: str) -> int:
    """``ceil(words * 1.3)`` over the whitespace-split, trimmed text."""
    return math.ceil(len(text.split()) * _TOKENS_PER_WORD)


class TokenEstimator:
    """Estimates the token footprint of a document.

    The tokenizer is acquired per call and closed on every exit path,
    including the fallback path.
    """

    def __init__(
        self,
        model: str = "gpt-4",
        tokenizer_factory: Callable[[], Tokenizer] | None = None,
    ) -> None:
        self._model = model
        self._factory = tokenizer_factory or (lambda: LiteLLMTokenizer(model))
        self.last_strategy = TokenStrategy.TOKENIZER

    def estimate(self, text: str) -> int:
        """Return an estimated token count (always >= 0)."""
        if not text:
            self.last_strategy = TokenStrategy.TOKENIZER
            return 0

        try:
            with closing(self._factory()) as tokenizer:
                count = max(int(tokenizer.count(text)), 0)
            self.last_strategy = TokenStrategy.TOKENIZER
            return count
        except Exception as e:
            logger.debug(
                "Tokenizer for %s unavailable (%s); using word heuristic",
                self._model, e,
            )

        self.last_strategy = TokenStrategy.HEURISTIC
        return heuristic_estimate(text)
