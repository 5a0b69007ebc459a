"""
Interpretation of the reply to "do you want to skip this question?".

Substring match against a short multilingual list of affirmations. This is an
approximation: "si" also matches "this" or "decision", and most languages
are not covered. Swap in another SkipReplyInterpreter to change it.
"""

from typing import Iterable, Protocol

AFFIRMATIVE_WORDS: tuple[str, ...] = (
    "yes",
    "yeah",
    "yep",
    "skip",
    "haan",
    "jee",
    "sì",
    "si",
    "hai",
    "ja",
    "oui",
)


class SkipReplyInterpreter(Protocol):
    def is_affirmative(self, reply: str) -> bool:
        ...


class KeywordSkipInterpreter:
    """Case-insensitive substring match against a fixed token list."""

    def __init__(self, words: Iterable[str] = AFFIRMATIVE_WORDS):
        self.words = tuple(w.lower() for w in words if w)

    def is_affirmative(self, reply: str) -> bool:
        lower = reply.lower()
        return any(word in lower for word in self.words)
