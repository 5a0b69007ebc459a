"""Ordered, forward-only walk over the active language's questions."""

from typing import Sequence

from voice_assessment.models import Question


class QuestionSequencer:
    def __init__(self, questions: Sequence[str]):
        if not questions:
            raise ValueError("QuestionSequencer needs at least one question")
        self._questions = tuple(questions)
        self._index = 0

    @property
    def index(self) -> int:
        """0-based index of the current question; equals count once complete."""
        return self._index

    @property
    def count(self) -> int:
        return len(self._questions)

    def current(self) -> Question:
        if self.is_complete():
            raise IndexError("No current question: sequence is complete")
        return Question(number=self._index + 1, text=self._questions[self._index])

    def has_next(self) -> bool:
        """True if advancing would land on another question."""
        return self._index + 1 < len(self._questions)

    def advance(self) -> None:
        if self._index < len(self._questions):
            self._index += 1

    def is_complete(self) -> bool:
        return self._index >= len(self._questions)
