import pytest
from pydantic import ValidationError

from voice_assessment.languages import (
    DEFAULT_QUESTIONS,
    LANGUAGES,
    StaticQuestionProvider,
    get_language,
    get_phrases,
)
from voice_assessment.models import Question, SentimentResult


def test_sentiment_fallback_is_marked():
    result = SentimentResult.fallback()

    assert result.sentiment == "neutral"
    assert result.score == 0.5
    assert result.keywords == ()
    assert result.is_fallback


def test_sentiment_score_bounds():
    with pytest.raises(ValidationError):
        SentimentResult(sentiment="positive", score=1.5)
    with pytest.raises(ValidationError):
        SentimentResult(sentiment="ecstatic", score=0.5)


def test_models_are_frozen():
    question = Question(number=1, text="How are you?")
    with pytest.raises(ValidationError):
        question.text = "changed"


def test_every_language_has_questions_and_phrases():
    for code in LANGUAGES:
        assert len(DEFAULT_QUESTIONS[code]) == 5
        assert get_phrases(code).closing


def test_unknown_language_falls_back_to_english():
    assert get_language("xx").code == "en"
    assert StaticQuestionProvider().get_questions("xx") == DEFAULT_QUESTIONS["en"]
    assert get_language("hi").speech_code == "hi-IN"
