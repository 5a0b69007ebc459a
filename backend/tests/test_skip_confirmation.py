import pytest

from voice_assessment.orchestration.skip_confirmation import KeywordSkipInterpreter


@pytest.mark.parametrize("reply", ["Yes", "yeah sure", "Skip it", "haan ji", "Oui", "ja bitte", "sì"])
def test_affirmative_replies(reply):
    assert KeywordSkipInterpreter().is_affirmative(reply)


@pytest.mark.parametrize("reply", ["no", "No, let me answer", "nope", ""])
def test_negative_replies(reply):
    assert not KeywordSkipInterpreter().is_affirmative(reply)


def test_substring_match_accepts_embedded_tokens():
    # "si" inside "this" reads as yes; known limitation of the keyword match
    assert KeywordSkipInterpreter().is_affirmative("let me think about this")


def test_custom_word_list():
    interpreter = KeywordSkipInterpreter(["next"])

    assert interpreter.is_affirmative("NEXT please")
    assert not interpreter.is_affirmative("yes")
