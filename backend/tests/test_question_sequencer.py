import pytest

from voice_assessment.orchestration.question_sequencer import QuestionSequencer


def test_walks_questions_in_order():
    sequencer = QuestionSequencer(["first", "second"])

    assert sequencer.count == 2
    assert sequencer.current().number == 1
    assert sequencer.current().text == "first"
    assert sequencer.has_next()

    sequencer.advance()
    assert sequencer.index == 1
    assert sequencer.current().text == "second"
    assert not sequencer.has_next()
    assert not sequencer.is_complete()

    sequencer.advance()
    assert sequencer.is_complete()
    assert sequencer.index == 2


def test_advance_stops_at_count():
    sequencer = QuestionSequencer(["only"])

    sequencer.advance()
    sequencer.advance()

    assert sequencer.index == 1
    with pytest.raises(IndexError):
        sequencer.current()


def test_empty_question_list_rejected():
    with pytest.raises(ValueError):
        QuestionSequencer([])
