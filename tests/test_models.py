"""Tests for ai_debate/models.py."""

import pytest

from ai_debate.models import ChatTurn, DebateSession, DebateState, Side, Transcript


def test_side_opponent_and_label():
    assert Side.AFFIRMATIVE.opponent is Side.OPPOSITION
    assert Side.OPPOSITION.opponent is Side.AFFIRMATIVE
    assert Side.AFFIRMATIVE.label == "Affirmative"
    assert Side.OPPOSITION.label == "Opposition"


def test_chat_turn_as_dict():
    assert ChatTurn("user", "hi").as_dict() == {"role": "user", "content": "hi"}


def test_transcript_append_returns_index():
    transcript = Transcript()
    assert transcript.append(None, "first", is_system=True) == 0
    assert transcript.append("Speaker", "second") == 1
    assert len(transcript) == 2
    assert transcript[0].is_system is True
    assert transcript[1].speaker == "Speaker"


def test_transcript_open_entry_is_replaced_in_place():
    transcript = Transcript()
    transcript.append(None, "status", is_system=True)
    index = transcript.open("Affirmative (GPT-4o)")
    assert transcript.open_index == index == 1
    assert transcript[index].text == ""

    transcript.update_open("Hel")
    transcript.update_open("Hello")
    assert len(transcript) == 2
    assert transcript[index].text == "Hello"
    assert transcript[index].speaker == "Affirmative (GPT-4o)"

    transcript.close()
    assert transcript.open_index is None
    assert transcript[index].text == "Hello"


def test_transcript_refuses_append_while_open():
    transcript = Transcript()
    transcript.open("Opposition (Claude)")
    with pytest.raises(RuntimeError):
        transcript.append(None, "too early", is_system=True)


def test_transcript_update_without_open_entry():
    with pytest.raises(RuntimeError):
        Transcript().update_open("nothing open")


def test_transcript_entries_is_a_copy():
    transcript = Transcript()
    transcript.append(None, "a", is_system=True)
    transcript.entries.clear()
    assert len(transcript) == 1
    assert [e.text for e in transcript] == ["a"]


def test_session_helpers(openai_model, claude_model):
    session = DebateSession("Topic", 2, openai_model, claude_model)
    assert session.state is DebateState.IDLE
    assert session.status == "idle"
    assert session.model_for(Side.OPPOSITION) is claude_model
    assert session.log_for(Side.AFFIRMATIVE) is session.affirmative_log
    assert session.speaker_label(Side.AFFIRMATIVE) == "Affirmative (GPT-4o)"
    assert session.speaker_label(Side.OPPOSITION) == "Opposition (Claude 3.7 Sonnet)"


@pytest.mark.parametrize(
    "state, status",
    [
        (DebateState.RESEARCHING, "running"),
        (DebateState.DEBATING, "running"),
        (DebateState.FINISHED, "finished"),
    ],
)
def test_session_status(openai_model, claude_model, state, status):
    session = DebateSession("Topic", 1, openai_model, claude_model, state=state)
    assert session.status == status


def test_briefing_for_side(sample_briefing):
    assert sample_briefing.for_side(Side.AFFIRMATIVE) == "- Cheaper\n- Faster"
    assert sample_briefing.for_side(Side.OPPOSITION) == "- Riskier\n- Untested"
