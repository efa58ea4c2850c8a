from __future__ import annotations

from dialogue.events import (
    build_inbound_event,
    classify_event,
    extract_utterance,
    is_terminal_status,
    resolve_call_id,
)
from dialogue.schemas import EventKind


def test_call_session_id_beats_caller_number():
    assert resolve_call_id({"From": "+919812345678", "CallSid": "CA42"}) == "CA42"


def test_caller_number_used_when_no_session_id():
    assert resolve_call_id({"CallFrom": "09812345678"}) == "09812345678"


def test_body_and_query_aliases_resolve_to_same_call():
    body = {"CallSid": "CA42"}
    query = {"callSid": "CA42"}
    assert resolve_call_id(body, {}) == resolve_call_id({}, query) == "CA42"


def test_session_id_in_later_source_still_beats_caller_number_in_earlier_source():
    assert resolve_call_id({"From": "+9198"}, {"callSid": "CA7"}) == "CA7"


def test_blank_candidates_are_skipped_and_id_synthesized():
    first = resolve_call_id({"CallSid": "  ", "From": ""})
    second = resolve_call_id({})
    assert first and second
    assert first != second


def test_extract_utterance_distinguishes_absent_from_blank():
    assert extract_utterance({"CallSid": "CA1"}) is None
    assert extract_utterance({"Transcription": ""}) == ""
    assert extract_utterance({"SpeechResult": "नमस्ते"}) == "नमस्ते"


def test_transcription_field_makes_event_an_utterance():
    event = build_inbound_event({"CallSid": "CA1", "Transcription": "हाँ"})
    assert event.kind is EventKind.UTTERANCE
    assert event.utterance == "हाँ"

    blank = build_inbound_event({"CallSid": "CA1", "Transcription": "  "})
    assert blank.kind is EventKind.UTTERANCE
    assert blank.utterance == ""


def test_missing_transcription_is_initial_unless_callback():
    assert build_inbound_event({"CallSid": "CA1"}).kind is EventKind.INITIAL

    callback = build_inbound_event({"CallSid": "CA1"}, expect_utterance=True)
    assert callback.kind is EventKind.UTTERANCE
    assert callback.utterance == ""


def test_classify_event_keeps_raw_text():
    event = classify_event("CA1", "  hello ")
    assert event.text == "  hello "
    assert event.utterance == "hello"


def test_terminal_status_detection():
    assert is_terminal_status({"Status": "completed"})
    assert is_terminal_status({"CallStatus": "No-Answer"})
    assert not is_terminal_status({"CallStatus": "ringing"})
    assert not is_terminal_status({})
