from __future__ import annotations

from api.markup import render_exotel, render_twiml
from config.settings import Settings
from dialogue.schemas import Instruction

SETTINGS = Settings(_env_file=None)


def test_exotel_capture_says_then_records_to_callback():
    xml = render_exotel(
        Instruction.speak("ठीक है"),
        callback_url="https://bot.example/exotel/voicebot?callSid=CA1",
        settings=SETTINGS,
    )

    assert xml.startswith("<?xml")
    assert '<Say language="hi-IN" voice="Manvi">ठीक है</Say>' in xml
    assert 'callbackUrl="https://bot.example/exotel/voicebot?callSid=CA1"' in xml
    assert 'transcriptionEnabled="true"' in xml
    assert 'maxLength="30"' in xml
    assert "<Hangup/>" not in xml


def test_exotel_end_hangs_up_without_recording():
    xml = render_exotel(Instruction.speak("अलविदा", end=True), callback_url="unused", settings=SETTINGS)

    assert "<Hangup/>" in xml
    assert "<Record" not in xml


def test_exotel_escapes_reply_text():
    xml = render_exotel(Instruction.speak("a < b & c"), callback_url="https://x/?a=1&b=2", settings=SETTINGS)

    assert "a &lt; b &amp; c" in xml
    assert 'callbackUrl="https://x/?a=1&amp;b=2"' in xml


def test_twiml_capture_wraps_say_in_speech_gather():
    xml = render_twiml(Instruction.greet("Hello"), action_url="https://bot.example/twilio/gather", language="en-IN")

    assert '<Gather input="speech" action="https://bot.example/twilio/gather"' in xml
    assert 'actionOnEmptyResult="true"' in xml
    assert '<Say language="en-IN">Hello</Say></Gather>' in xml


def test_twiml_end_hangs_up():
    xml = render_twiml(Instruction.speak("Bye", end=True), action_url="unused", language="en-IN")

    assert "<Gather" not in xml
    assert xml.endswith("<Say language=\"en-IN\">Bye</Say><Hangup/></Response>")
