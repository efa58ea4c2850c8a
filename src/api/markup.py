"""Call-control markup for the supported telephony providers.

Both renderers take a transport-neutral ``Instruction`` and only translate it;
they never decide what happens next in the call.
"""

from __future__ import annotations

from xml.sax.saxutils import escape, quoteattr

from fastapi import Response

from config.settings import Settings
from dialogue.schemas import Instruction

XML_HEADER = "<?xml version=\"1.0\" encoding=\"UTF-8\"?>"


def xml_response(xml: str) -> Response:
    # Providers expect application/xml
    return Response(content=xml, media_type="application/xml; charset=utf-8")


def render_exotel(instruction: Instruction, *, callback_url: str, settings: Settings) -> str:
    """Exotel voicebot markup: ``Say`` followed by ``Record`` or ``Hangup``."""

    say = (
        f"<Say language={quoteattr(settings.say_language)} voice={quoteattr(settings.say_voice)}>"
        f"{escape(instruction.text)}</Say>"
    )
    if instruction.ends_call:
        follow_up = "<Hangup/>"
    else:
        follow_up = (
            f"<Record maxLength=\"{settings.record_max_length}\""
            f" finishOnKey={quoteattr(settings.record_finish_on_key)}"
            " transcriptionEnabled=\"true\""
            f" callbackUrl={quoteattr(callback_url)}"
            " method=\"POST\" />"
        )
    return f"{XML_HEADER}<Response>{say}{follow_up}</Response>"


def render_twiml(instruction: Instruction, *, action_url: str, language: str) -> str:
    """TwiML: speech ``Gather`` wrapping ``Say``, or ``Say`` then ``Hangup``."""

    lang = quoteattr(language)
    say = f"<Say language={lang}>{escape(instruction.text)}</Say>"
    if instruction.ends_call:
        return f"{XML_HEADER}<Response>{say}<Hangup/></Response>"
    return (
        f"{XML_HEADER}<Response>"
        f"<Gather input=\"speech\" action={quoteattr(action_url)} method=\"POST\" language={lang}"
        " speechTimeout=\"auto\" actionOnEmptyResult=\"true\">"
        f"{say}"
        "</Gather>"
        "</Response>"
    )
