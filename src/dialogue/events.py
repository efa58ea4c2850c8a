"""Wire-format independent interpretation of inbound call-control events.

Every adapter resolves call ids and classifies events through this module, so
one phone call never splits into two sessions because two transports disagree.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from dialogue.schemas import EventKind, InboundEvent

# Resolution order: explicit call-session id, then the caller's number, then a
# freshly synthesized id.
CALL_ID_FIELDS: tuple[str, ...] = ("CallSid", "callSid", "call_sid", "callId", "call_id")
CALLER_NUMBER_FIELDS: tuple[str, ...] = ("From", "CallFrom", "from", "caller")
UTTERANCE_FIELDS: tuple[str, ...] = ("Transcription", "SpeechResult", "utterance", "text")
CALL_STATUS_FIELDS: tuple[str, ...] = ("CallStatus", "Status", "status")
TERMINAL_CALL_STATUSES = frozenset({"completed", "failed", "busy", "no-answer", "canceled"})


def _first_present(fields: tuple[str, ...], sources: tuple[Mapping[str, Any], ...]) -> str | None:
    for name in fields:
        for source in sources:
            value = source.get(name)
            if value is None:
                continue
            value = str(value).strip()
            if value:
                return value
    return None


def synthesize_call_id() -> str:
    return uuid.uuid4().hex


def resolve_call_id(*sources: Mapping[str, Any]) -> str:
    """Return the call id from the first source that carries one."""

    return (
        _first_present(CALL_ID_FIELDS, sources)
        or _first_present(CALLER_NUMBER_FIELDS, sources)
        or synthesize_call_id()
    )


def extract_utterance(*sources: Mapping[str, Any]) -> str | None:
    """Return the transcription text, ``""`` if the field is blank, ``None`` if absent."""

    for name in UTTERANCE_FIELDS:
        for source in sources:
            if name in source and source[name] is not None:
                return str(source[name])
    return None


def classify_event(call_id: str, utterance: str | None) -> InboundEvent:
    # A transcription field wins over "initial call", even when blank.
    if utterance is None:
        return InboundEvent(call_id=call_id, kind=EventKind.INITIAL)
    return InboundEvent(call_id=call_id, kind=EventKind.UTTERANCE, text=utterance)


def build_inbound_event(*sources: Mapping[str, Any], expect_utterance: bool = False) -> InboundEvent:
    """Resolve, extract and classify in one step.

    Callback endpoints pass ``expect_utterance=True``: a provider that omits the
    transcription on a callback heard nothing, which is an empty utterance.
    """

    call_id = resolve_call_id(*sources)
    utterance = extract_utterance(*sources)
    if utterance is None and expect_utterance:
        utterance = ""
    return classify_event(call_id, utterance)


def is_terminal_status(*sources: Mapping[str, Any]) -> bool:
    """True when a provider status callback reports that the call is over."""

    status = _first_present(CALL_STATUS_FIELDS, sources)
    return status is not None and status.lower() in TERMINAL_CALL_STATUSES
