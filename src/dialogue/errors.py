"""Domain-specific exceptions for call handling.

These exceptions are safe to import from API layers without pulling in LLM clients.
"""

from __future__ import annotations


class VoiceBotError(Exception):
    status_code: int = 500
    default_detail: str = "Voice bot error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class ReplyGenerationFailure(VoiceBotError):
    """The completion service was unreachable, errored or returned garbage."""

    status_code = 503
    default_detail = "Reply generation failed."

    def __init__(self, detail: str | None = None, *, cause: BaseException | None = None) -> None:
        super().__init__(detail)
        self.cause = cause


class CallBusyError(VoiceBotError):
    """A reply for this call is already in flight."""

    status_code = 409
    default_detail = "A reply for this call is already being generated."

    def __init__(self, call_id: str) -> None:
        super().__init__(f"Call {call_id} is busy.")
        self.call_id = call_id


class OriginationNotConfiguredError(VoiceBotError):
    status_code = 503
    default_detail = "Outbound calling is not configured."
