"""Pydantic schemas exchanged between adapters and the turn controller."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

Speaker = Literal["user", "assistant"]


class EventKind(str, Enum):
    INITIAL = "initial"
    UTTERANCE = "utterance"


class Directive(str, Enum):
    """What the telephony layer does after speaking."""

    CAPTURE = "capture"
    END = "end"


class InboundEvent(BaseModel):
    """One call-control event, already stripped of its wire format."""

    call_id: str = Field(min_length=1)
    kind: EventKind
    text: str = ""

    @property
    def utterance(self) -> str:
        return self.text.strip()


class Instruction(BaseModel):
    """Transport-neutral outbound instruction."""

    kind: Literal["greet", "reprompt", "speak"]
    text: str = Field(min_length=1)
    directive: Directive

    @property
    def ends_call(self) -> bool:
        return self.directive is Directive.END

    @classmethod
    def greet(cls, text: str) -> Instruction:
        return cls(kind="greet", text=text, directive=Directive.CAPTURE)

    @classmethod
    def reprompt(cls, text: str) -> Instruction:
        return cls(kind="reprompt", text=text, directive=Directive.CAPTURE)

    @classmethod
    def speak(cls, text: str, *, end: bool = False) -> Instruction:
        return cls(kind="speak", text=text, directive=Directive.END if end else Directive.CAPTURE)
