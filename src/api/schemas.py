"""API-facing Pydantic models."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OutboundCallRequest(BaseModel):
    to_number: str = Field(min_length=3, description="Number to ring, e.g. +9193... or 0930...")


class OutboundCallResponse(BaseModel):
    call_sid: str
    to_number: str
    provider: str
