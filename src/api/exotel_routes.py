"""Exotel voicebot integration.

- ``GET /exotel/voicebot``: call start, greet and record.
- ``POST /exotel/voicebot``: transcription callback, one turn per request.
- ``POST /exotel/status``: call status callback; terminal statuses end the session.
- ``POST /exotel/calls``: trigger an outbound test call.
"""

from __future__ import annotations

import logging
from typing import Annotated
from urllib.parse import urlencode

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response

from api.dependencies import get_controller
from api.markup import render_exotel, xml_response
from api.schemas import OutboundCallRequest, OutboundCallResponse
from config.settings import get_settings
from dialogue.events import build_inbound_event, is_terminal_status, resolve_call_id
from dialogue.schemas import InboundEvent
from integrations.exotel_client import ExotelClient, get_exotel_config

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/exotel", tags=["exotel"])


def _base_url(request: Request) -> str:
    settings = get_settings()
    if settings.public_base_url:
        return settings.public_base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def _callback_url(request: Request, call_id: str) -> str:
    # The call id rides along so every later callback lands in the same session.
    return f"{_base_url(request)}/exotel/voicebot?" + urlencode({"callSid": call_id})


async def _run_turn(request: Request, event: InboundEvent, controller) -> Response:
    LOGGER.info("Exotel %s event call_id=%s", event.kind.value, event.call_id)
    instruction = await controller.handle_event(event)
    xml = render_exotel(
        instruction,
        callback_url=_callback_url(request, event.call_id),
        settings=get_settings(),
    )
    LOGGER.debug("Exotel response call_id=%s: %s", event.call_id, xml)
    return xml_response(xml)


@router.get("/voicebot")
async def exotel_call_start(request: Request, controller=Depends(get_controller)) -> Response:
    event = build_inbound_event(request.query_params)
    return await _run_turn(request, event, controller)


@router.post("/voicebot")
async def exotel_transcription_callback(request: Request, controller=Depends(get_controller)) -> Response:
    form = await request.form()
    event = build_inbound_event(form, request.query_params, expect_utterance=True)
    return await _run_turn(request, event, controller)


@router.post("/status", status_code=204)
async def exotel_status_callback(request: Request, controller=Depends(get_controller)) -> Response:
    form = await request.form()
    if is_terminal_status(form, request.query_params):
        await controller.terminate(resolve_call_id(form, request.query_params))
    return Response(status_code=204)


def get_exotel_client() -> ExotelClient:
    return ExotelClient(get_exotel_config())


@router.post("/calls", response_model=OutboundCallResponse)
async def create_exotel_call(
    payload: OutboundCallRequest,
    x_api_key: Annotated[str | None, Header()] = None,
    exotel_client: ExotelClient = Depends(get_exotel_client),
) -> OutboundCallResponse:
    settings = get_settings()

    if settings.origination_api_key and x_api_key != settings.origination_api_key:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        call_sid = await exotel_client.connect_call(payload.to_number)
    except httpx.HTTPError as exc:
        raise HTTPException(status_code=502, detail="Exotel call origination failed") from exc

    return OutboundCallResponse(call_sid=call_sid, to_number=payload.to_number, provider="exotel")
