"""Twilio Voice integration.

This module provides:
- Voice webhook (TwiML) for the call start and for each speech ``Gather`` result.
- Status callback that ends the session when the call is over.
- Endpoint to initiate outbound calls.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from twilio.base.exceptions import TwilioException

from api.dependencies import get_controller
from api.markup import render_twiml, xml_response
from api.schemas import OutboundCallRequest, OutboundCallResponse
from config.settings import get_settings
from dialogue.events import build_inbound_event, is_terminal_status, resolve_call_id
from dialogue.schemas import InboundEvent
from integrations.twilio_client import build_twilio_client, get_twilio_config

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/twilio", tags=["twilio"])


def _route_url(request: Request, name: str, path: str) -> str:
    settings = get_settings()
    if settings.public_base_url:
        return f"{settings.public_base_url.rstrip('/')}{path}"
    return str(request.url_for(name))


async def _run_turn(request: Request, event: InboundEvent, controller) -> Response:
    LOGGER.info("Twilio %s event call_id=%s", event.kind.value, event.call_id)
    instruction = await controller.handle_event(event)
    xml = render_twiml(
        instruction,
        action_url=_route_url(request, "twilio_gather_webhook", "/twilio/gather"),
        language=get_settings().say_language,
    )
    return xml_response(xml)


@router.post("/voice")
async def twilio_voice_webhook(request: Request, controller=Depends(get_controller)) -> Response:
    form = await request.form()
    return await _run_turn(request, build_inbound_event(form, request.query_params), controller)


@router.post("/gather")
async def twilio_gather_webhook(request: Request, controller=Depends(get_controller)) -> Response:
    form = await request.form()
    event = build_inbound_event(form, request.query_params, expect_utterance=True)
    return await _run_turn(request, event, controller)


@router.post("/status", status_code=204)
async def twilio_status_callback(request: Request, controller=Depends(get_controller)) -> Response:
    form = await request.form()
    if is_terminal_status(form, request.query_params):
        await controller.terminate(resolve_call_id(form, request.query_params))
    return Response(status_code=204)


def get_twilio_client():
    return build_twilio_client()


def get_twilio_cfg():
    return get_twilio_config()


@router.post("/calls", response_model=OutboundCallResponse)
async def create_twilio_call(
    payload: OutboundCallRequest,
    x_api_key: Annotated[str | None, Header()] = None,
    twilio_client=Depends(get_twilio_client),
    cfg=Depends(get_twilio_cfg),
) -> OutboundCallResponse:
    settings = get_settings()

    if settings.origination_api_key and x_api_key != settings.origination_api_key:
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        call = await asyncio.to_thread(
            twilio_client.calls.create,
            to=payload.to_number,
            from_=cfg.from_number,
            url=f"{cfg.public_base_url}/twilio/voice",
            method="POST",
            status_callback=f"{cfg.public_base_url}/twilio/status",
            status_callback_method="POST",
        )
    except TwilioException as exc:
        LOGGER.error("Twilio call origination failed: %s", exc)
        raise HTTPException(status_code=502, detail="Twilio call origination failed") from exc

    return OutboundCallResponse(call_sid=str(call.sid), to_number=payload.to_number, provider="twilio")
