"""Outbound call origination through the Exotel Connect API."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from config.settings import get_settings
from dialogue.errors import OriginationNotConfiguredError

LOGGER = logging.getLogger(__name__)

STATUS_CALLBACK_EVENTS = "initiated,ringing,answered,completed"


@dataclass(frozen=True)
class ExotelConfig:
    account_sid: str
    api_key: str
    api_token: str
    from_number: str
    subdomain: str
    public_base_url: str | None = None


def get_exotel_config() -> ExotelConfig:
    settings = get_settings()
    if not (settings.exotel_account_sid and settings.exotel_api_key and settings.exotel_api_token):
        raise OriginationNotConfiguredError("Exotel credentials are not configured")
    if not settings.exotel_from_number:
        raise OriginationNotConfiguredError("Exotel virtual number is not configured")

    return ExotelConfig(
        account_sid=settings.exotel_account_sid,
        api_key=settings.exotel_api_key,
        api_token=settings.exotel_api_token,
        from_number=settings.exotel_from_number,
        subdomain=settings.exotel_subdomain,
        public_base_url=settings.public_base_url.rstrip("/") if settings.public_base_url else None,
    )


class ExotelClient:
    """Connects a phone number to the ExoPhone whose flow points at our voicebot."""

    def __init__(self, cfg: ExotelConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._cfg = cfg
        self._transport = transport

    @property
    def connect_url(self) -> str:
        return f"https://{self._cfg.subdomain}/v1/Accounts/{self._cfg.account_sid}/Calls/connect.json"

    async def connect_call(self, to_number: str) -> str:
        form = {
            "From": to_number,
            "To": self._cfg.from_number,
            "CallerId": self._cfg.from_number,
            "CallType": "trans",
        }
        if self._cfg.public_base_url:
            form["StatusCallback"] = f"{self._cfg.public_base_url}/exotel/status"
            form["StatusCallbackEvents"] = STATUS_CALLBACK_EVENTS

        async with httpx.AsyncClient(timeout=30, transport=self._transport) as client:
            response = await client.post(
                self.connect_url,
                data=form,
                auth=(self._cfg.api_key, self._cfg.api_token),
            )
        try:
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.error("Exotel call origination failed: %s %s", exc, response.text)
            raise

        try:
            payload = response.json()
        except ValueError as exc:
            raise httpx.DecodingError("Exotel response is not JSON") from exc
        call = payload.get("Call") if isinstance(payload, dict) else None
        call_sid = call.get("Sid") if isinstance(call, dict) else None
        if not call_sid:
            raise httpx.DecodingError("Exotel response carries no Call.Sid")
        LOGGER.info("Exotel call initiated call_sid=%s", call_sid)
        return str(call_sid)
