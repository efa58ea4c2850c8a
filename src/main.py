"""Entry point for the voice-call conversational orchestrator."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.dependencies import get_session_store
from api.exotel_routes import router as exotel_router
from api.stream_routes import router as stream_router
from api.twilio_routes import router as twilio_router
from config.settings import get_settings
from dialogue.errors import VoiceBotError
from sessions.maintenance import run_sweeper

LOGGER = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    store = get_session_store()
    sweeper = asyncio.create_task(
        run_sweeper(
            store,
            interval_seconds=settings.sweep_interval_seconds,
            max_idle_seconds=settings.session_idle_seconds,
        )
    )
    LOGGER.info(
        "Voice bot ready (llm_provider=%s, model=%s, api_key=%s)",
        settings.llm_provider,
        settings.llm_model,
        "set" if settings.llm_api_key else "missing",
    )
    yield
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    await store.close()


settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(
    title="Voice Call Orchestrator",
    description="Turn-by-turn LLM conversations over telephony webhooks and streams.",
    lifespan=lifespan,
)
app.include_router(exotel_router)
app.include_router(twilio_router)
app.include_router(stream_router)


@app.exception_handler(VoiceBotError)
async def voice_bot_error_handler(request: Request, exc: VoiceBotError) -> JSONResponse:
    LOGGER.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/", response_class=PlainTextResponse)
async def health() -> str:
    return "Bot LIVE"
