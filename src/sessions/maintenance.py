"""Background eviction of idle call sessions."""

from __future__ import annotations

import asyncio
import logging

from sessions.store import SessionStore

LOGGER = logging.getLogger(__name__)


async def run_sweeper(store: SessionStore, *, interval_seconds: float, max_idle_seconds: float) -> None:
    """Sweep ``store`` every ``interval_seconds`` until cancelled."""

    LOGGER.info(
        "Session sweeper started (interval=%ss, max_idle=%ss)", interval_seconds, max_idle_seconds
    )
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await store.sweep(max_idle_seconds)
        except Exception as exc:
            LOGGER.exception("Session sweep failed: %s", exc)
            continue
        if removed:
            LOGGER.info("Session sweep evicted %d sessions", removed)
