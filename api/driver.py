"""Phase driver: advances sessions whose deadline passed or whose actors all acted."""

import asyncio
import logging
import os
from typing import Optional

from api import game_store
from session.engine import SessionEngine
from session.state import Lobby

logger = logging.getLogger(__name__)

ENV_TICK_SECONDS = "MAFIA_TICK_SECONDS"
DEFAULT_TICK_SECONDS = 1.0


def tick_interval() -> float:
    """Seconds between driver ticks from $MAFIA_TICK_SECONDS; 0 disables the loop."""
    raw = os.environ.get(ENV_TICK_SECONDS)
    if raw is None:
        return DEFAULT_TICK_SECONDS
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning("Invalid %s=%r; using %s", ENV_TICK_SECONDS, raw, DEFAULT_TICK_SECONDS)
        return DEFAULT_TICK_SECONDS


def advance_if_due(game_id: str, now: Optional[float] = None) -> bool:
    """Advance one session when due; True if it advanced. The check runs under the session lock."""
    advanced = False

    def _step(engine: SessionEngine, lobby: Lobby) -> Lobby:
        nonlocal advanced
        if not engine.should_advance(lobby, now):
            return lobby
        advanced = True
        return engine.advance(lobby, now)

    game_store.transact(game_id, _step)
    return advanced


def force_advance(game_id: str, now: Optional[float] = None) -> Optional[Lobby]:
    """Advance regardless of deadline (host "next phase")."""
    return game_store.transact(game_id, lambda engine, lobby: engine.advance(lobby, now))


def tick(now: Optional[float] = None) -> list[str]:
    """One driver pass over every session; returns the ids that advanced."""
    return [game_id for game_id in game_store.list_games() if advance_if_due(game_id, now)]


async def run_driver(interval: float) -> None:
    """Background loop: tick every interval seconds until cancelled."""
    logger.info("Phase driver running every %.2fs", interval)
    while True:
        try:
            await asyncio.to_thread(tick)
        except Exception as e:
            logger.warning("Driver tick failed: %s", e)
        await asyncio.sleep(interval)
