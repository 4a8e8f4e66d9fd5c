"""FastAPI app: create a session, submit actions, advance phases, read snapshots."""

import asyncio
import contextlib
import logging
import random
import uuid
from collections.abc import Callable

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from api import game_store
from api.driver import advance_if_due, force_advance, run_driver, tick_interval
from api.models import (
    ChatRequest,
    DiscussionEventRequest,
    GameCreateRequest,
    LobbyStateResponse,
    NightActionRequest,
    VoteRequest,
    lobby_to_public,
)
from narrator import generate_intro
from session.config import EngineConfig, load_config
from session.engine import SessionEngine
from session.state import Lobby, make_lobby

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    interval = tick_interval()
    task = asyncio.create_task(run_driver(interval)) if interval > 0 else None
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


app = FastAPI(title="Mafia Session Engine API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _build_config(overrides: dict | None) -> EngineConfig:
    base = load_config()
    if not overrides:
        return base
    try:
        return EngineConfig.model_validate({**base.model_dump(), **overrides})
    except ValidationError as e:
        raise HTTPException(422, f"Invalid config overrides: {e.errors(include_url=False)}")


def _apply(game_id: str, fn: Callable[[SessionEngine, Lobby], Lobby]) -> LobbyStateResponse:
    lobby = game_store.transact(game_id, fn)
    if lobby is None:
        raise HTTPException(404, "Game not found")
    return lobby_to_public(lobby)


@app.post("/games", response_model=dict, tags=["Games"], summary="Create and start game")
def create_game(body: GameCreateRequest):
    """Create a session from the roster and open night 1. Returns game_id."""
    engine = SessionEngine(
        _build_config(body.config),
        rng=random.Random(body.seed) if body.seed is not None else None,
    )
    game_id = str(uuid.uuid4())
    names = [p.name for p in body.players]
    lobby = make_lobby(game_id, names, host_index=body.host_index)
    intro = generate_intro(names) if body.narrate else None
    lobby = engine.initialize_game(lobby, intro=intro)
    game_store.create(game_id, lobby, engine)
    logger.info("Created game %s with %d players", game_id, len(names))
    return {"game_id": game_id}


@app.get("/games/{game_id}", response_model=LobbyStateResponse, tags=["Games"], summary="Get game state")
def get_game(game_id: str, include_history: bool = True):
    """Full snapshot: roster, roles, suspicion matrix, logs (tagged, unfiltered)."""
    lobby = game_store.get(game_id)
    if lobby is None:
        raise HTTPException(404, "Game not found")
    return lobby_to_public(lobby, include_history=include_history)


@app.post("/games/{game_id}/votes", response_model=LobbyStateResponse, tags=["Actions"], summary="Submit vote")
def submit_vote(game_id: str, body: VoteRequest):
    """Record a vote; ignored outside voting or from dead players."""
    return _apply(
        game_id,
        lambda engine, lobby: engine.submit_vote(lobby, body.voter_id, body.target_id, body.timestamp),
    )


@app.post("/games/{game_id}/actions", response_model=LobbyStateResponse, tags=["Actions"], summary="Submit night action")
def submit_night_action(game_id: str, body: NightActionRequest):
    return _apply(
        game_id,
        lambda engine, lobby: engine.submit_night_action(lobby, body.actor_id, body.target_id),
    )


@app.post("/games/{game_id}/discussion", response_model=LobbyStateResponse, tags=["Actions"], summary="Submit discussion event")
def submit_discussion_event(game_id: str, body: DiscussionEventRequest):
    """Accuse, defend or skip. Unknown types are ignored, not rejected."""
    return _apply(
        game_id,
        lambda engine, lobby: engine.add_discussion_event(
            lobby, body.actor_id, body.target_id, body.type, body.timestamp
        ),
    )


@app.post("/games/{game_id}/chat", response_model=LobbyStateResponse, tags=["Actions"], summary="Post chat message")
def post_chat(game_id: str, body: ChatRequest):
    return _apply(game_id, lambda engine, lobby: engine.post_chat(lobby, body.author_id, body.text))


@app.post("/games/{game_id}/advance", response_model=LobbyStateResponse, tags=["Phases"], summary="Force next phase")
def advance_game(game_id: str):
    """Run the current phase's transition now, regardless of deadline."""
    lobby = force_advance(game_id)
    if lobby is None:
        raise HTTPException(404, "Game not found")
    return lobby_to_public(lobby)


@app.post("/games/{game_id}/tick", response_model=LobbyStateResponse, tags=["Phases"], summary="Advance if due")
def tick_game(game_id: str):
    """Advance only if the deadline passed or everyone acted."""
    if game_store.get(game_id) is None:
        raise HTTPException(404, "Game not found")
    advance_if_due(game_id)
    return lobby_to_public(game_store.get(game_id))


@app.get("/games", response_model=list[str], tags=["Games"], summary="List game IDs")
def list_games_route():
    """List all game IDs."""
    return game_store.list_games()


@app.get("/health", tags=["System"], summary="Health check")
def health():
    return {"status": "ok"}
