"""In-memory session store. Every write to a session runs under that session's lock."""

import threading
from collections.abc import Callable
from typing import Any

from session.engine import SessionEngine
from session.state import Lobby

# game_id -> { lobby, engine, lock, version }
_store: dict[str, dict[str, Any]] = {}
_store_lock = threading.Lock()


def create(game_id: str, lobby: Lobby, engine: SessionEngine) -> None:
    """Register a session with the engine (config + random source) that drives it."""
    with _store_lock:
        _store[game_id] = {
            "lobby": lobby,
            "engine": engine,
            "lock": threading.Lock(),
            "version": 0,
        }


def get(game_id: str) -> Lobby | None:
    entry = _store.get(game_id)
    return entry["lobby"] if entry else None


def get_engine(game_id: str) -> SessionEngine | None:
    entry = _store.get(game_id)
    return entry["engine"] if entry else None


def get_version(game_id: str) -> int | None:
    entry = _store.get(game_id)
    return entry["version"] if entry else None


def transact(game_id: str, fn: Callable[[SessionEngine, Lobby], Lobby]) -> Lobby | None:
    """
    Apply fn(engine, lobby) and store the result, holding the session lock.

    At most one fn runs per session at a time, so an advance can never work
    from a lobby that another advance is about to replace. Returns None for
    unknown ids.
    """
    entry = _store.get(game_id)
    if entry is None:
        return None
    with entry["lock"]:
        lobby = entry["lobby"]
        new_lobby = fn(entry["engine"], lobby)
        if new_lobby is not lobby:
            entry["lobby"] = new_lobby
            entry["version"] += 1
        return new_lobby


def delete(game_id: str) -> None:
    with _store_lock:
        _store.pop(game_id, None)


def list_games() -> list[str]:
    with _store_lock:
        return list(_store.keys())
