"""Game-session engine for Mafia: roles, phase state machine and the suspicion model."""

from session.belief import BeliefEngine, Rumor
from session.config import EngineConfig, load_config
from session.engine import SessionEngine, get_winner
from session.rules import DiscussionAction, LobbyStatus, LogType, Phase, Role, SKIP, Winner
from session.state import (
    DiscussionEvent,
    GameState,
    Lobby,
    LogEntry,
    Player,
    SuspicionMatrix,
    VoteRecord,
    make_lobby,
)

__all__ = [
    "SessionEngine",
    "BeliefEngine",
    "Rumor",
    "EngineConfig",
    "load_config",
    "get_winner",
    "DiscussionAction",
    "LobbyStatus",
    "LogType",
    "Phase",
    "Role",
    "SKIP",
    "Winner",
    "DiscussionEvent",
    "GameState",
    "Lobby",
    "LogEntry",
    "Player",
    "SuspicionMatrix",
    "VoteRecord",
    "make_lobby",
]
