"""Pydantic request/response models for the API."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

from session.rules import MIN_PLAYERS
from session.state import Lobby

# Validation constants (no magic numbers in validation)
MAX_PLAYER_NAME_LENGTH = 50
MAX_PLAYERS = 20
MAX_CHAT_LENGTH = 500


class PlayerJoinRequest(BaseModel):
    """One roster slot at game creation."""

    name: str = Field(..., min_length=1, max_length=MAX_PLAYER_NAME_LENGTH)


class GameCreateRequest(BaseModel):
    """Body for POST /games: roster, optional seed, config overrides and narration."""

    players: list[PlayerJoinRequest] = Field(..., min_length=MIN_PLAYERS, max_length=MAX_PLAYERS)
    host_index: int = Field(default=0, ge=0)
    seed: int | None = Field(default=None, description="Seed for the session's random source (reproducible games)")
    config: dict[str, Any] | None = Field(
        default=None,
        description="Overrides for EngineConfig (weights, noise, durations, ...). Omitted keys use defaults.",
    )
    narrate: bool = Field(default=False, description="Ask the narrator for an intro line before the first night")

    @model_validator(mode="after")
    def host_in_roster(self) -> "GameCreateRequest":
        if self.host_index >= len(self.players):
            raise ValueError(f"host_index ({self.host_index}) must be < number of players ({len(self.players)})")
        return self


class VoteRequest(BaseModel):
    voter_id: str
    target_id: str = Field(..., description="Player id or 'SKIP'")
    timestamp: float | None = None


class NightActionRequest(BaseModel):
    actor_id: str
    target_id: str = Field(..., description="Player id or 'SKIP'")


class DiscussionEventRequest(BaseModel):
    actor_id: str
    target_id: str
    type: str = Field(..., description="accuse, defend or skip; anything else is ignored")
    timestamp: float | None = None


class ChatRequest(BaseModel):
    author_id: str
    text: str = Field(..., min_length=1, max_length=MAX_CHAT_LENGTH)


class PlayerPublic(BaseModel):
    id: str
    name: str
    is_host: bool
    is_alive: bool
    role: str | None = None


class LogPublic(BaseModel):
    text: str
    type: str
    visible_to: list[str] | None = Field(default=None, description="Absent means public")
    timestamp: float | None = None
    author_name: str | None = None


class VotePublic(BaseModel):
    target_id: str
    timestamp: float


class DiscussionEventPublic(BaseModel):
    actor_id: str
    target_id: str
    type: str
    timestamp: float


class GamePublic(BaseModel):
    """Full GameState as re-emitted after every transition."""

    phase: str
    round: int
    phase_start_time: float
    phase_end_time: float
    votes: dict[str, VotePublic]
    actions: dict[str, str]
    discussion_events: list[DiscussionEventPublic]
    logs: list[LogPublic]
    suspicion: dict[str, dict[str, float]]
    history: list[dict[str, dict[str, float]]]
    voting_history: dict[str, list[str]]
    mafia_count: int
    villager_count: int
    winner: str | None = None


class LobbyStateResponse(BaseModel):
    """Snapshot for GET /games/{id}: roster plus the running game."""

    game_id: str
    status: str
    host_id: str | None
    players: list[PlayerPublic]
    game: GamePublic | None = None


def lobby_to_public(lobby: Lobby, include_history: bool = True) -> LobbyStateResponse:
    """Build the snapshot. Nothing is hidden here; delivery filtering belongs to the bridge layer."""
    players = [
        PlayerPublic(
            id=p.id,
            name=p.name,
            is_host=p.is_host,
            is_alive=p.is_alive,
            role=p.role.value if p.role else None,
        )
        for p in lobby.players.values()
    ]
    game_public = None
    game = lobby.game
    if game is not None:
        game_public = GamePublic(
            phase=game.phase.value,
            round=game.round,
            phase_start_time=game.phase_start_time,
            phase_end_time=game.phase_end_time,
            votes={vid: VotePublic(target_id=v.target_id, timestamp=v.timestamp) for vid, v in game.votes.items()},
            actions=dict(game.actions),
            discussion_events=[
                DiscussionEventPublic(
                    actor_id=e.actor_id,
                    target_id=e.target_id,
                    type=e.type.value,
                    timestamp=e.timestamp,
                )
                for e in game.discussion_events
            ],
            logs=[
                LogPublic(
                    text=entry.text,
                    type=entry.type.value,
                    visible_to=list(entry.visible_to) if entry.visible_to is not None else None,
                    timestamp=entry.timestamp,
                    author_name=entry.author_name,
                )
                for entry in game.logs
            ],
            suspicion=game.suspicion.to_dict(),
            history=[snapshot.to_dict() for snapshot in game.history] if include_history else [],
            voting_history={pid: list(targets) for pid, targets in game.voting_history.items()},
            mafia_count=game.mafia_count,
            villager_count=game.villager_count,
            winner=game.winner.value if game.winner else None,
        )
    return LobbyStateResponse(
        game_id=lobby.lobby_id,
        status=lobby.status.value,
        host_id=lobby.host_id,
        players=players,
        game=game_public,
    )
