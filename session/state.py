"""Session state types for the Mafia engine.

Every type here is treated as an immutable value: transitions build new
instances with ``dataclasses.replace`` instead of mutating the ones they
were given, so a stored snapshot is never changed behind a reader's back.
"""

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from session.rules import (
    BASE_SUSPICION,
    DiscussionAction,
    LobbyStatus,
    LogType,
    Phase,
    Role,
    Winner,
)


def coerce_suspicion(value, default: float = BASE_SUSPICION) -> float:
    """Return value as a float, or default when it is missing, non-numeric or NaN."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if math.isnan(value):
        return default
    return float(value)


def _is_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float))


@dataclass(frozen=True)
class Player:
    """A participant in the session."""

    id: str
    name: str
    is_host: bool = False
    is_alive: bool = True
    role: Optional[Role] = None

    @property
    def is_mafia(self) -> bool:
        return self.role == Role.MAFIA


@dataclass(frozen=True)
class VoteRecord:
    """One player's vote during the voting phase."""

    target_id: str
    timestamp: float


@dataclass(frozen=True)
class DiscussionEvent:
    """One accuse/defend/skip during discussion."""

    actor_id: str
    target_id: str
    type: DiscussionAction
    timestamp: float


@dataclass(frozen=True)
class LogEntry:
    """A game log line. visible_to=None means public."""

    text: str
    type: LogType = LogType.SYSTEM
    visible_to: Optional[tuple[str, ...]] = None
    timestamp: Optional[float] = None
    author_name: Optional[str] = None

    @property
    def is_public(self) -> bool:
        return self.visible_to is None


class SuspicionMatrix(Mapping):
    """
    Immutable observer -> target -> suspicion (percent) matrix.

    Rows are read-only and shared between matrices: a matrix produced by
    ``evolve().freeze()`` only owns the rows that were written to, so keeping
    one matrix per phase in the history costs little for unchanged rows.

    Self-entries and non-numeric values are dropped on construction; reads of
    a missing or NaN cell return the caller's default.
    """

    __slots__ = ("_rows",)

    def __init__(self, rows: Optional[Mapping[str, Mapping[str, float]]] = None):
        self._rows: dict[str, Mapping[str, float]] = {
            observer: MappingProxyType(
                {
                    target: float(v)
                    for target, v in row.items()
                    if target != observer and _is_number(v)
                }
            )
            for observer, row in (rows or {}).items()
        }

    @classmethod
    def _from_rows(cls, rows: dict[str, Mapping[str, float]]) -> "SuspicionMatrix":
        matrix = cls.__new__(cls)
        matrix._rows = rows
        return matrix

    def __getitem__(self, observer: str) -> Mapping[str, float]:
        return self._rows[observer]

    def __iter__(self) -> Iterator[str]:
        return iter(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __repr__(self) -> str:
        return f"SuspicionMatrix({self.to_dict()!r})"

    def value(self, observer: str, target: str, default: float = BASE_SUSPICION) -> Optional[float]:
        """Suspicion observer holds of target; None for self, default for anything missing."""
        if observer == target:
            return None
        row = self._rows.get(observer)
        return coerce_suspicion(row.get(target) if row is not None else None, default)

    def shares_row_with(self, other: "SuspicionMatrix", observer: str) -> bool:
        """True when both matrices hold the very same row object for observer."""
        return observer in self._rows and self._rows[observer] is other._rows.get(observer)

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Plain nested dict copy, for serialization."""
        return {observer: dict(row) for observer, row in self._rows.items()}

    def evolve(self) -> "SuspicionBuilder":
        """Return a copy-on-write editor seeded with this matrix."""
        return SuspicionBuilder(self)


class SuspicionBuilder:
    """
    Copy-on-write editor for a SuspicionMatrix.

    A row is copied the first time it is written; freeze() publishes the
    written rows and shares every other row with the source matrix.
    """

    def __init__(self, base: Optional[SuspicionMatrix] = None):
        self._rows: dict[str, Mapping[str, float]] = dict(base._rows) if base is not None else {}
        self._dirty: dict[str, dict[str, float]] = {}

    def _row(self, observer: str) -> Optional[Mapping[str, float]]:
        row = self._dirty.get(observer)
        if row is None:
            row = self._rows.get(observer)
        return row

    def value(self, observer: str, target: str, default: float = BASE_SUSPICION) -> Optional[float]:
        if observer == target:
            return None
        row = self._row(observer)
        return coerce_suspicion(row.get(target) if row is not None else None, default)

    def set(self, observer: str, target: str, value: float) -> None:
        """Write one value; self-pairs are never stored."""
        if observer == target:
            return
        row = self._dirty.get(observer)
        if row is None:
            row = dict(self._rows.get(observer, {}))
            self._dirty[observer] = row
            self._rows.setdefault(observer, MappingProxyType({}))
        row[target] = float(value)

    def observers(self) -> list[str]:
        return list(self._rows)

    def targets(self, observer: str) -> list[str]:
        row = self._row(observer)
        return list(row) if row is not None else []

    def freeze(self) -> SuspicionMatrix:
        """Publish the current values as a new immutable matrix."""
        for observer, row in self._dirty.items():
            self._rows[observer] = MappingProxyType(row)
        self._dirty = {}
        return SuspicionMatrix._from_rows(dict(self._rows))


@dataclass(frozen=True)
class GameState:
    """Full state of one running game. Collections are never mutated in place."""

    phase: Phase = Phase.NIGHT
    round: int = 1
    phase_start_time: float = 0.0
    phase_end_time: float = 0.0
    votes: Mapping[str, VoteRecord] = field(default_factory=dict)
    actions: Mapping[str, str] = field(default_factory=dict)  # night: actor_id -> target_id
    discussion_events: tuple[DiscussionEvent, ...] = ()
    logs: tuple[LogEntry, ...] = ()
    suspicion: SuspicionMatrix = field(default_factory=SuspicionMatrix)
    history: tuple[SuspicionMatrix, ...] = ()  # one snapshot per phase transition
    voting_history: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    mafia_count: int = 0
    villager_count: int = 0
    winner: Optional[Winner] = None

    @property
    def is_over(self) -> bool:
        return self.phase == Phase.GAME_OVER


@dataclass(frozen=True)
class Lobby:
    """A session: the roster plus the optional running game."""

    lobby_id: str
    players: Mapping[str, Player] = field(default_factory=dict)
    host_id: Optional[str] = None
    status: LobbyStatus = LobbyStatus.WAITING
    game: Optional[GameState] = None

    def get_player(self, player_id: str) -> Optional[Player]:
        """Return player by id or None."""
        return self.players.get(player_id)

    def get_alive_players(self) -> list[Player]:
        """Return list of alive players."""
        return [p for p in self.players.values() if p.is_alive]

    def alive_ids(self) -> list[str]:
        return [p.id for p in self.players.values() if p.is_alive]

    def get_players_by_role(self, role: Role) -> list[Player]:
        """Return all players (alive or dead) with the given role."""
        return [p for p in self.players.values() if p.role == role]

    def is_alive(self, player_id: str) -> bool:
        player = self.players.get(player_id)
        return player is not None and player.is_alive


def make_lobby(lobby_id: str, names: list[str], host_index: int = 0) -> Lobby:
    """Build a waiting lobby with ids player_0..player_n-1 (first name hosts by default)."""
    players = {}
    for i, name in enumerate(names):
        pid = f"player_{i}"
        players[pid] = Player(id=pid, name=name, is_host=(i == host_index))
    host_id = f"player_{host_index}" if names else None
    return Lobby(lobby_id=lobby_id, players=players, host_id=host_id)
