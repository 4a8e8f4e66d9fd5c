"""Role assignment and initial suspicion seeding."""

import logging
from dataclasses import replace
from typing import Optional

from session.belief import BeliefEngine
from session.common import make_log
from session.rules import (
    DETECTIVE_MIN_PLAYERS,
    DOCTOR_MIN_PLAYERS,
    MIN_PLAYERS,
    LobbyStatus,
    LogType,
    Phase,
    Role,
)
from session.state import GameState, Lobby, LogEntry, Player, SuspicionMatrix

logger = logging.getLogger(__name__)


def mafia_count_for(num_players: int) -> int:
    return max(1, num_players // 3)


def build_role_pool(num_players: int) -> list[Role]:
    """Mafia first, then doctor (4+ players), detective (5+), villagers for the rest."""
    roles = [Role.MAFIA] * mafia_count_for(num_players)
    if num_players >= DOCTOR_MIN_PLAYERS:
        roles.append(Role.DOCTOR)
    if num_players >= DETECTIVE_MIN_PLAYERS:
        roles.append(Role.DETECTIVE)
    while len(roles) < num_players:
        roles.append(Role.VILLAGER)
    return roles[:num_players]


def seed_suspicion(players: list[Player], belief: BeliefEngine) -> SuspicionMatrix:
    """Mafia know each other; everyone else starts near the baseline with a little noise."""
    cfg = belief.config
    rows: dict[str, dict[str, float]] = {}
    for observer in players:
        row = rows.setdefault(observer.id, {})
        for target in players:
            if observer.id == target.id:
                continue
            if observer.is_mafia and target.is_mafia:
                # Partners know each other, so this starts below epsilon. Every update clamps
                # into [epsilon, 100-epsilon]; night 1 ambient paranoia lifts it to the floor.
                row[target.id] = cfg.mafia_partner_suspicion
            else:
                row[target.id] = cfg.base_suspicion + belief.rng.uniform(-cfg.startup_noise, cfg.startup_noise)
    return SuspicionMatrix(rows)


def initialize_game(
    lobby: Lobby,
    belief: BeliefEngine,
    now: float,
    role_assignments: Optional[list[Role]] = None,
    intro: Optional[str] = None,
) -> Lobby:
    """
    Assign roles, seed suspicion and open the first night.

    role_assignments, when given, is used in roster order instead of a shuffled
    pool. intro is an optional narrator line appended after the opening log.
    """
    player_ids = list(lobby.players)
    if len(player_ids) < MIN_PLAYERS:
        raise ValueError(f"At least {MIN_PLAYERS} players required")
    if role_assignments is None:
        roles = build_role_pool(len(player_ids))
        belief.rng.shuffle(roles)
    else:
        if len(role_assignments) != len(player_ids):
            raise ValueError("role_assignments must have one role per player")
        roles = list(role_assignments)

    players = {
        pid: replace(lobby.players[pid], role=role, is_alive=True)
        for pid, role in zip(player_ids, roles)
    }
    suspicion = seed_suspicion(list(players.values()), belief)
    mafia_count = sum(1 for role in roles if role == Role.MAFIA)

    logs: list[LogEntry] = [make_log("Night has fallen. Trust no one.", LogType.SYSTEM, now)]
    if intro:
        logs.append(make_log(intro, LogType.INFO, now))

    game = GameState(
        phase=Phase.NIGHT,
        round=1,
        phase_start_time=now,
        phase_end_time=now + belief.config.durations.night,
        logs=tuple(logs),
        suspicion=suspicion,
        history=(suspicion,),
        voting_history={pid: () for pid in player_ids},
        mafia_count=mafia_count,
        villager_count=len(player_ids) - mafia_count,
    )
    logger.info(
        "Game %s started: %d players, %d mafia",
        lobby.lobby_id,
        len(player_ids),
        mafia_count,
    )
    return replace(lobby, players=players, status=LobbyStatus.IN_GAME, game=game)
