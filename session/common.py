"""Helpers shared by the phase processors."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import replace
from typing import Optional

from session.belief import BeliefEngine
from session.rules import LogType, Role, SKIP, Winner
from session.state import GameState, LogEntry, Player, SuspicionBuilder


def make_log(
    text: str,
    log_type: LogType = LogType.SYSTEM,
    now: Optional[float] = None,
    visible_to: Optional[Iterable[str]] = None,
) -> LogEntry:
    return LogEntry(
        text=text,
        type=log_type,
        visible_to=tuple(visible_to) if visible_to is not None else None,
        timestamp=now,
    )


def plurality(targets: Iterable[str]) -> Optional[str]:
    """
    Return the single most-voted target, or None on a tie, no votes or a SKIP win.
    """
    counts = Counter(targets)
    if not counts:
        return None
    max_votes = max(counts.values())
    leaders = [target for target, count in counts.items() if count == max_votes]
    if len(leaders) != 1 or leaders[0] == SKIP:
        return None
    return leaders[0]


def check_winner(mafia_count: int, villager_count: int) -> Optional[Winner]:
    """Villagers win when no mafia remain; mafia win once they match the town."""
    if mafia_count == 0:
        return Winner.VILLAGER
    if mafia_count >= villager_count:
        return Winner.MAFIA
    return None


def eliminate(
    players: dict[str, Player],
    game: GameState,
    victim_id: str,
) -> GameState:
    """Mark victim dead in players (a fresh dict owned by the caller) and update faction counts."""
    victim = players[victim_id]
    players[victim_id] = replace(victim, is_alive=False)
    if victim.role == Role.MAFIA:
        return replace(game, mafia_count=game.mafia_count - 1)
    return replace(game, villager_count=game.villager_count - 1)


def living_pairs(players: dict[str, Player]) -> Iterable[tuple[str, str]]:
    alive = [pid for pid, p in players.items() if p.is_alive]
    for observer_id in alive:
        for target_id in alive:
            if observer_id != target_id:
                yield observer_id, target_id


def apply_vote_history(
    belief: BeliefEngine,
    matrix: SuspicionBuilder,
    players: dict[str, Player],
    voting_history: dict[str, tuple[str, ...]],
    victim: Player,
    current_votes: Optional[dict[str, str]] = None,
    scale: float = 1.0,
    innocent_only: bool = False,
) -> None:
    """
    Re-judge everyone by how they voted on the now-revealed victim.

    Voting against a revealed mafia vindicates; never voting against one is
    complicity; voting against a revealed innocent is a wrong accusation.
    """
    cfg = belief.config
    is_mafia = victim.role == Role.MAFIA
    if is_mafia and innocent_only:
        return
    alive = [pid for pid, p in players.items() if p.is_alive and pid != victim.id]
    for target_id in alive:
        hits = sum(1 for voted in voting_history.get(target_id, ()) if voted == victim.id)
        if current_votes and current_votes.get(target_id) == victim.id:
            hits += 1
        if is_mafia:
            if hits > 0:
                weight = cfg.weights.vindication_bonus * hits
            else:
                weight = cfg.weights.complicity_penalty
        elif hits > 0:
            weight = cfg.weights.wrong_accusation * hits * scale
        else:
            continue
        for observer_id in alive:
            if observer_id != target_id:
                belief.nudge(matrix, observer_id, target_id, weight, cfg.noise.history)
