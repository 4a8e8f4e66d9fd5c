"""Voting processing: tally, bandwagons, hypocrisy, elimination and historical vindication."""

import logging
import math
from dataclasses import replace
from typing import Optional

from session.belief import BeliefEngine
from session.common import apply_vote_history, check_winner, eliminate, make_log, plurality
from session.rules import DiscussionAction, LobbyStatus, LogType, Phase, RumorKind, SKIP
from session.state import DiscussionEvent, Lobby, SuspicionBuilder, VoteRecord

logger = logging.getLogger(__name__)


def valid_votes(lobby: Lobby, votes) -> dict[str, VoteRecord]:
    """Votes cast by living players for a living player or SKIP."""
    return {
        voter_id: record
        for voter_id, record in votes.items()
        if lobby.is_alive(voter_id) and (record.target_id == SKIP or lobby.is_alive(record.target_id))
    }


def tally_votes(votes: dict[str, VoteRecord]) -> Optional[str]:
    """Plurality target; None on a tie, no votes or a SKIP win."""
    return plurality(v.target_id for v in votes.values())


def find_bandwagon_voters(votes: dict[str, VoteRecord], winner_id: str, cutoff: float = 0.6) -> list[str]:
    """Voters for winner_id who came in late: everyone from index floor(n * cutoff) on, by timestamp."""
    voters = sorted(
        ((voter_id, record) for voter_id, record in votes.items() if record.target_id == winner_id),
        key=lambda item: item[1].timestamp,
    )
    cut_off_index = math.floor(len(voters) * cutoff)
    return [voter_id for voter_id, _ in voters[cut_off_index:]]


def hypocrisy_score(actions: list[DiscussionEvent], voted_target: str) -> float:
    """Accusing X then voting Y scores 1.0; defending X then voting X scores 1.5."""
    score = 0.0
    for action in actions:
        if action.type == DiscussionAction.ACCUSE and action.target_id != voted_target:
            score += 1.0
        if action.type == DiscussionAction.DEFEND and action.target_id == voted_target:
            score += 1.5
    return score


def _apply_consistency(
    belief: BeliefEngine,
    matrix: SuspicionBuilder,
    votes: dict[str, VoteRecord],
    events: tuple[DiscussionEvent, ...],
    bandwagon: set[str],
) -> None:
    cfg = belief.config
    by_actor: dict[str, list[DiscussionEvent]] = {}
    for event in events:
        by_actor.setdefault(event.actor_id, []).append(event)

    for observer_id in matrix.observers():
        for voter_id, record in votes.items():
            if voter_id == observer_id or record.target_id == SKIP:
                continue
            actions = by_actor.get(voter_id, [])
            if hypocrisy_score(actions, record.target_id) > 0:
                belief.nudge(matrix, observer_id, voter_id, cfg.weights.hypocrite_penalty, cfg.noise.hypocrite)
            elif actions:
                belief.nudge(matrix, observer_id, voter_id, cfg.weights.consistent_bonus, cfg.noise.hypocrite)
            if voter_id in bandwagon:
                belief.nudge(matrix, observer_id, voter_id, cfg.weights.bandwagon_penalty, cfg.noise.vote)


def process_voting_phase(lobby: Lobby, belief: BeliefEngine, now: float) -> Lobby:
    """Resolve the vote and open the night (or end the game). Returns new lobby."""
    if lobby.game is None:
        return lobby
    game = lobby.game
    cfg = belief.config
    players = dict(lobby.players)
    votes = valid_votes(lobby, game.votes)
    logs = list(game.logs)
    matrix = game.suspicion.evolve()

    # 1. Tally
    eliminated_id = tally_votes(votes)
    logs.append(
        make_log(f"Voting ended. {len(votes)}/{len(lobby.alive_ids())} cast ballots.", LogType.INFO, now)
    )

    # 2. Bandwagon
    bandwagon: list[str] = []
    if eliminated_id:
        bandwagon = find_bandwagon_voters(votes, eliminated_id, cfg.bandwagon_cutoff)

    # 3. Consistency
    _apply_consistency(belief, matrix, votes, game.discussion_events, set(bandwagon))

    # 4. Elimination and historical analysis
    if eliminated_id:
        victim = players[eliminated_id]
        game = eliminate(players, game, eliminated_id)
        role_name = victim.role.value.upper() if victim.role else "UNKNOWN"
        logs.append(make_log(f"{victim.name} was executed. Role: {role_name}", LogType.ALERT, now))
        apply_vote_history(
            belief,
            matrix,
            players,
            dict(game.voting_history),
            victim,
            current_votes={voter_id: record.target_id for voter_id, record in votes.items()},
        )
        logger.info("Vote executed %s (%s)", eliminated_id, role_name)
    else:
        logs.append(make_log("No consensus reached.", LogType.SYSTEM, now))

    # 5. Rumor mill
    living_ids = [pid for pid, p in players.items() if p.is_alive]
    rumor = belief.generate_rumor(matrix, living_ids)
    if rumor:
        name = players[rumor.target_id].name
        if rumor.kind == RumorKind.SUSPICIOUS:
            text = f"Whispers circulate about {name}..."
        else:
            text = f"{name} seems unusually calm, reassuring some."
        logs.append(make_log(text, LogType.INFO, now))

    # 6. Memory drift
    belief.apply_memory_drift(matrix)

    # 7. Bookkeeping
    voting_history = dict(game.voting_history)
    for voter_id, record in votes.items():
        voting_history[voter_id] = tuple(voting_history.get(voter_id, ())) + (record.target_id,)

    suspicion = matrix.freeze()
    winner = check_winner(game.mafia_count, game.villager_count)
    if winner:
        logs.append(make_log(f"Game over. The {winner.value}s win.", LogType.SYSTEM, now))
        logger.info("Game %s over: %s win", lobby.lobby_id, winner.value)

    new_game = replace(
        game,
        phase=Phase.GAME_OVER if winner else Phase.NIGHT,
        phase_start_time=now,
        phase_end_time=now + cfg.durations.night,
        votes={},
        actions={},
        discussion_events=(),
        logs=tuple(logs),
        suspicion=suspicion,
        history=game.history + (suspicion,),
        voting_history=voting_history,
        winner=winner,
    )
    status = LobbyStatus.FINISHED if winner else lobby.status
    return replace(lobby, players=players, status=status, game=new_game)
