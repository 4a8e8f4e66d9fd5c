"""Discussion processing: fold accuse/defend/skip events into every observer's beliefs."""

import logging
from dataclasses import replace

from session.belief import BeliefEngine
from session.common import make_log
from session.rules import DiscussionAction, LogType, Phase
from session.state import DiscussionEvent, Lobby, SuspicionBuilder

logger = logging.getLogger(__name__)


def _valid_events(lobby: Lobby, events: tuple[DiscussionEvent, ...]) -> list[DiscussionEvent]:
    """Events from living actors about known players (skips are kept, they count as activity)."""
    valid = []
    for event in events:
        if not lobby.is_alive(event.actor_id):
            continue
        if event.type != DiscussionAction.SKIP and event.target_id not in lobby.players:
            continue
        valid.append(event)
    return valid


def _apply_lurker_penalty(
    belief: BeliefEngine,
    matrix: SuspicionBuilder,
    lobby: Lobby,
    events: list[DiscussionEvent],
) -> None:
    cfg = belief.config
    active = {e.actor_id for e in events}
    for lurker_id in lobby.alive_ids():
        if lurker_id in active:
            continue
        for observer_id in matrix.observers():
            belief.nudge(matrix, observer_id, lurker_id, cfg.weights.lurker_penalty, cfg.noise.lurker)


def _apply_event(
    belief: BeliefEngine,
    matrix: SuspicionBuilder,
    observer_id: str,
    event: DiscussionEvent,
) -> None:
    """How one observer reads one event."""
    cfg = belief.config
    base = cfg.base_suspicion

    if event.target_id == observer_id:
        # They attacked ME
        if event.type == DiscussionAction.ACCUSE:
            belief.nudge(matrix, observer_id, event.actor_id, cfg.weights.defensive_reaction, cfg.noise.defensive)
        return

    sus_of_actor = matrix.value(observer_id, event.actor_id, base)
    trust_factor = max(cfg.min_trust, (100 - sus_of_actor) / 100)
    sus_of_target = matrix.value(observer_id, event.target_id, base)

    if event.type == DiscussionAction.ACCUSE:
        impact = cfg.weights.action_accuse * trust_factor
        if sus_of_actor > cfg.reverse_psychology_threshold:
            # An accusation from someone I distrust makes me trust the accused more
            impact = -impact * cfg.reverse_psychology_factor
        belief.nudge(matrix, observer_id, event.target_id, impact, cfg.noise.discussion)
    elif event.type == DiscussionAction.DEFEND:
        impact = cfg.weights.action_defend * trust_factor
        belief.nudge(matrix, observer_id, event.target_id, impact, cfg.noise.discussion)
        if sus_of_target > cfg.guilt_threshold:
            belief.nudge(matrix, observer_id, event.actor_id, cfg.weights.guilt_by_association, cfg.noise.guilt)


def process_discussion_phase(lobby: Lobby, belief: BeliefEngine, now: float) -> Lobby:
    """Resolve discussion and open voting. Returns new lobby; does not mutate input."""
    if lobby.game is None:
        return lobby
    game = lobby.game
    events = _valid_events(lobby, game.discussion_events)
    matrix = game.suspicion.evolve()

    # 1. Lurkers
    _apply_lurker_penalty(belief, matrix, lobby, events)

    # 2-3. Trust-weighted influence and defensive reactions
    for observer_id in matrix.observers():
        for event in events:
            if event.actor_id == observer_id or event.type == DiscussionAction.SKIP:
                continue
            _apply_event(belief, matrix, observer_id, event)

    # 4. Memory drift
    belief.apply_memory_drift(matrix)

    suspicion = matrix.freeze()
    logger.debug("Discussion resolved: %d events", len(events))
    new_game = replace(
        game,
        phase=Phase.VOTING,
        phase_start_time=now,
        phase_end_time=now + belief.config.durations.voting,
        votes={},
        logs=game.logs + (make_log("Voting booths are open.", LogType.SYSTEM, now),),
        suspicion=suspicion,
        history=game.history + (suspicion,),
    )
    return replace(lobby, game=new_game)
