"""Night processing: mafia kill vs doctor save, detective investigation, frame-ups, paranoia."""

import logging
from dataclasses import dataclass, replace
from typing import Optional

from session.belief import BeliefEngine
from session.common import apply_vote_history, check_winner, eliminate, living_pairs, make_log, plurality
from session.rules import Intuition, LobbyStatus, LogType, Phase, Role, SKIP
from session.state import Lobby, LogEntry, Player, SuspicionBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NightActions:
    """Submitted night actions partitioned by role (before resolution)."""

    mafia_target_id: Optional[str] = None
    doctor_id: Optional[str] = None
    doctor_target_id: Optional[str] = None
    detective_id: Optional[str] = None
    detective_target_id: Optional[str] = None


def collect_night_actions(lobby: Lobby, actions) -> NightActions:
    """
    Partition actor -> target submissions by the actor's role.

    Mafia submissions are tallied (a tie or a SKIP win means no kill); the
    doctor and detective keep their last submission. Dead actors and unknown
    targets are ignored.
    """
    mafia_votes: list[str] = []
    doctor_id = doctor_target_id = None
    detective_id = detective_target_id = None
    for actor_id, target_id in actions.items():
        actor = lobby.get_player(actor_id)
        if actor is None or not actor.is_alive:
            continue
        if target_id != SKIP and target_id not in lobby.players:
            continue
        if actor.role == Role.MAFIA:
            mafia_votes.append(target_id)
        elif target_id == SKIP:
            continue
        elif actor.role == Role.DOCTOR:
            doctor_id, doctor_target_id = actor_id, target_id
        elif actor.role == Role.DETECTIVE and target_id != actor_id:
            detective_id, detective_target_id = actor_id, target_id
    return NightActions(
        mafia_target_id=plurality(mafia_votes),
        doctor_id=doctor_id,
        doctor_target_id=doctor_target_id,
        detective_id=detective_id,
        detective_target_id=detective_target_id,
    )


def _frame_scapegoat(
    belief: BeliefEngine,
    matrix: SuspicionBuilder,
    players: dict[str, Player],
    victim_id: str,
    now: float,
) -> Optional[LogEntry]:
    """After a failed hit, push suspicion onto one random living innocent bystander."""
    cfg = belief.config
    candidates = [
        p.id for p in players.values() if p.is_alive and p.role != Role.MAFIA and p.id != victim_id
    ]
    if not candidates:
        return None
    scapegoat_id = belief.rng.choice(candidates)
    for observer_id in matrix.observers():
        belief.nudge(matrix, observer_id, scapegoat_id, cfg.weights.frame_up, cfg.noise.frame_up)
    mafia_ids = [p.id for p in players.values() if p.role == Role.MAFIA]
    logger.debug("Frame-up: %s took the blame for the failed hit on %s", scapegoat_id, victim_id)
    return make_log(
        f"Hit on {players[victim_id].name} failed. Framed {players[scapegoat_id].name}.",
        LogType.CLUE,
        now,
        visible_to=mafia_ids,
    )


def _apply_ambient_paranoia(belief: BeliefEngine, matrix: SuspicionBuilder, players: dict[str, Player]) -> None:
    cfg = belief.config
    spread = cfg.weights.ambient_paranoia
    for observer_id, target_id in living_pairs(players):
        weight = belief.rng.uniform(-spread, spread)
        belief.nudge(matrix, observer_id, target_id, weight, cfg.noise.ambient)


def process_night_phase(lobby: Lobby, belief: BeliefEngine, now: float) -> Lobby:
    """Resolve the night and open discussion (or end the game). Returns new lobby."""
    if lobby.game is None:
        return lobby
    game = lobby.game
    cfg = belief.config
    players = dict(lobby.players)
    logs = list(game.logs)
    matrix = game.suspicion.evolve()
    night = collect_night_actions(lobby, game.actions)
    all_ids = list(players)

    # Doctor bias: protecting someone makes you trust them a little
    if night.doctor_id and night.doctor_target_id:
        belief.nudge(
            matrix, night.doctor_id, night.doctor_target_id,
            cfg.weights.doctor_protect_bias, cfg.noise.doctor_bias,
        )

    # Kill resolution
    victim_id: Optional[str] = None
    doctor_saved = False
    target_id = night.mafia_target_id
    if target_id and lobby.is_alive(target_id):
        if target_id != night.doctor_target_id:
            victim_id = target_id
        else:
            doctor_saved = True
            doctor_id = night.doctor_id
            belief.nudge(matrix, doctor_id, target_id, cfg.weights.doctor_saved_innocent, cfg.noise.doctor_save)
            belief.nudge(matrix, target_id, doctor_id, cfg.weights.guardian_angel_effect, cfg.noise.guardian_angel)
            belief.propagate_intuition(
                matrix, doctor_id, target_id, Intuition.GOOD, all_ids,
                strength=cfg.doctor_save_intuition_strength,
            )
            frame_log = _frame_scapegoat(belief, matrix, players, target_id, now)
            if frame_log:
                logs.append(frame_log)
            logs.append(make_log("A struggle was heard, but the Doctor intervened.", LogType.INFO, now))
            logs.append(
                make_log(f"SUCCESS: Saved {players[target_id].name}.", LogType.CLUE, now, visible_to=[doctor_id])
            )
            logger.debug("Doctor %s saved %s", doctor_id, target_id)

    # Death resolution
    if victim_id:
        victim = players[victim_id]
        game = eliminate(players, game, victim_id)
        role_name = victim.role.value.upper() if victim.role else "UNKNOWN"
        logs.append(make_log(f"{victim.name} was found dead.", LogType.ALERT, now))
        logs.append(make_log(f"Role: {role_name}", LogType.INFO, now))
        apply_vote_history(
            belief,
            matrix,
            players,
            dict(game.voting_history),
            victim,
            scale=cfg.night_death_history_factor,
            innocent_only=True,
        )
        logger.info("Night kill: %s (%s)", victim_id, role_name)
    elif not doctor_saved:
        logs.append(make_log("A quiet night.", LogType.SYSTEM, now))

    # Detective investigation
    if night.detective_id and night.detective_target_id:
        detective_id = night.detective_id
        target = players[night.detective_target_id]
        if target.role == Role.MAFIA:
            weight, direction = cfg.weights.detective_found_mafia, Intuition.BAD
        else:
            weight, direction = cfg.weights.detective_found_innocent, Intuition.GOOD
        new_value = belief.nudge(matrix, detective_id, target.id, weight, cfg.noise.detective)
        belief.propagate_intuition(matrix, detective_id, target.id, direction, all_ids)
        logs.append(
            make_log(
                f"Investigation on {target.name}: Suspicion updated to {round(new_value)}%.",
                LogType.CLUE,
                now,
                visible_to=[detective_id],
            )
        )

    # Ambient paranoia
    _apply_ambient_paranoia(belief, matrix, players)

    suspicion = matrix.freeze()
    next_round = game.round + 1
    winner = check_winner(game.mafia_count, game.villager_count)
    if winner:
        logs.append(make_log(f"Game over. The {winner.value}s win.", LogType.SYSTEM, now))
        logger.info("Game %s over: %s win", lobby.lobby_id, winner.value)
    else:
        logs.append(make_log(f"Day {next_round} begins! Discuss.", LogType.SYSTEM, now))

    new_game = replace(
        game,
        phase=Phase.GAME_OVER if winner else Phase.DISCUSSION,
        round=next_round,
        phase_start_time=now,
        phase_end_time=now + cfg.durations.discussion,
        actions={},
        logs=tuple(logs),
        suspicion=suspicion,
        history=game.history + (suspicion,),
        winner=winner,
    )
    status = LobbyStatus.FINISHED if winner else lobby.status
    return replace(lobby, players=players, status=status, game=new_game)
