"""Phase state machine: which processor runs, action submission and advance triggers."""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Optional

from session.belief import BeliefEngine
from session.config import EngineConfig, default_config
from session.discussion import process_discussion_phase
from session.night import process_night_phase
from session.roles import initialize_game
from session.rules import NIGHT_ROLES, SKIP, DiscussionAction, LogType, Phase, Role, Winner
from session.state import DiscussionEvent, Lobby, LogEntry, VoteRecord
from session.voting import process_voting_phase

logger = logging.getLogger(__name__)

Transition = Callable[[Lobby, BeliefEngine, float], Lobby]

# Phase -> processor that consumes it. GAME_OVER has none.
TRANSITIONS: dict[Phase, Optional[Transition]] = {
    Phase.NIGHT: process_night_phase,
    Phase.DISCUSSION: process_discussion_phase,
    Phase.VOTING: process_voting_phase,
    Phase.GAME_OVER: None,
}


class SessionEngine:
    """
    Entry point for one deployment: holds the config, the random source and the clock.

    Every method takes a Lobby and returns a Lobby; inputs are never mutated,
    and anything the engine cannot use is ignored rather than raised.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or default_config
        self.belief = BeliefEngine(self.config, rng)
        self.clock = clock

    @property
    def rng(self) -> random.Random:
        return self.belief.rng

    def _now(self, now: Optional[float]) -> float:
        return self.clock() if now is None else now

    # --- lifecycle ---

    def initialize_game(
        self,
        lobby: Lobby,
        role_assignments: Optional[list[Role]] = None,
        intro: Optional[str] = None,
        now: Optional[float] = None,
    ) -> Lobby:
        """Assign roles, seed suspicion and open night 1."""
        return initialize_game(lobby, self.belief, self._now(now), role_assignments, intro)

    def advance(self, lobby: Lobby, now: Optional[float] = None) -> Lobby:
        """Run the transition for the current phase. No game or game over: input returned unchanged."""
        if lobby.game is None:
            return lobby
        transition = TRANSITIONS[lobby.game.phase]
        if transition is None:
            return lobby
        before = lobby.game.phase
        new_lobby = transition(lobby, self.belief, self._now(now))
        logger.info(
            "Game %s: %s -> %s (round %d)",
            lobby.lobby_id,
            before.value,
            new_lobby.game.phase.value,
            new_lobby.game.round,
        )
        return new_lobby

    # --- submissions ---

    def submit_vote(
        self,
        lobby: Lobby,
        voter_id: str,
        target_id: str,
        timestamp: Optional[float] = None,
    ) -> Lobby:
        """Record (or overwrite) a living player's vote for a living player or SKIP."""
        game = lobby.game
        if game is None or game.phase != Phase.VOTING or not lobby.is_alive(voter_id):
            return lobby
        if target_id != SKIP and not lobby.is_alive(target_id):
            return lobby
        votes = dict(game.votes)
        votes[voter_id] = VoteRecord(target_id=target_id, timestamp=self._now(timestamp))
        return replace(lobby, game=replace(game, votes=votes))

    def submit_night_action(self, lobby: Lobby, actor_id: str, target_id: str) -> Lobby:
        """Record (or overwrite) a living player's night target."""
        game = lobby.game
        if game is None or game.phase != Phase.NIGHT or not lobby.is_alive(actor_id):
            return lobby
        if target_id != SKIP and target_id not in lobby.players:
            return lobby
        actions = dict(game.actions)
        actions[actor_id] = target_id
        return replace(lobby, game=replace(game, actions=actions))

    def add_discussion_event(
        self,
        lobby: Lobby,
        actor_id: str,
        target_id: str,
        event_type,
        timestamp: Optional[float] = None,
    ) -> Lobby:
        """Append an accuse/defend/skip event; unknown types are ignored."""
        game = lobby.game
        if game is None or game.phase != Phase.DISCUSSION or not lobby.is_alive(actor_id):
            return lobby
        try:
            action = DiscussionAction(event_type)
        except ValueError:
            logger.debug("Ignoring discussion event of unknown type %r", event_type)
            return lobby
        if action != DiscussionAction.SKIP and target_id not in lobby.players:
            return lobby
        event = DiscussionEvent(
            actor_id=actor_id,
            target_id=target_id,
            type=action,
            timestamp=self._now(timestamp),
        )
        return replace(lobby, game=replace(game, discussion_events=game.discussion_events + (event,)))

    def post_chat(self, lobby: Lobby, author_id: str, text: str, now: Optional[float] = None) -> Lobby:
        """Append a public chat line from a living player."""
        game = lobby.game
        text = (text or "").strip()
        if game is None or not text or not lobby.is_alive(author_id):
            return lobby
        entry = LogEntry(
            text=text,
            type=LogType.CHAT,
            timestamp=self._now(now),
            author_name=lobby.players[author_id].name,
        )
        return replace(lobby, game=replace(game, logs=game.logs + (entry,)))

    # --- advance triggers ---

    def is_phase_complete(self, lobby: Lobby) -> bool:
        """True when every player who is expected to act this phase has acted."""
        game = lobby.game
        if game is None or game.is_over:
            return False
        alive = lobby.get_alive_players()
        if game.phase == Phase.VOTING:
            return all(p.id in game.votes for p in alive)
        if game.phase == Phase.DISCUSSION:
            actors = {e.actor_id for e in game.discussion_events}
            return all(p.id in actors for p in alive)
        if game.phase == Phase.NIGHT:
            acting = [p for p in alive if p.role in NIGHT_ROLES]
            return bool(acting) and all(p.id in game.actions for p in acting)
        return False

    def should_advance(self, lobby: Lobby, now: Optional[float] = None) -> bool:
        """Deadline elapsed or everyone acted."""
        game = lobby.game
        if game is None or game.is_over:
            return False
        return self._now(now) >= game.phase_end_time or self.is_phase_complete(lobby)


def get_winner(lobby: Lobby) -> Optional[Winner]:
    """Return the winning faction or None while the game runs."""
    return lobby.game.winner if lobby.game else None
