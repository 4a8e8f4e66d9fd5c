"""Tests for vote resolution."""

from dataclasses import replace

import pytest

from conftest import advance_to
from session.rules import SKIP, DiscussionAction, LobbyStatus, LogType, Phase, Role, Winner
from session.state import DiscussionEvent, VoteRecord
from session.voting import find_bandwagon_voters, hypocrisy_score, tally_votes


def _voting(make_game, engine, roles=None):
    return advance_to(engine, make_game(roles), Phase.VOTING)


def _cast(engine, lobby, ballots):
    for i, (voter_id, target_id) in enumerate(ballots.items()):
        lobby = engine.submit_vote(lobby, voter_id, target_id, timestamp=float(i))
    return lobby


def _votes(*targets):
    return {f"v{i}": VoteRecord(target_id=t, timestamp=float(i)) for i, t in enumerate(targets)}


def test_tally_plurality():
    assert tally_votes(_votes("a", "a", "b")) == "a"


def test_tally_tie_is_no_elimination():
    assert tally_votes(_votes("a", "b")) is None
    assert tally_votes(_votes("a", "a", "b", "b", SKIP)) is None


def test_tally_skip_win_is_no_elimination():
    assert tally_votes(_votes(SKIP, SKIP, "a")) is None


def test_tally_no_votes():
    assert tally_votes({}) is None


def test_bandwagon_is_last_forty_percent():
    votes = {
        "e": VoteRecord("x", 5.0),
        "a": VoteRecord("x", 1.0),
        "d": VoteRecord("x", 4.0),
        "other": VoteRecord("y", 0.5),
        "b": VoteRecord("x", 2.0),
        "c": VoteRecord("x", 3.0),
    }
    assert find_bandwagon_voters(votes, "x") == ["d", "e"]


def test_bandwagon_single_voter():
    assert find_bandwagon_voters({"a": VoteRecord("x", 1.0)}, "x") == ["a"]


def test_hypocrisy_score():
    accuse_x = DiscussionEvent("p", "x", DiscussionAction.ACCUSE, 0.0)
    defend_x = DiscussionEvent("p", "x", DiscussionAction.DEFEND, 0.0)
    assert hypocrisy_score([accuse_x], "y") == 1.0
    assert hypocrisy_score([accuse_x], "x") == 0.0
    assert hypocrisy_score([defend_x], "x") == 1.5
    assert hypocrisy_score([accuse_x, defend_x], "x") == 1.5
    assert hypocrisy_score([], "x") == 0.0


def test_no_consensus_opens_night(make_game, engine):
    lobby = _voting(make_game, engine)
    lobby = _cast(engine, lobby, {
        "player_0": "player_3",
        "player_1": "player_3",
        "player_2": "player_4",
        "player_3": "player_4",
        "player_4": SKIP,
    })
    now = lobby.game.phase_end_time
    game = engine.advance(lobby, now=now).game

    texts = [entry.text for entry in game.logs]
    assert "Voting ended. 5/5 cast ballots." in texts
    assert "No consensus reached." in texts
    assert game.phase == Phase.NIGHT
    assert game.round == lobby.game.round
    assert game.phase_end_time == now + 30
    assert game.votes == {} and game.actions == {} and game.discussion_events == ()
    assert game.mafia_count == 1 and game.villager_count == 4


def test_execution_of_innocent(make_game, engine):
    lobby = _voting(make_game, engine)
    lobby = _cast(engine, lobby, {
        "player_0": "player_3",
        "player_1": "player_3",
        "player_2": "player_3",
        "player_4": SKIP,
    })
    result = engine.advance(lobby, now=lobby.game.phase_end_time)
    game = result.game

    assert not result.players["player_3"].is_alive
    assert game.villager_count == 3
    assert game.phase == Phase.NIGHT
    alert = next(e for e in game.logs if e.type == LogType.ALERT)
    assert alert.text == "Dave was executed. Role: VILLAGER"
    assert "Voting ended. 4/5 cast ballots." in [e.text for e in game.logs]
    assert game.voting_history["player_0"] == ("player_3",)
    assert game.voting_history["player_4"] == (SKIP,)
    assert game.voting_history["player_3"] == ()


def test_executing_last_mafia_ends_game(make_game, engine):
    lobby = _voting(make_game, engine)
    lobby = _cast(engine, lobby, {
        "player_1": "player_0",
        "player_2": "player_0",
        "player_3": "player_0",
        "player_4": "player_0",
        "player_0": "player_1",
    })
    result = engine.advance(lobby, now=lobby.game.phase_end_time)
    game = result.game

    assert game.mafia_count == 0
    assert game.winner == Winner.VILLAGER
    assert game.phase == Phase.GAME_OVER
    assert result.status == LobbyStatus.FINISHED
    assert game.logs[-1].text == "Game over. The villagers win."
    assert "Alice was executed. Role: MAFIA" in [e.text for e in game.logs]


def test_vindication_after_mafia_revealed(make_game, engine):
    lobby = _voting(make_game, engine)
    lobby = _cast(engine, lobby, {
        "player_1": "player_0",
        "player_2": "player_0",
        "player_3": "player_0",
        "player_4": SKIP,
    })
    m = engine.advance(lobby, now=lobby.game.phase_end_time).game.suspicion
    # player_1 voted against the mafia, player_4 never did
    assert m.value("player_2", "player_1") < m.value("player_2", "player_4")


def test_mafia_win_at_parity(make_game, engine):
    roles = [Role.MAFIA, Role.VILLAGER, Role.VILLAGER]
    lobby = _voting(make_game, engine, roles)
    lobby = _cast(engine, lobby, {"player_0": "player_1", "player_2": "player_1"})
    result = engine.advance(lobby, now=lobby.game.phase_end_time)
    assert result.game.winner == Winner.MAFIA
    assert result.game.phase == Phase.GAME_OVER
    assert result.game.logs[-1].text == "Game over. The mafias win."


def test_rumor_is_logged(make_game, engine):
    lobby = _voting(make_game, engine)
    game = engine.advance(lobby, now=lobby.game.phase_end_time).game
    assert any(e.text.startswith("Whispers circulate about") for e in game.logs)


def test_bandwagon_and_hypocrisy_penalties(make_game, engine):
    lobby = advance_to(engine, make_game(), Phase.DISCUSSION)
    # player_2 accuses player_4 but will vote player_3
    lobby = engine.add_discussion_event(lobby, "player_2", "player_4", "accuse", timestamp=1.0)
    lobby = engine.advance(lobby, now=lobby.game.phase_end_time)
    lobby = _cast(engine, lobby, {
        "player_1": "player_3",
        "player_2": "player_3",
        "player_4": "player_3",
    })
    before = lobby.game.suspicion
    m = engine.advance(lobby, now=lobby.game.phase_end_time).game.suspicion
    # player_4 voted last for the winner: bandwagon
    assert m.value("player_0", "player_4") > before.value("player_0", "player_4")
    # player_2 voted against their own accusation: hypocrite
    assert m.value("player_0", "player_2") > before.value("player_0", "player_2")


@pytest.mark.parametrize("voter", ["player_9", None])
def test_votes_from_unknown_players_are_ignored(make_game, engine, voter):
    lobby = _voting(make_game, engine)
    assert engine.submit_vote(lobby, voter, "player_1") is lobby


def _after_night_kill(make_game, engine):
    roles = [Role.MAFIA, Role.DOCTOR, Role.DETECTIVE, Role.VILLAGER, Role.VILLAGER, Role.VILLAGER]
    lobby = engine.submit_night_action(make_game(roles), "player_0", "player_5")
    lobby = engine.advance(lobby, now=30.0)
    assert not lobby.players["player_5"].is_alive
    return advance_to(engine, lobby, Phase.VOTING)


def test_votes_for_dead_players_are_rejected(make_game, engine):
    lobby = _after_night_kill(make_game, engine)
    assert engine.submit_vote(lobby, "player_1", "player_5") is lobby


def test_dead_target_never_executed_twice(make_game, engine):
    lobby = _after_night_kill(make_game, engine)
    # stale ballots that reached the buffer without going through submit_vote
    stale = {
        pid: VoteRecord(target_id="player_5", timestamp=float(i))
        for i, pid in enumerate(["player_1", "player_2", "player_3"])
    }
    lobby = replace(lobby, game=replace(lobby.game, votes=stale))
    result = engine.advance(lobby, now=lobby.game.phase_end_time)
    game = result.game

    alive = len(result.alive_ids())
    assert alive == 5
    assert game.mafia_count + game.villager_count == alive
    assert game.villager_count == 4
    assert "No consensus reached." in [e.text for e in game.logs]
    assert "Voting ended. 0/5 cast ballots." in [e.text for e in game.logs]
    assert game.winner is None
