"""API route tests."""

import threading
import time
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from api import game_store
from api.driver import advance_if_due, force_advance, tick
from api.main import app
from conftest import NAMES, MidpointRandom
from session.engine import SessionEngine
from session.state import make_lobby

client = TestClient(app)


def _players(n=5):
    return [{"name": name} for name in NAMES[:n]]


def _create(**body) -> str:
    r = client.post("/games", json={"players": _players(), "seed": 7, **body})
    assert r.status_code == 200
    return r.json()["game_id"]


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_create_game():
    gid = _create()
    r = client.get(f"/games/{gid}")
    assert r.status_code == 200
    state = r.json()
    assert state["game_id"] == gid
    assert state["status"] == "in-game"
    assert state["host_id"] == "player_0"
    assert len(state["players"]) == 5
    assert all(p["role"] for p in state["players"])
    game = state["game"]
    assert game["phase"] == "night"
    assert game["round"] == 1
    assert game["logs"][0]["text"] == "Night has fallen. Trust no one."
    assert game["logs"][0]["visible_to"] is None
    assert len(game["history"]) == 1
    assert set(game["suspicion"]) == {p["id"] for p in state["players"]}
    assert gid in client.get("/games").json()


def test_get_without_history():
    gid = _create()
    r = client.get(f"/games/{gid}", params={"include_history": False})
    assert r.json()["game"]["history"] == []


def test_create_game_validation():
    r = client.post("/games", json={"players": _players(2)})
    assert r.status_code == 422  # too few players
    r = client.post("/games", json={"players": _players(3), "host_index": 5})
    assert r.status_code == 422
    r = client.post("/games", json={"players": [{"name": ""}] * 3})
    assert r.status_code == 422
    r = client.post("/games", json={"players": _players(3), "config": {"epsilon": 80}})
    assert r.status_code == 422
    r = client.post("/games", json={"players": _players(3), "config": {"no_such_knob": 1}})
    assert r.status_code == 422


def test_config_overrides_apply():
    gid = _create(config={"durations": {"night": 12.0}})
    game = client.get(f"/games/{gid}").json()["game"]
    assert game["phase_end_time"] - game["phase_start_time"] == pytest.approx(12.0)


def test_unknown_game_404():
    assert client.get("/games/nope").status_code == 404
    assert client.post("/games/nope/advance").status_code == 404
    assert client.post("/games/nope/tick").status_code == 404
    r = client.post("/games/nope/votes", json={"voter_id": "player_0", "target_id": "SKIP"})
    assert r.status_code == 404


def test_phase_cycle_and_vote():
    gid = _create()
    assert client.post(f"/games/{gid}/advance").json()["game"]["phase"] == "discussion"

    r = client.post(
        f"/games/{gid}/discussion",
        json={"actor_id": "player_1", "target_id": "player_0", "type": "accuse"},
    )
    assert r.status_code == 200
    assert r.json()["game"]["discussion_events"][0]["type"] == "accuse"

    r = client.post(
        f"/games/{gid}/discussion",
        json={"actor_id": "player_1", "target_id": "player_0", "type": "wink"},
    )
    assert r.status_code == 200
    assert len(r.json()["game"]["discussion_events"]) == 1

    assert client.post(f"/games/{gid}/advance").json()["game"]["phase"] == "voting"

    for pid in ["player_1", "player_2", "player_3", "player_4"]:
        r = client.post(f"/games/{gid}/votes", json={"voter_id": pid, "target_id": "player_0"})
        assert r.status_code == 200
    assert len(r.json()["game"]["votes"]) == 4

    state = client.post(f"/games/{gid}/advance").json()
    player_0 = next(p for p in state["players"] if p["id"] == "player_0")
    assert player_0["is_alive"] is False
    assert state["game"]["voting_history"]["player_1"] == ["player_0"]
    assert state["game"]["phase"] in ("night", "game-over")


def test_night_action_and_chat():
    gid = _create()
    r = client.post(f"/games/{gid}/actions", json={"actor_id": "player_1", "target_id": "player_2"})
    assert r.status_code == 200
    assert r.json()["game"]["actions"] == {"player_1": "player_2"}

    r = client.post(f"/games/{gid}/chat", json={"author_id": "player_1", "text": "Good evening."})
    log = r.json()["game"]["logs"][-1]
    assert log["type"] == "chat"
    assert log["author_name"] == "Bob"


def test_tick_before_deadline_does_nothing():
    gid = _create()
    r = client.post(f"/games/{gid}/tick")
    assert r.status_code == 200
    assert r.json()["game"]["phase"] == "night"


def test_driver_advances_due_sessions():
    gid = _create()
    assert not advance_if_due(gid, now=time.time())
    assert advance_if_due(gid, now=time.time() + 60)
    assert game_store.get(gid).game.phase.value == "discussion"
    assert gid in tick(now=time.time() + 10_000)


def test_narrated_intro():
    with patch("api.main.generate_intro", return_value="Welcome to Palermo.") as intro:
        gid = _create(narrate=True)
    intro.assert_called_once_with(NAMES[:5])
    logs = client.get(f"/games/{gid}").json()["game"]["logs"]
    assert logs[1]["text"] == "Welcome to Palermo."
    assert logs[1]["type"] == "info"


def test_store_transact_bumps_version_on_change():
    engine = SessionEngine(rng=MidpointRandom(3))
    lobby = engine.initialize_game(make_lobby("store-test", NAMES[:3]), now=0.0)
    game_store.create("store-test", lobby, engine)
    try:
        assert game_store.get_version("store-test") == 0
        game_store.transact("store-test", lambda e, l: l)
        assert game_store.get_version("store-test") == 0
        game_store.transact("store-test", lambda e, l: e.post_chat(l, "player_0", "hi", now=1.0))
        assert game_store.get_version("store-test") == 1
        assert game_store.get_engine("store-test") is engine
        assert game_store.transact("missing", lambda e, l: l) is None
        assert game_store.get_version("missing") is None
    finally:
        game_store.delete("store-test")
    assert game_store.get("store-test") is None


def _register(game_id: str) -> None:
    engine = SessionEngine(rng=MidpointRandom(3))
    lobby = engine.initialize_game(make_lobby(game_id, NAMES[:5]), now=0.0)
    game_store.create(game_id, lobby, engine)


def _run_threads(n, target):
    barrier = threading.Barrier(n)
    results = []

    def worker():
        barrier.wait()
        results.append(target())

    threads = [threading.Thread(target=worker) for _ in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return results


def test_concurrent_force_advance_loses_no_transition():
    n = 12
    _register("concurrent-force")
    try:
        _run_threads(n, lambda: force_advance("concurrent-force", now=100.0))
        game = game_store.get("concurrent-force").game
        assert game_store.get_version("concurrent-force") == n
        assert len(game.history) == n + 1
        # no actions: night -> discussion -> voting repeats, round bumps after each night
        assert game.round == 1 + n // 3
        assert game.phase.value == "night"
    finally:
        game_store.delete("concurrent-force")


def test_concurrent_advance_if_due_advances_once():
    n = 12
    _register("concurrent-due")
    try:
        results = _run_threads(n, lambda: advance_if_due("concurrent-due", now=30.0))
        assert results.count(True) == 1
        assert game_store.get_version("concurrent-due") == 1
        game = game_store.get("concurrent-due").game
        assert game.phase.value == "discussion"
        assert len(game.history) == 2
    finally:
        game_store.delete("concurrent-due")
