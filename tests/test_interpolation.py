import pytest

from coin_arena.shared.protocol import (
    Message, MessageType, WorldSnapshot, PlayerState, CoinState, Vector2
)
from coin_arena.client.interpolation import StateReconciler


def player(pid, x, y, score=0, color="#ff0000"):
    return PlayerState(pid, color, Vector2(x, y), score)


def snapshot(players, version=0, sequence=1, coins=()):
    return WorldSnapshot(
        players={p.id: p for p in players},
        coins=list(coins),
        version=version,
        sequence=sequence,
    )


def pos(entity, which="current"):
    v = entity.current_position if which == "current" else entity.target_position
    return (v.x, v.y)


def test_full_snapshot_starts_at_target():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 10, 20), player("b", 30, 40)],
                            coins=[CoinState("coin1", Vector2(1, 2))]))

    assert list(rec.entities) == ["a", "b"]
    assert pos(rec.entities["a"]) == pos(rec.entities["a"], "target") == (10, 20)
    assert [c.id for c in rec.coins] == ["coin1"]


def test_incremental_only_moves_target():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 10, 20)], sequence=1))
    rec.apply_incremental(snapshot([player("a", 50, 20, score=3, color="#00ff00")], sequence=2))

    a = rec.entities["a"]
    assert pos(a) == (10, 20)
    assert pos(a, "target") == (50, 20)
    assert (a.score, a.color) == (3, "#00ff00")

    rec.step()
    assert pos(a) == pytest.approx((14, 20))


def test_unknown_player_appears_without_teleport():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 10, 20)], sequence=1))
    rec.apply_incremental(snapshot([player("a", 10, 20), player("new", 300, 200)], sequence=2))

    assert pos(rec.entities["new"]) == pos(rec.entities["new"], "target") == (300, 200)


def test_missing_players_are_dropped():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 1, 1), player("b", 2, 2)], sequence=1))
    rec.apply_incremental(snapshot([player("b", 2, 2)], sequence=2))

    assert list(rec.entities) == ["b"]


def test_stale_snapshot_is_discarded():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0)], sequence=1))

    assert rec.apply_incremental(snapshot([player("a", 100, 0)], sequence=5))
    assert not rec.apply_incremental(snapshot([player("a", 40, 0)], sequence=3))
    assert pos(rec.entities["a"], "target") == (100, 0)


def test_old_round_cannot_override_reset():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0, score=4)], version=0, sequence=10))
    rec.apply_full(snapshot([player("a", 300, 300, score=0)], version=1, sequence=12))

    assert not rec.apply_incremental(snapshot([player("a", 5, 5, score=5)], version=0, sequence=11))
    assert rec.entities["a"].score == 0
    assert rec.version == 1


def test_disconnect_notice_wins_over_late_snapshot():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0), player("b", 5, 5)], sequence=1))

    rec.remove_participant("b")
    assert "b" not in rec.entities

    rec.apply_incremental(snapshot([player("a", 0, 0), player("b", 5, 5)], sequence=2))
    assert "b" not in rec.entities

    rec.add_participant(player("b", 5, 5))
    assert "b" not in rec.entities


def test_new_player_notice_does_not_clobber_known_entity():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0)], sequence=1))
    rec.apply_incremental(snapshot([player("a", 100, 0)], sequence=2))

    rec.add_participant(player("a", 100, 0))
    assert pos(rec.entities["a"]) == (0, 0)

    rec.add_participant(player("c", 7, 8))
    assert pos(rec.entities["c"]) == (7, 8)


def test_smoothing_converges_without_overshoot():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0)], sequence=1))
    rec.apply_incremental(snapshot([player("a", 200, -100)], sequence=2))
    a = rec.entities["a"]

    last_gap = 200
    for _ in range(300):
        rec.step()
        gap = 200 - a.current_position.x
        assert 0 < gap < last_gap
        assert -100 <= a.current_position.y <= 0
        last_gap = gap

    assert pos(a) == pytest.approx((200, -100), abs=1e-6)


def test_stalled_network_holds_position():
    rec = StateReconciler()
    rec.step()  # nothing known yet, nothing to do

    rec.apply_full(snapshot([player("a", 42, 24)], sequence=1))
    for _ in range(100):
        rec.step()
    assert rec.get_render_positions() == {"a": Vector2(42, 24)}


@pytest.mark.parametrize("alpha", [0, -0.1, 1.5])
def test_rejects_bad_smoothing(alpha):
    with pytest.raises(ValueError):
        StateReconciler(smoothing=alpha)


def test_apply_message_routes_and_tolerates_garbage():
    rec = StateReconciler()
    full = snapshot([player("a", 1, 2)], sequence=1).to_dict()
    full["player_id"] = "a"

    assert rec.apply_message(Message(MessageType.CURRENT_PLAYERS, full))
    assert rec.apply_message(Message(MessageType.NEW_PLAYER, player("b", 3, 4).to_dict()))
    assert set(rec.entities) == {"a", "b"}

    broken = {"players": {"a": {"id": "a", "color": "#fff"}, "b": player("b", 3, 4).to_dict()},
              "coins": [], "version": 0, "sequence": 2}
    assert rec.apply_message(Message(MessageType.STATE, broken))
    assert set(rec.entities) == {"b"}

    assert rec.apply_message(Message(MessageType.PLAYER_DISCONNECTED, "b"))
    assert rec.entities == {}

    assert not rec.apply_message(Message(MessageType.NEW_PLAYER, {"id": "c"}))
    assert not rec.apply_message(Message(MessageType.STATE, "nonsense"))
    assert not rec.apply_message(Message(MessageType.GAME_OVER, {"winner": "a"}))


@pytest.mark.parametrize("field, value", [("version", "1"), ("sequence", None), ("sequence", 2.5)])
def test_snapshot_with_unorderable_key_is_skipped(field, value):
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0)], sequence=1))

    data = snapshot([player("a", 50, 50)], sequence=2).to_dict()
    data[field] = value
    assert not rec.apply_message(Message(MessageType.STATE, data))
    assert not rec.apply_message(Message(MessageType.GAME_RESET, data))
    assert pos(rec.entities["a"], "target") == (0, 0)

    # later well-formed snapshots still go through
    assert rec.apply_incremental(snapshot([player("a", 60, 60)], sequence=3))


def test_departed_ids_are_forgotten_once_a_newer_snapshot_omits_them():
    rec = StateReconciler()
    rec.apply_full(snapshot([player("a", 0, 0), player("b", 5, 5)], sequence=1))
    rec.remove_participant("b")
    assert "b" in rec.departed

    # taken before the disconnect, still lists b: keep guarding
    rec.apply_incremental(snapshot([player("a", 0, 0), player("b", 5, 5)], sequence=2))
    assert "b" in rec.departed

    rec.apply_incremental(snapshot([player("a", 0, 0)], sequence=3))
    assert rec.departed == {}
    assert "b" not in rec.entities


def test_scoreboard_is_sorted_by_score():
    rec = StateReconciler()
    rec.apply_full(snapshot([
        player("a", 0, 0, score=1),
        player("b", 0, 0, score=4),
        player("c", 0, 0, score=1),
    ]))

    assert rec.scoreboard() == [("b", 4), ("a", 1), ("c", 1)]
