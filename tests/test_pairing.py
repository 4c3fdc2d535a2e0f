"""Unit tests for circle-method pairing."""

from itertools import combinations

import pytest

from tournament.pairing import BYE, pair_round, padded, rotate, round_order


def pairs(pairings):
    return [(p.white_id, p.black_id) for p in pairings]


class TestFourPlayers:
    ids = ["p1", "p2", "p3", "p4"]

    def test_round_one(self):
        assert pairs(pair_round(self.ids, 1)) == [("p1", "p4"), ("p2", "p3")]

    def test_round_two(self):
        assert round_order(self.ids, 2) == ["p1", "p3", "p4", "p2"]
        assert pairs(pair_round(self.ids, 2)) == [("p1", "p2"), ("p3", "p4")]

    def test_round_three(self):
        assert pairs(pair_round(self.ids, 3)) == [("p1", "p3"), ("p4", "p2")]

    def test_anchor_never_moves(self):
        for round_number in range(1, 8):
            assert round_order(self.ids, round_number)[0] == "p1"

    def test_input_not_modified(self):
        ids = list(self.ids)
        pair_round(ids, 3)
        assert ids == self.ids


class TestOddCounts:
    def test_bye_added(self):
        assert padded(["a", "b", "c"]) == ["a", "b", "c", BYE]

    def test_bye_rotates_over_everybody(self):
        byes = [
            next(p.bye_player for p in pair_round(["a", "b", "c"], r) if p.is_bye)
            for r in (1, 2, 3)
        ]
        assert byes == ["a", "c", "b"]

    def test_single_player_gets_bye(self):
        pairings = pair_round(["solo"], 1)
        assert len(pairings) == 1
        assert pairings[0].bye_player == "solo"


@pytest.mark.parametrize("count", [2, 3, 4, 5, 6, 7, 8, 9, 10])
def test_full_cycle_meets_everyone_once(count):
    ids = [f"p{i}" for i in range(1, count + 1)]
    rounds = len(padded(ids)) - 1
    seen = []
    byes = []
    for r in range(1, rounds + 1):
        for p in pair_round(ids, r):
            if p.is_bye:
                byes.append(p.bye_player)
            else:
                seen.append(frozenset((p.white_id, p.black_id)))

    assert len(seen) == len(set(seen))
    assert set(seen) == {frozenset(c) for c in combinations(ids, 2)}
    if count % 2:
        assert sorted(byes) == sorted(ids)
    else:
        assert byes == []


def test_rotation_keeps_slot_zero():
    assert rotate(["a", "b", "c", "d"]) == ["a", "c", "d", "b"]
    assert rotate(["a", "b"]) == ["a", "b"]


def test_round_numbers_start_at_one():
    with pytest.raises(ValueError):
        round_order(["a", "b"], 0)


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        pair_round(["a", "a"], 1)
