"""
Tests for first round seeding and BYE padding.
"""
import pytest

from bracket_core.generator import build
from bracket_core.seeding import pad_with_byes, seed_pairing
from bracket_helpers import make_players


class TestSeedPairing:
    """Tests for seed_pairing."""

    def test_four(self):
        assert seed_pairing(4) == [(1, 4), (2, 3)]

    def test_eight_in_order(self):
        """Pairs come out in seed order of the higher seed."""
        assert seed_pairing(8) == [(1, 8), (2, 7), (3, 6), (4, 5)]

    @pytest.mark.parametrize('size', [2, 4, 8, 16, 32, 64])
    def test_pairs_sum_to_size_plus_one(self, size):
        pairs = seed_pairing(size)
        assert len(pairs) == size // 2
        assert all(a + b == size + 1 for a, b in pairs)
        assert sorted(s for pair in pairs for s in pair) == list(range(1, size + 1))

    def test_not_power_of_two(self):
        with pytest.raises(ValueError):
            seed_pairing(6)

    def test_first_round_of_built_bracket(self, four_players):
        """A plays D and B plays C."""
        graph = build(four_players)
        names = [
            (graph.participants[m.slot_a].name, graph.participants[m.slot_b].name)
            for m in graph.winners[0]
        ]
        assert names == [('A', 'D'), ('B', 'C')]


class TestPadWithByes:
    """Tests for pad_with_byes."""

    def test_pads_to_next_power_of_two(self):
        padded = pad_with_byes(make_players(5))
        assert len(padded) == 8
        byes = [p for p in padded if p.is_bye]
        assert [b.id for b in byes] == ['bye-1', 'bye-2', 'bye-3']
        assert [b.name for b in byes] == ['BYE 1', 'BYE 2', 'BYE 3']
        assert [b.seed for b in byes] == [6, 7, 8]

    def test_full_field_unchanged(self):
        players = make_players(8)
        assert pad_with_byes(players) == players

    def test_input_not_modified(self):
        players = make_players(3)
        pad_with_byes(players)
        assert len(players) == 3

    def test_byes_face_top_seeds(self):
        """With 6 players, seeds 1 and 2 get the BYEs."""
        graph = build(make_players(6))
        first_round = {m.slot_a: m.slot_b for m in graph.winners[0]}
        assert graph.is_bye(first_round['p1'])
        assert graph.is_bye(first_round['p2'])
        assert not graph.is_bye(first_round['p3'])
