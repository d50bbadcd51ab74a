"""
Tests for double elimination bracket generation.
"""
import pytest

from bracket_core import generator
from bracket_core.errors import GenerationError, GenerationInvariantViolation, InvalidParticipantCount
from bracket_core.generator import build
from bracket_core.models import (
    Participant, Link, READY, PENDING, WINNERS, LOSERS,
    FIRST_EMPTY, CONSOLIDATION_WINNER, DROP_DOWN, SLOT_A, SLOT_B
)
from bracket_core.validator import ValidationReport, validate
from bracket_helpers import make_players


class TestMatchCounts:
    """Generated brackets have the right shape for every size."""

    @pytest.mark.parametrize('count', [2, 4, 8, 16, 32, 64])
    def test_counts(self, count):
        graph = build(make_players(count))
        winners = [m for m in graph.matches() if m.segment == WINNERS]
        losers = [m for m in graph.matches() if m.segment == LOSERS]
        assert len(winners) == count - 1
        assert len(losers) == count - 2
        assert len(graph.matches()) == 2 * count - 1

    @pytest.mark.parametrize('count', [2, 3, 4, 5, 6, 7, 8, 9, 13, 16, 17, 31, 32, 33, 64])
    def test_validator_accepts_generated(self, count):
        graph = build(make_players(count))
        report = validate(graph.size, graph.matches())
        assert report.valid, report.violations

    def test_match_ids(self, eight_players):
        graph = build(eight_players)
        assert [m.id for m in graph.winners[0]] == ['W1-M1', 'W1-M2', 'W1-M3', 'W1-M4']
        assert [m.id for m in graph.losers[1]] == ['L2-M1', 'L2-M2']
        assert graph.grand_finals.id == 'GF'
        assert graph.grand_finals_reset.id == 'GFR'

    def test_positional_lookup(self, eight_players):
        graph = build(eight_players)
        assert graph.at(LOSERS, 3, 0) is graph.get('L3-M1')
        with pytest.raises(KeyError):
            graph.at(WINNERS, 2, 2)


class TestLinks:
    """Links for an 8 player bracket."""

    @pytest.fixture
    def graph(self, eight_players):
        return build(eight_players)

    def test_winners_advance(self, graph):
        assert graph.get('W1-M1').on_win == Link('W2-M1', FIRST_EMPTY)
        assert graph.get('W1-M4').on_win == Link('W2-M2', FIRST_EMPTY)
        assert graph.get('W2-M2').on_win == Link('W3-M1', FIRST_EMPTY)

    def test_winners_final_to_grand_finals_slot_a(self, graph):
        assert graph.get('W3-M1').on_win == Link('GF', SLOT_A)

    def test_first_round_losers_pair_off(self, graph):
        assert graph.get('W1-M1').on_loss == Link('L1-M1', FIRST_EMPTY)
        assert graph.get('W1-M2').on_loss == Link('L1-M1', FIRST_EMPTY)
        assert graph.get('W1-M3').on_loss == Link('L1-M2', FIRST_EMPTY)
        assert graph.get('W1-M4').on_loss == Link('L1-M2', FIRST_EMPTY)

    def test_later_losers_drop_into_merge_rounds(self, graph):
        assert graph.get('W2-M1').on_loss == Link('L2-M1', DROP_DOWN)
        assert graph.get('W2-M2').on_loss == Link('L2-M2', DROP_DOWN)
        assert graph.get('W3-M1').on_loss == Link('L4-M1', DROP_DOWN)

    def test_losers_bracket_links(self, graph):
        assert graph.get('L1-M2').on_win == Link('L2-M2', CONSOLIDATION_WINNER)
        assert graph.get('L2-M1').on_win == Link('L3-M1', FIRST_EMPTY)
        assert graph.get('L2-M2').on_win == Link('L3-M1', FIRST_EMPTY)
        assert graph.get('L3-M1').on_win == Link('L4-M1', CONSOLIDATION_WINNER)
        assert graph.get('L4-M1').on_win == Link('GF', SLOT_B)

    def test_losers_matches_have_no_loss_target(self, graph):
        assert all(m.on_loss is None for round_matches in graph.losers for m in round_matches)

    def test_terminal_matches_have_no_targets(self, graph):
        for match in (graph.grand_finals, graph.grand_finals_reset):
            assert match.on_win is None
            assert match.on_loss is None

    def test_two_players(self):
        """No losers bracket: the winners final loser goes straight to the Grand Finals."""
        graph = build(make_players(2))
        assert graph.losers == []
        match = graph.get('W1-M1')
        assert match.on_win == Link('GF', SLOT_A)
        assert match.on_loss == Link('GF', SLOT_B)


class TestInitialState:
    """Slots and states right after generation."""

    def test_full_field(self, four_players):
        graph = build(four_players)
        assert [m.state for m in graph.winners[0]] == [READY, READY]
        assert graph.get('W2-M1').state == PENDING
        assert graph.grand_finals.state == PENDING
        assert all(m.winner is None for m in graph.matches())

    def test_three_players_bye(self):
        """Seed 1 skips round one; the BYE drops into the losers bracket."""
        graph = build(make_players(3))
        assert graph.get('W1-M1').winner == 'p1'
        assert graph.get('W2-M1').slot_a == 'p1'
        assert graph.get('L1-M1').slot_a == 'bye-1'
        assert graph.get('W1-M2').state == READY

    def test_five_players_cascade(self):
        """BYE vs BYE in losers round 1 resolves on its own."""
        graph = build(make_players(5))
        assert [m.winner for m in graph.winners[0]] == ['p1', 'p2', 'p3', None]
        assert graph.get('W2-M1').state == READY
        losers_first = graph.get('L1-M1')
        assert (losers_first.slot_a, losers_first.slot_b) == ('bye-3', 'bye-2')
        assert losers_first.winner == 'bye-3'
        assert graph.get('L2-M1').slot_a == 'bye-3'
        assert graph.get('L1-M2').slot_a == 'bye-1'
        assert graph.get('L1-M2').winner is None

    def test_byes_added_to_participants(self):
        graph = build(make_players(5))
        assert graph.size == 8
        assert sum(1 for p in graph.participants.values() if p.is_bye) == 3

    def test_unordered_input(self):
        players = list(reversed(make_players(4)))
        graph = build(players)
        assert graph.get('W1-M1').slot_a == 'p1'
        assert graph.get('W1-M1').slot_b == 'p4'


class TestRejectedInput:
    """Invalid participant lists."""

    def test_empty(self):
        with pytest.raises(InvalidParticipantCount):
            build([])

    def test_single_player(self):
        with pytest.raises(InvalidParticipantCount):
            build(make_players(1))

    def test_byes_do_not_count(self):
        players = make_players(1) + [Participant('bye-1', 'BYE 1', 2, is_bye=True)]
        with pytest.raises(InvalidParticipantCount):
            build(players)

    def test_duplicate_ids(self):
        players = make_players(3)
        players[2].id = 'p1'
        with pytest.raises(GenerationError):
            build(players)

    def test_seed_gap(self):
        players = make_players(3)
        players[2].seed = 7
        with pytest.raises(GenerationError):
            build(players)

    def test_invariant_violation_surfaces(self, monkeypatch):
        """A bracket the validator rejects is never returned."""
        monkeypatch.setattr(generator, 'validate', lambda count, matches: ValidationReport(['broken link']))
        with pytest.raises(GenerationInvariantViolation) as exc_info:
            build(make_players(4))
        assert exc_info.value.violations == ['broken link']
