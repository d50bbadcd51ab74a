"""
Double elimination bracket generation.

In double elimination:
- Participants must lose twice to be eliminated
- Winners Bracket: participants that haven't lost yet
- Losers Bracket: participants that have lost once
- Grand Finals: winners bracket champion vs losers bracket champion
- Grand Finals Reset: only played if the losers bracket champion wins the Grand Finals
"""
import logging
from typing import List

from .errors import GenerationError, GenerationInvariantViolation, InvalidParticipantCount
from .formulas import (
    drop_round, losers_matches_in_round, losers_rounds, winners_matches_in_round, winners_rounds
)
from .models import (
    Link, Match, MatchGraph, Participant, match_code,
    WINNERS, LOSERS, GRAND_FINALS, GRAND_FINALS_RESET,
    FIRST_EMPTY, CONSOLIDATION_WINNER, DROP_DOWN, SLOT_A, SLOT_B
)
from .processor import resolve_byes
from .seeding import pad_with_byes, seed_pairing
from .validator import validate

logger = logging.getLogger(__name__)


def build(participants: List[Participant]) -> MatchGraph:
    """
    Generate the complete double elimination bracket for the given participants.

    The field is padded with BYEs up to the next power of 2, every match is
    allocated and linked, and the result is validated before being returned.
    First round BYE matches are already resolved in the returned graph.
    """
    _check_participants(participants)
    entrants = pad_with_byes(sorted(participants, key=lambda p: p.seed))
    size = len(entrants)

    winners = _generate_winners_bracket(entrants, size)
    losers = _generate_losers_bracket(size)
    grand_finals = Match(match_code(GRAND_FINALS, 1, 0), GRAND_FINALS, 1, 0)
    grand_finals_reset = Match(match_code(GRAND_FINALS_RESET, 2, 0), GRAND_FINALS_RESET, 2, 0)
    _link_winners_bracket(winners, losers, grand_finals)
    _link_losers_bracket(losers, grand_finals)

    graph = MatchGraph(entrants, winners, losers, grand_finals, grand_finals_reset)
    report = validate(size, graph.matches())
    if not report.valid:
        logger.error("Generated bracket for %d entrants is invalid: %s", size, report.violations)
        raise GenerationInvariantViolation(report.violations)

    resolved = resolve_byes(graph, winners[0])
    logger.info("Built bracket of %d (%d byes, %d matches auto-resolved)",
                size, size - len(participants), len(resolved))
    return graph


def _check_participants(participants: List[Participant]):
    real = [p for p in participants if not p.is_bye]
    if len(real) < 2:
        raise InvalidParticipantCount(
            f"At least 2 participants are required, got {len(real)}"
        )
    ids = [p.id for p in participants]
    if len(set(ids)) != len(ids):
        raise GenerationError("Participant ids must be unique")
    seeds = sorted(p.seed for p in participants)
    if seeds != list(range(1, len(participants) + 1)):
        raise GenerationError(f"Seeds must run from 1 to {len(participants)} without gaps")


def _generate_winners_bracket(entrants: List[Participant], size: int) -> List[List[Match]]:
    """Allocate winners bracket rounds; the first round is filled from the seeding."""
    seed_to_participant = {p.seed: p for p in entrants}
    bracket = []
    for round_num in range(1, winners_rounds(size) + 1):
        round_matches = []
        for order in range(winners_matches_in_round(size, round_num)):
            round_matches.append(Match(match_code(WINNERS, round_num, order), WINNERS, round_num, order))
        bracket.append(round_matches)

    for match, (seed1, seed2) in zip(bracket[0], seed_pairing(size)):
        match.slot_a = seed_to_participant[seed1].id
        match.slot_b = seed_to_participant[seed2].id
    return bracket


def _generate_losers_bracket(size: int) -> List[List[Match]]:
    """
    Allocate losers bracket rounds.

    Odd rounds are consolidation rounds where losers bracket survivors play
    each other; even rounds are merge rounds where they meet the players
    dropping down from the winners bracket.
    """
    bracket = []
    for round_num in range(1, losers_rounds(size) + 1):
        bracket.append([
            Match(match_code(LOSERS, round_num, order), LOSERS, round_num, order)
            for order in range(losers_matches_in_round(size, round_num))
        ])
    return bracket


def _link_winners_bracket(winners: List[List[Match]], losers: List[List[Match]], grand_finals: Match):
    final_round = len(winners)
    for round_matches in winners:
        for match in round_matches:
            if match.round < final_round:
                next_match = winners[match.round][match.order // 2]
                match.on_win = Link(next_match.id, FIRST_EMPTY)
            else:
                match.on_win = Link(grand_finals.id, SLOT_A)
            match.on_loss = _drop_down_link(match, losers, grand_finals)


def _drop_down_link(match: Match, losers: List[List[Match]], grand_finals: Match) -> Link:
    if not losers:
        # Two-player bracket: the winners final loser is the losers bracket champion
        return Link(grand_finals.id, SLOT_B)
    target_round = drop_round(match.round)
    if match.round == 1:
        # Losers of adjacent first round matches meet in losers round 1
        return Link(losers[target_round - 1][match.order // 2].id, FIRST_EMPTY)
    return Link(losers[target_round - 1][match.order].id, DROP_DOWN)


def _link_losers_bracket(losers: List[List[Match]], grand_finals: Match):
    final_round = len(losers)
    for round_matches in losers:
        for match in round_matches:
            if match.round == final_round:
                match.on_win = Link(grand_finals.id, SLOT_B)
            elif match.round % 2 == 1:
                next_match = losers[match.round][match.order]
                match.on_win = Link(next_match.id, CONSOLIDATION_WINNER)
            else:
                next_match = losers[match.round][match.order // 2]
                match.on_win = Link(next_match.id, FIRST_EMPTY)
