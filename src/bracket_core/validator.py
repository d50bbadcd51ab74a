"""
Structural validation of a generated bracket.
"""
from typing import Dict, List

from .formulas import is_power_of_two, losers_rounds, losers_matches_in_round
from .models import (
    Match, WINNERS, LOSERS, GRAND_FINALS, GRAND_FINALS_RESET, TERMINAL_SEGMENTS, SLOT_RULES
)


class ValidationReport:
    def __init__(self, violations: List[str]):
        self.violations = violations

    @property
    def valid(self) -> bool:
        return not self.violations

    def __repr__(self):
        return f"ValidationReport(valid={self.valid}, violations={self.violations})"


def validate(participant_count: int, matches: List[Match]) -> ValidationReport:
    """Check match counts and links against the bracket formulas. Reports every violation found."""
    violations = []
    size_ok = participant_count >= 2 and is_power_of_two(participant_count)
    if not size_ok:
        violations.append(f"Participant count {participant_count} is not a power of 2")

    by_id: Dict[str, Match] = {}
    for match in matches:
        if match.id in by_id:
            violations.append(f"Duplicate match id {match.id}")
        by_id[match.id] = match

    winners = [m for m in matches if m.segment == WINNERS]
    losers = [m for m in matches if m.segment == LOSERS]
    if len(winners) != participant_count - 1:
        violations.append(
            f"Winners Bracket should have {participant_count - 1} matches, found {len(winners)}"
        )
    if len(losers) != max(participant_count - 2, 0):
        violations.append(
            f"Losers Bracket should have {max(participant_count - 2, 0)} matches, found {len(losers)}"
        )
    if size_ok:
        for round_num in range(1, losers_rounds(participant_count) + 1):
            expected = losers_matches_in_round(participant_count, round_num)
            found = sum(1 for m in losers if m.round == round_num)
            if found != expected:
                violations.append(
                    f"Losers Round {round_num} should have {expected} matches, found {found}"
                )

    for segment in TERMINAL_SEGMENTS:
        found = sum(1 for m in matches if m.segment == segment)
        if found != 1:
            violations.append(f"Expected exactly one {segment} match, found {found}")

    for match in matches:
        if match.segment in TERMINAL_SEGMENTS:
            if match.on_win is not None or match.on_loss is not None:
                violations.append(f"{match.segment} match {match.id} must not have pre-set targets")
            continue
        violations.extend(_link_violations(match, 'on-win', match.on_win, by_id))
        if match.segment == WINNERS:
            violations.extend(_link_violations(match, 'on-loss', match.on_loss, by_id))
        elif match.on_loss is not None:
            violations.append(f"Losers bracket match {match.id} must not have an on-loss target")

    grand_finals_count = sum(1 for m in matches if m.segment == GRAND_FINALS)
    if grand_finals_count == 1:
        for match in matches:
            if match.segment not in TERMINAL_SEGMENTS and not _reaches_grand_finals(match, by_id):
                violations.append(f"Match {match.id} does not reach Grand Finals")

    return ValidationReport(violations)


def _link_violations(match, kind, link, by_id) -> List[str]:
    if link is None:
        return [f"Match {match.id} has no {kind} target"]
    problems = []
    if link.match_id not in by_id:
        problems.append(f"Match {match.id} {kind} target {link.match_id} does not exist")
    if link.slot_rule not in SLOT_RULES:
        problems.append(f"Match {match.id} {kind} link has unknown slot rule {link.slot_rule!r}")
    target = by_id.get(link.match_id)
    if target is not None and target.segment == GRAND_FINALS_RESET:
        problems.append(f"Match {match.id} {kind} target must not be the Grand Finals Reset")
    return problems


def _reaches_grand_finals(match, by_id) -> bool:
    seen = set()
    current = match
    while current.segment != GRAND_FINALS:
        if current.id in seen or current.on_win is None:
            return False
        seen.add(current.id)
        current = by_id.get(current.on_win.match_id)
        if current is None:
            return False
    return True
