"""
Result processing for double elimination brackets.

Match states: Pending (a slot is empty) -> Ready (both slots filled)
-> Completed (winner recorded). Completed is terminal.

Reporting a result fills the downstream slots named by the match's links,
then auto-resolves any match that became Ready against a BYE, repeating
until nothing changes. The Grand Finals applies the bracket reset rule:
if the losers bracket champion wins, both finalists meet again.
"""
import logging
from collections import deque
from datetime import datetime
from typing import List, Optional

from .errors import (
    ConflictingResult, InvalidWinner, MatchNotFound, NotReady, StructuralInvariantViolation
)
from .events import MatchCompleted, ReportOutcome, SlotFill
from .models import (
    Match, MatchGraph, READY, GRAND_FINALS, GRAND_FINALS_RESET, STATUS_COMPLETED,
    FIRST_EMPTY, CONSOLIDATION_WINNER, DROP_DOWN, SLOT_A, SLOT_B
)

logger = logging.getLogger(__name__)


def report_result(graph: MatchGraph, match_id: str, winner_id: str) -> ReportOutcome:
    """
    Record winner_id as the winner of match_id and propagate.

    Either the whole cascade is applied or the graph is left untouched.
    Reporting the already-recorded winner again is a no-op.
    """
    match = graph.get(match_id)
    if match is None:
        raise MatchNotFound(f"Match {match_id} does not exist")
    if match.slot_a is None or match.slot_b is None:
        raise NotReady(f"Match {match_id} is still waiting for participants")
    if winner_id not in (match.slot_a, match.slot_b):
        raise InvalidWinner(f"{winner_id} is not playing in match {match_id}")
    if match.winner is not None:
        if match.winner == winner_id:
            logger.debug("Ignoring replayed result for %s", match_id)
            return ReportOutcome([], graph.status, replayed=True)
        raise ConflictingResult(
            f"Match {match_id} was already won by {match.winner}, not {winner_id}"
        )

    snapshot = graph.snapshot()
    try:
        events = _settle(graph, deque([(match, winner_id, False)]))
    except Exception:
        graph.restore(snapshot)
        logger.error("Reporting %s failed; bracket rolled back", match_id)
        raise
    logger.info("Match %s won by %s (%d matches completed, status %s)",
                match_id, winner_id, len(events), graph.status)
    return ReportOutcome(events, graph.status)


def resolve_byes(graph: MatchGraph, matches: Optional[List[Match]] = None) -> List[MatchCompleted]:
    """Auto-resolve every Ready match that involves a BYE, then everything that follows."""
    queue = deque()
    for match in matches if matches is not None else graph.matches():
        winner_id = _bye_winner(graph, match)
        if winner_id is not None:
            queue.append((match, winner_id, True))
    return _settle(graph, queue)


def _settle(graph: MatchGraph, queue: deque) -> List[MatchCompleted]:
    events = []
    limit = len(graph.matches())
    while queue:
        match, winner_id, auto_resolved = queue.popleft()
        if match.winner is not None:
            continue
        fills = _record(graph, match, winner_id)
        events.append(MatchCompleted(match.id, winner_id, match.loser, fills, graph.status, auto_resolved))
        if auto_resolved:
            logger.debug("Auto-resolved BYE match %s for %s", match.id, winner_id)
        for target_id in dict.fromkeys(fill.match_id for fill in fills):
            target = graph.get(target_id)
            bye_winner = _bye_winner(graph, target)
            if bye_winner is not None:
                queue.append((target, bye_winner, True))
        if len(events) > limit:
            raise StructuralInvariantViolation("Result propagation did not converge")
    return events


def _record(graph: MatchGraph, match: Match, winner_id: str) -> List[SlotFill]:
    loser_id = match.slot_b if winner_id == match.slot_a else match.slot_a
    match.winner = winner_id
    match.completed_at = datetime.now().isoformat()

    if match.segment == GRAND_FINALS:
        return _apply_grand_finals(graph, match, winner_id)
    if match.segment == GRAND_FINALS_RESET:
        graph.status = STATUS_COMPLETED
        logger.info("Tournament complete: %s wins the bracket reset", winner_id)
        return []

    fills = []
    if match.on_win is not None:
        fills.append(_fill(graph, match.on_win, winner_id))
    if match.on_loss is not None:
        fills.append(_fill(graph, match.on_loss, loser_id))
    return fills


def _apply_grand_finals(graph: MatchGraph, match: Match, winner_id: str) -> List[SlotFill]:
    winners_champion = graph.winners_final.winner
    if winners_champion is None or winners_champion not in match.occupants:
        raise StructuralInvariantViolation("Grand Finals was played without the winners bracket champion")
    if winner_id == winners_champion:
        graph.status = STATUS_COMPLETED
        logger.info("Tournament complete: winners bracket champion %s takes the Grand Finals", winner_id)
        return []

    # Losers bracket champion won: both finalists now have one loss
    reset = graph.grand_finals_reset
    logger.info("Bracket reset: %s beat winners bracket champion %s", winner_id, winners_champion)
    return [
        _place(reset, SLOT_A, winners_champion),
        _place(reset, SLOT_B, winner_id),
    ]


def _fill(graph: MatchGraph, link, participant_id: str) -> SlotFill:
    target = graph.get(link.match_id)
    if target is None:
        raise StructuralInvariantViolation(f"Link target {link.match_id} does not exist")
    return _place(target, _choose_slot(target, link.slot_rule), participant_id)


def _choose_slot(target: Match, slot_rule: str) -> str:
    """
    Slot a participant arriving over a link takes.

    Merge rounds are filled in arrival order: a drop-down that arrives before
    the consolidation winner holds slot A, and the consolidation winner then
    takes slot B. Positions are not pinned per feeder.
    """
    if slot_rule == SLOT_A or slot_rule == SLOT_B:
        return slot_rule
    if slot_rule == DROP_DOWN:
        # Slot A belongs to the consolidation winner once it has arrived
        return SLOT_B if target.slot_a is not None else SLOT_A
    if slot_rule in (FIRST_EMPTY, CONSOLIDATION_WINNER):
        return SLOT_A if target.slot_a is None else SLOT_B
    raise StructuralInvariantViolation(f"Unknown slot rule {slot_rule!r} on link to {target.id}")


def _place(target: Match, slot: str, participant_id: str) -> SlotFill:
    if getattr(target, slot) is not None:
        raise StructuralInvariantViolation(
            f"{slot} of match {target.id} already holds {getattr(target, slot)}"
        )
    setattr(target, slot, participant_id)
    return SlotFill(target.id, slot, participant_id)


def _bye_winner(graph: MatchGraph, match: Match) -> Optional[str]:
    """Winner to record automatically, or None if the match must be played."""
    if match.state != READY:
        return None
    if graph.is_bye(match.slot_a):
        return match.slot_a if graph.is_bye(match.slot_b) else match.slot_b
    if graph.is_bye(match.slot_b):
        return match.slot_a
    return None
