"""
Values emitted by the result processor.

The engine only returns these; forwarding them to subscribers is up to the
caller.
"""
from typing import Dict, List, Optional


class SlotFill:
    def __init__(self, match_id: str, slot: str, participant_id: str):
        self.match_id = match_id
        self.slot = slot
        self.participant_id = participant_id

    def to_dict(self) -> Dict:
        return {'match_id': self.match_id, 'slot': self.slot, 'participant_id': self.participant_id}

    def __eq__(self, other):
        if not isinstance(other, SlotFill):
            return NotImplemented
        return (self.match_id, self.slot, self.participant_id) == (other.match_id, other.slot, other.participant_id)

    def __repr__(self):
        return f"SlotFill({self.match_id}, {self.slot}, {self.participant_id})"


class MatchCompleted:
    def __init__(self, match_id: str, winner_id: str, loser_id: Optional[str],
                 slot_fills: List[SlotFill], status: str, auto_resolved: bool = False):
        self.match_id = match_id
        self.winner_id = winner_id
        self.loser_id = loser_id
        self.slot_fills = slot_fills
        self.status = status
        self.auto_resolved = auto_resolved

    def to_dict(self) -> Dict:
        return {
            'match_id': self.match_id,
            'winner_id': self.winner_id,
            'loser_id': self.loser_id,
            'slot_fills': [fill.to_dict() for fill in self.slot_fills],
            'status': self.status,
            'auto_resolved': self.auto_resolved,
        }

    def __repr__(self):
        return f"MatchCompleted(match_id={self.match_id}, winner_id={self.winner_id}, status={self.status})"


class ReportOutcome:
    def __init__(self, events: List[MatchCompleted], new_status: str, replayed: bool = False):
        self.events = events
        self.new_status = new_status
        self.replayed = replayed

    @property
    def applied_slot_fills(self) -> List[SlotFill]:
        return [fill for event in self.events for fill in event.slot_fills]

    def to_dict(self) -> Dict:
        return {
            'applied_slot_fills': [fill.to_dict() for fill in self.applied_slot_fills],
            'new_status': self.new_status,
            'replayed': self.replayed,
            'events': [event.to_dict() for event in self.events],
        }

    def __repr__(self):
        return f"ReportOutcome(fills={len(self.applied_slot_fills)}, new_status={self.new_status}, replayed={self.replayed})"
