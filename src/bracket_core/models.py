"""
Data model for double elimination brackets.

A MatchGraph keeps the winners and losers brackets as 2-D arenas indexed by
[round - 1][order], so links between matches are stitched by position.
"""
from typing import Dict, List, Optional

from .errors import StructuralInvariantViolation

# Bracket segments
WINNERS = 'Winners'
LOSERS = 'Losers'
GRAND_FINALS = 'GrandFinals'
GRAND_FINALS_RESET = 'GrandFinalsReset'
SEGMENTS = (WINNERS, LOSERS, GRAND_FINALS, GRAND_FINALS_RESET)
TERMINAL_SEGMENTS = (GRAND_FINALS, GRAND_FINALS_RESET)

# Tournament status
STATUS_SETUP = 'Setup'
STATUS_IN_PROGRESS = 'In-Progress'
STATUS_COMPLETED = 'Completed'

# Match states
PENDING = 'Pending'
READY = 'Ready'
COMPLETED = 'Completed'

# Slot rules carried on links
FIRST_EMPTY = 'first_empty'
CONSOLIDATION_WINNER = 'consolidation_winner'
DROP_DOWN = 'drop_down'
SLOT_A = 'slot_a'
SLOT_B = 'slot_b'
SLOT_RULES = (FIRST_EMPTY, CONSOLIDATION_WINNER, DROP_DOWN, SLOT_A, SLOT_B)


def match_code(segment: str, round_num: int, order: int) -> str:
    """Positional match id: W2-M1, L3-M2, GF, GFR."""
    if segment == WINNERS:
        return f"W{round_num}-M{order + 1}"
    elif segment == LOSERS:
        return f"L{round_num}-M{order + 1}"
    elif segment == GRAND_FINALS:
        return "GF"
    elif segment == GRAND_FINALS_RESET:
        return "GFR"
    raise ValueError(f"Unknown segment {segment!r}")


class Participant:
    def __init__(self, id, name, seed, is_bye=False):
        self.id = id
        self.name = name
        self.seed = seed
        self.is_bye = is_bye

    def to_dict(self) -> Dict:
        return {'id': self.id, 'name': self.name, 'seed': self.seed, 'is_bye': self.is_bye}

    @classmethod
    def from_dict(cls, data: Dict) -> 'Participant':
        return cls(data['id'], data['name'], data['seed'], data.get('is_bye', False))

    def __eq__(self, other):
        if not isinstance(other, Participant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.name}, seed={self.seed}, is_bye={self.is_bye})"


class Link:
    """Forward edge to a downstream match and the rule picking its slot."""

    def __init__(self, match_id, slot_rule=FIRST_EMPTY):
        self.match_id = match_id
        self.slot_rule = slot_rule

    def to_dict(self) -> Dict:
        return {'match_id': self.match_id, 'slot_rule': self.slot_rule}

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> Optional['Link']:
        if not data:
            return None
        return cls(data['match_id'], data.get('slot_rule', FIRST_EMPTY))

    def __eq__(self, other):
        if not isinstance(other, Link):
            return NotImplemented
        return self.match_id == other.match_id and self.slot_rule == other.slot_rule

    def __repr__(self):
        return f"Link(match_id={self.match_id}, slot_rule={self.slot_rule})"


class Match:
    def __init__(self, id, segment, round, order, slot_a=None, slot_b=None,
                 winner=None, on_win=None, on_loss=None, completed_at=None):
        self.id = id
        self.segment = segment
        self.round = round
        self.order = order
        self.slot_a = slot_a
        self.slot_b = slot_b
        self.winner = winner
        self.on_win = on_win
        self.on_loss = on_loss
        self.completed_at = completed_at

    @property
    def state(self) -> str:
        if self.winner is not None:
            return COMPLETED
        if self.slot_a is None or self.slot_b is None:
            return PENDING
        return READY

    @property
    def occupants(self) -> List[str]:
        return [p for p in (self.slot_a, self.slot_b) if p is not None]

    @property
    def loser(self) -> Optional[str]:
        if self.winner is None:
            return None
        return self.slot_b if self.winner == self.slot_a else self.slot_a

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'segment': self.segment,
            'round': self.round,
            'order': self.order,
            'slot_a': self.slot_a,
            'slot_b': self.slot_b,
            'winner': self.winner,
            'on_win': self.on_win.to_dict() if self.on_win else None,
            'on_loss': self.on_loss.to_dict() if self.on_loss else None,
            'completed_at': self.completed_at,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        return cls(
            data['id'], data['segment'], data['round'], data['order'],
            slot_a=data.get('slot_a'),
            slot_b=data.get('slot_b'),
            winner=data.get('winner'),
            on_win=Link.from_dict(data.get('on_win')),
            on_loss=Link.from_dict(data.get('on_loss')),
            completed_at=data.get('completed_at'),
        )

    def __repr__(self):
        return f"Match(id={self.id}, slots=({self.slot_a}, {self.slot_b}), winner={self.winner})"


class Tournament:
    def __init__(self, id, name, status=STATUS_SETUP, participant_count=0, created_at=None,
                 started_at=None, completed_at=None, champion_id=None):
        self.id = id
        self.name = name
        self.status = status
        self.participant_count = participant_count
        self.created_at = created_at
        self.started_at = started_at
        self.completed_at = completed_at
        self.champion_id = champion_id

    def to_dict(self) -> Dict:
        return {
            'id': self.id,
            'name': self.name,
            'status': self.status,
            'participant_count': self.participant_count,
            'created_at': self.created_at,
            'started_at': self.started_at,
            'completed_at': self.completed_at,
            'champion_id': self.champion_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'Tournament':
        return cls(**{key: data.get(key) for key in (
            'id', 'name', 'status', 'participant_count', 'created_at',
            'started_at', 'completed_at', 'champion_id')})

    def __repr__(self):
        return f"Tournament(id={self.id}, name={self.name}, status={self.status})"


class MatchGraph:
    """All matches of one tournament plus the participants they reference."""

    def __init__(self, participants: List[Participant], winners: List[List[Match]],
                 losers: List[List[Match]], grand_finals: Match, grand_finals_reset: Match,
                 status: str = STATUS_IN_PROGRESS):
        self.participants = {p.id: p for p in participants}
        self.winners = winners
        self.losers = losers
        self.grand_finals = grand_finals
        self.grand_finals_reset = grand_finals_reset
        self.status = status
        self._by_id = {match.id: match for match in self.matches()}

    @property
    def size(self) -> int:
        return len(self.participants)

    @property
    def winners_final(self) -> Match:
        return self.winners[-1][0]

    @property
    def losers_final(self) -> Optional[Match]:
        return self.losers[-1][0] if self.losers else None

    @property
    def champion(self) -> Optional[str]:
        if self.status != STATUS_COMPLETED:
            return None
        return self.grand_finals_reset.winner or self.grand_finals.winner

    def matches(self) -> List[Match]:
        ordered = [m for round_matches in self.winners for m in round_matches]
        ordered.extend(m for round_matches in self.losers for m in round_matches)
        ordered.extend([self.grand_finals, self.grand_finals_reset])
        return ordered

    def get(self, match_id: str) -> Optional[Match]:
        return self._by_id.get(match_id)

    def at(self, segment: str, round_num: int, order: int) -> Match:
        """Look a match up by position; raises KeyError when there is none."""
        if segment == GRAND_FINALS:
            return self.grand_finals
        if segment == GRAND_FINALS_RESET:
            return self.grand_finals_reset
        arena = self.winners if segment == WINNERS else self.losers
        if 1 <= round_num <= len(arena) and 0 <= order < len(arena[round_num - 1]):
            return arena[round_num - 1][order]
        raise KeyError(f"No {segment} match at round {round_num}, order {order}")

    def is_bye(self, participant_id: Optional[str]) -> bool:
        participant = self.participants.get(participant_id)
        return participant is not None and participant.is_bye

    def snapshot(self) -> Dict:
        """Capture mutable state so a failed operation can be rolled back."""
        return {
            'status': self.status,
            'matches': {m.id: (m.slot_a, m.slot_b, m.winner, m.completed_at) for m in self.matches()},
        }

    def restore(self, snapshot: Dict):
        self.status = snapshot['status']
        for match_id, (slot_a, slot_b, winner, completed_at) in snapshot['matches'].items():
            match = self._by_id[match_id]
            match.slot_a, match.slot_b, match.winner, match.completed_at = slot_a, slot_b, winner, completed_at

    @classmethod
    def from_records(cls, participants: List[Participant], matches: List[Match],
                     status: str = STATUS_IN_PROGRESS) -> 'MatchGraph':
        """Rebuild the arenas from flat records loaded from storage."""
        winners: List[List[Match]] = []
        losers: List[List[Match]] = []
        grand_finals = grand_finals_reset = None
        for match in sorted(matches, key=lambda m: (m.round, m.order)):
            if match.segment in (WINNERS, LOSERS):
                arena = winners if match.segment == WINNERS else losers
                while len(arena) < match.round:
                    arena.append([])
                arena[match.round - 1].append(match)
            elif match.segment == GRAND_FINALS:
                grand_finals = match
            elif match.segment == GRAND_FINALS_RESET:
                grand_finals_reset = match
        if grand_finals is None or grand_finals_reset is None or not winners:
            raise StructuralInvariantViolation("Match records do not form a complete bracket")
        return cls(participants, winners, losers, grand_finals, grand_finals_reset, status)

    def __repr__(self):
        return f"MatchGraph(size={self.size}, matches={len(self._by_id)}, status={self.status})"
