"""
Tournament lifecycle on top of the bracket engine and a BracketStore.

Status progression: Setup -> In-Progress (bracket built) -> Completed.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .errors import MatchNotFound, TournamentStateError
from .events import MatchCompleted, ReportOutcome
from .formulas import losers_round_name, winners_round_name
from .generator import build
from .models import (
    Match, MatchGraph, Participant, Tournament,
    STATUS_SETUP, STATUS_IN_PROGRESS, STATUS_COMPLETED
)
from .processor import report_result
from .storage import BracketStore

logger = logging.getLogger(__name__)

Listener = Callable[[str, MatchCompleted], None]


class TournamentService:
    def __init__(self, store: BracketStore):
        self.store = store
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener):
        """Register a callback receiving (tournament_id, MatchCompleted) after each commit."""
        self._listeners.append(listener)

    def create_tournament(self, name: str, player_names: Optional[List[str]] = None) -> Tournament:
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            raise ValueError("Tournament name is required")
        if player_names:
            _clean_names(player_names)
        tournament = self.store.create_tournament(name)
        if player_names:
            self.add_players(tournament.id, player_names)
            tournament = self.store.load_tournament(tournament.id)
        return tournament

    def get_tournament(self, tournament_id: str) -> Tournament:
        return self.store.load_tournament(tournament_id)

    def list_tournaments(self) -> List[Tournament]:
        return self.store.list_tournaments()

    def delete_tournament(self, tournament_id: str):
        self.store.delete_tournament(tournament_id)

    def get_participants(self, tournament_id: str) -> List[Participant]:
        return self.store.load_participants(tournament_id)

    def add_players(self, tournament_id: str, names: List[str]) -> List[Participant]:
        """Add players seeded after the existing ones, in the order given."""
        cleaned = _clean_names(names)
        with self.store.lock(tournament_id):
            tournament = self.store.load_tournament(tournament_id)
            if tournament.status != STATUS_SETUP:
                raise TournamentStateError(f"Players can only be added during setup, tournament is {tournament.status}")
            existing = self.store.load_participants(tournament_id)
            next_seed = len(existing) + 1
            added = [
                Participant(id=f"p{next_seed + i}", name=name, seed=next_seed + i)
                for i, name in enumerate(cleaned)
            ]
            self.store.commit(
                tournament_id, [],
                tournament_updates={'participant_count': len(existing) + len(added)},
                participants=added
            )
        logger.info("Added %d players to %s", len(added), tournament_id)
        return added

    def start_tournament(self, tournament_id: str) -> MatchGraph:
        """Build the bracket, resolve first round BYEs and move the tournament to In-Progress."""
        with self.store.lock(tournament_id):
            tournament = self.store.load_tournament(tournament_id)
            if tournament.status != STATUS_SETUP:
                raise TournamentStateError(f"Tournament {tournament_id} has already started")
            version = self.store.load_version(tournament_id)
            graph = build(self.store.load_participants(tournament_id))
            byes = [p for p in graph.participants.values() if p.is_bye]
            self.store.commit(
                tournament_id,
                graph.matches(),
                tournament_updates={
                    'status': STATUS_IN_PROGRESS,
                    'started_at': datetime.now().isoformat(),
                },
                participants=byes,
                expected_version=version
            )
        logger.info("Started tournament %s with a bracket of %d", tournament_id, graph.size)
        return graph

    def get_bracket(self, tournament_id: str) -> MatchGraph:
        with self.store.lock(tournament_id):
            tournament = self.store.load_tournament(tournament_id)
            return self._load_graph(tournament)

    def _load_graph(self, tournament: Tournament) -> MatchGraph:
        if tournament.status == STATUS_SETUP:
            raise TournamentStateError(f"Tournament {tournament.id} has not started")
        return MatchGraph.from_records(
            self.store.load_participants(tournament.id),
            self.store.load_matches(tournament.id),
            tournament.status
        )

    def report_result(self, tournament_id: str, match_id: str, winner_id: str) -> ReportOutcome:
        """Apply one result and commit every match it touched as a single write."""
        with self.store.lock(tournament_id):
            tournament = self.store.load_tournament(tournament_id)
            version = self.store.load_version(tournament_id)
            graph = self._load_graph(tournament)
            outcome = report_result(graph, match_id, winner_id)
            if outcome.replayed:
                return outcome

            touched = {event.match_id for event in outcome.events}
            touched.update(fill.match_id for fill in outcome.applied_slot_fills)
            updates = {'status': outcome.new_status}
            if outcome.new_status == STATUS_COMPLETED:
                updates['completed_at'] = datetime.now().isoformat()
                updates['champion_id'] = graph.champion
            self.store.commit(
                tournament_id,
                [graph.get(mid) for mid in sorted(touched)],
                tournament_updates=updates,
                expected_version=version
            )

        for event in outcome.events:
            self._notify(tournament_id, event)
        return outcome

    def _notify(self, tournament_id: str, event: MatchCompleted):
        for listener in self._listeners:
            try:
                listener(tournament_id, event)
            except Exception:
                logger.exception("Listener failed for %s in tournament %s", event.match_id, tournament_id)

    def get_match_with_players(self, tournament_id: str, match_id: str) -> Dict:
        graph = self.get_bracket(tournament_id)
        match = graph.get(match_id)
        if match is None:
            raise MatchNotFound(f"Match {match_id} does not exist")
        return {
            'match': match.to_dict(),
            'state': match.state,
            'slot_a': _participant_dict(graph, match.slot_a),
            'slot_b': _participant_dict(graph, match.slot_b),
            'winner': _participant_dict(graph, match.winner),
        }


def _clean_names(names) -> List[str]:
    if not isinstance(names, list) or not names:
        raise ValueError("At least one player name is required")
    if any(not isinstance(name, str) for name in names):
        raise ValueError("Player names must be strings")
    cleaned = [name.strip() for name in names]
    if any(not name for name in cleaned):
        raise ValueError("Player names must not be empty")
    return cleaned


def _participant_dict(graph: MatchGraph, participant_id: Optional[str]) -> Optional[Dict]:
    participant = graph.participants.get(participant_id)
    return participant.to_dict() if participant else None


def _match_view(graph: MatchGraph, match: Match, round_name: str) -> Dict:
    view = match.to_dict()
    view['round_name'] = round_name
    view['state'] = match.state
    view['players'] = [
        graph.participants[p].name if p in graph.participants else None
        for p in (match.slot_a, match.slot_b)
    ]
    view['is_bye'] = any(graph.is_bye(p) for p in (match.slot_a, match.slot_b))
    return view


def bracket_display(graph: MatchGraph) -> Dict:
    """
    Get the bracket grouped by round name for display.

    Returns dict with:
    - 'winners_bracket': dict of round_name -> list of matches
    - 'losers_bracket': dict of round_name -> list of matches
    - 'grand_final': Grand Finals match
    - 'bracket_reset': reset match, with 'needs_reset' once it is activated
    - 'champion': champion participant dict, or None
    """
    size = graph.size
    winners_bracket = {}
    for round_num, round_matches in enumerate(graph.winners, start=1):
        name = winners_round_name(round_num, size)
        winners_bracket[name] = [_match_view(graph, m, name) for m in round_matches]

    losers_bracket = {}
    total_losers_rounds = len(graph.losers)
    for round_num, round_matches in enumerate(graph.losers, start=1):
        name = losers_round_name(round_num, total_losers_rounds)
        losers_bracket[name] = [_match_view(graph, m, name) for m in round_matches]

    bracket_reset = _match_view(graph, graph.grand_finals_reset, 'Bracket Reset')
    bracket_reset['needs_reset'] = graph.grand_finals_reset.slot_a is not None

    return {
        'bracket_size': size,
        'total_participants': sum(1 for p in graph.participants.values() if not p.is_bye),
        'byes': sum(1 for p in graph.participants.values() if p.is_bye),
        'total_winners_rounds': len(graph.winners),
        'total_losers_rounds': total_losers_rounds,
        'winners_bracket': winners_bracket,
        'losers_bracket': losers_bracket,
        'grand_final': _match_view(graph, graph.grand_finals, 'Grand Final'),
        'bracket_reset': bracket_reset,
        'status': graph.status,
        'champion': _participant_dict(graph, graph.champion),
    }
