"""
Tournament persistence.

BracketStore is what the service layer needs from storage. YamlBracketStore
keeps one YAML file per tournament and serializes writers with a FileLock
per tournament, so different tournaments never contend.
"""
import glob
import logging
import os
import re
import tempfile
import uuid
from datetime import datetime
from typing import Dict, List, Optional

import yaml
from filelock import FileLock

from .errors import StoreConflict, TournamentNotFound
from .models import Match, Participant, Tournament

logger = logging.getLogger(__name__)

TOURNAMENT_ID_PATTERN = re.compile(r'^[a-z0-9][a-z0-9-]*$')


class BracketStore:
    """Interface for loading and committing one tournament's bracket."""

    def load_tournament(self, tournament_id: str) -> Tournament:
        raise NotImplementedError

    def load_participants(self, tournament_id: str) -> List[Participant]:
        raise NotImplementedError

    def load_matches(self, tournament_id: str) -> List[Match]:
        raise NotImplementedError

    def load_version(self, tournament_id: str) -> int:
        raise NotImplementedError

    def commit(self, tournament_id: str, matches: List[Match], tournament_updates: Optional[Dict] = None,
               participants: Optional[List[Participant]] = None, expected_version: Optional[int] = None) -> int:
        """Upsert matches and participants and update the tournament in one step."""
        raise NotImplementedError

    def lock(self, tournament_id: str):
        """Exclusive lock for load-process-commit sequences on one tournament."""
        raise NotImplementedError


class YamlBracketStore(BracketStore):
    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        self.tournaments_dir = os.path.join(data_dir, 'tournaments')
        self.lock_timeout = lock_timeout
        self._locks: Dict[str, FileLock] = {}
        os.makedirs(self.tournaments_dir, exist_ok=True)

    def _path(self, tournament_id: str) -> str:
        if not isinstance(tournament_id, str) or not TOURNAMENT_ID_PATTERN.match(tournament_id):
            raise TournamentNotFound(f"Tournament {tournament_id!r} not found")
        return os.path.join(self.tournaments_dir, f"{tournament_id}.yaml")

    def lock(self, tournament_id: str) -> FileLock:
        path = self._path(tournament_id)
        if tournament_id not in self._locks:
            self._locks[tournament_id] = FileLock(path + '.lock', timeout=self.lock_timeout)
        return self._locks[tournament_id]

    def _read(self, tournament_id: str) -> Dict:
        path = self._path(tournament_id)
        if not os.path.exists(path):
            raise TournamentNotFound(f"Tournament {tournament_id!r} not found")
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if not data or 'tournament' not in data:
            raise TournamentNotFound(f"Tournament {tournament_id!r} has no data")
        data.setdefault('version', 0)
        data.setdefault('participants', [])
        data.setdefault('matches', [])
        return data

    def _write(self, tournament_id: str, data: Dict):
        """Write to a temp file and rename it over the old one."""
        path = self._path(tournament_id)
        fd, tmp_path = tempfile.mkstemp(dir=self.tournaments_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        except BaseException:
            os.remove(tmp_path)
            raise

    def create_tournament(self, name: str) -> Tournament:
        tournament = Tournament(
            id=uuid.uuid4().hex[:12],
            name=name,
            created_at=datetime.now().isoformat()
        )
        with self.lock(tournament.id):
            self._write(tournament.id, {
                'tournament': tournament.to_dict(),
                'version': 0,
                'participants': [],
                'matches': [],
            })
        logger.info("Created tournament %s (%s)", tournament.id, name)
        return tournament

    def load_tournament(self, tournament_id: str) -> Tournament:
        return Tournament.from_dict(self._read(tournament_id)['tournament'])

    def load_participants(self, tournament_id: str) -> List[Participant]:
        participants = [Participant.from_dict(p) for p in self._read(tournament_id)['participants']]
        return sorted(participants, key=lambda p: p.seed)

    def load_matches(self, tournament_id: str) -> List[Match]:
        return [Match.from_dict(m) for m in self._read(tournament_id)['matches']]

    def load_version(self, tournament_id: str) -> int:
        return self._read(tournament_id)['version']

    def list_tournaments(self) -> List[Tournament]:
        tournaments = []
        for path in glob.glob(os.path.join(self.tournaments_dir, '*.yaml')):
            tournament_id = os.path.splitext(os.path.basename(path))[0]
            try:
                tournaments.append(self.load_tournament(tournament_id))
            except (TournamentNotFound, yaml.YAMLError) as e:
                logger.warning(f'Skipping unreadable tournament file {path}: {e}')
        tournaments.sort(key=lambda t: t.created_at or '', reverse=True)
        return tournaments

    def save_participants(self, tournament_id: str, participants: List[Participant]) -> int:
        return self.commit(tournament_id, [], participants=participants)

    def commit(self, tournament_id: str, matches: List[Match], tournament_updates: Optional[Dict] = None,
               participants: Optional[List[Participant]] = None, expected_version: Optional[int] = None) -> int:
        with self.lock(tournament_id):
            data = self._read(tournament_id)
            if expected_version is not None and data['version'] != expected_version:
                logger.warning("Commit conflict on %s: expected version %s, found %s",
                               tournament_id, expected_version, data['version'])
                raise StoreConflict(
                    f"Tournament {tournament_id} changed (version {data['version']}, expected {expected_version})"
                )

            if participants:
                by_id = {p['id']: p for p in data['participants']}
                for participant in participants:
                    by_id[participant.id] = participant.to_dict()
                data['participants'] = list(by_id.values())
            if matches:
                by_id = {m['id']: m for m in data['matches']}
                for match in matches:
                    by_id[match.id] = match.to_dict()
                data['matches'] = list(by_id.values())
            if tournament_updates:
                data['tournament'].update(tournament_updates)
            data['version'] += 1
            self._write(tournament_id, data)
            logger.debug("Committed %d matches to %s (version %d)", len(matches), tournament_id, data['version'])
            return data['version']

    def delete_tournament(self, tournament_id: str):
        path = self._path(tournament_id)
        with self.lock(tournament_id):
            if not os.path.exists(path):
                raise TournamentNotFound(f"Tournament {tournament_id!r} not found")
            os.remove(path)
        self._locks.pop(tournament_id, None)
        logger.info("Deleted tournament %s", tournament_id)
