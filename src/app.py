"""
Flask web application for the double elimination bracket engine.
"""
import os
import logging
from functools import wraps

from filelock import Timeout
from flask import Flask, jsonify, request

from bracket_core.errors import (
    BracketError, ConflictingResult, GenerationInvariantViolation, MatchNotFound,
    StoreConflict, StructuralInvariantViolation, TournamentNotFound, TournamentStateError
)
from bracket_core.service import TournamentService, bracket_display
from bracket_core.storage import YamlBracketStore

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = float(os.environ.get('BRACKET_LOCK_TIMEOUT', '10'))

logging.basicConfig(level=os.environ.get('LOG_LEVEL', 'INFO'))

# Status codes for engine errors not covered by the generic 400
ERROR_STATUS = [
    (TournamentNotFound, 404),
    (MatchNotFound, 404),
    (ConflictingResult, 409),
    (TournamentStateError, 409),
    (StoreConflict, 409),
    (GenerationInvariantViolation, 500),
    (StructuralInvariantViolation, 500),
]


def _log_match_completed(tournament_id, event):
    app.logger.info(f'{tournament_id}: {event.match_id} won by {event.winner_id} -> {event.status}')


def get_service() -> TournamentService:
    """Service bound to the current data directory."""
    service = TournamentService(YamlBracketStore(DATA_DIR, lock_timeout=LOCK_TIMEOUT))
    service.subscribe(_log_match_completed)
    return service


def json_api(f):
    """Turn engine and storage errors into JSON error responses."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Timeout:
            app.logger.warning(f'Lock timeout in {request.path}')
            return jsonify({'success': False, 'error': 'Tournament is busy, try again'}), 409
        except (BracketError, ValueError) as e:
            status = next((code for exc_type, code in ERROR_STATUS if isinstance(e, exc_type)), 400)
            if status >= 500:
                app.logger.error(f'{request.path} failed: {e}')
            else:
                app.logger.warning(f'{request.path} rejected: {e}')
            return jsonify({'success': False, 'error': str(e)}), status
    return decorated_function


def _tournament_payload(service, tournament):
    data = tournament.to_dict()
    data['participants'] = [
        p.to_dict() for p in service.get_participants(tournament.id) if not p.is_bye
    ]
    return data


@app.route('/api/tournaments', methods=['GET'])
@json_api
def api_list_tournaments():
    tournaments = get_service().list_tournaments()
    return jsonify({'success': True, 'tournaments': [t.to_dict() for t in tournaments]})


@app.route('/api/tournaments', methods=['POST'])
@json_api
def api_create_tournament():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'success': False, 'error': 'A JSON object is required'}), 400
    players = data.get('players') or []
    if not isinstance(players, list):
        return jsonify({'success': False, 'error': 'players must be a list of names'}), 400
    service = get_service()
    tournament = service.create_tournament(data.get('name', ''), players)
    return jsonify({'success': True, 'tournament': _tournament_payload(service, tournament)}), 201


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
@json_api
def api_get_tournament(tournament_id):
    service = get_service()
    tournament = service.get_tournament(tournament_id)
    return jsonify({'success': True, 'tournament': _tournament_payload(service, tournament)})


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
@json_api
def api_delete_tournament(tournament_id):
    get_service().delete_tournament(tournament_id)
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/players', methods=['POST'])
@json_api
def api_add_players(tournament_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('names'), list):
        return jsonify({'success': False, 'error': 'names must be a list of player names'}), 400
    added = get_service().add_players(tournament_id, data['names'])
    return jsonify({'success': True, 'players': [p.to_dict() for p in added]})


@app.route('/api/tournaments/<tournament_id>/start', methods=['POST'])
@json_api
def api_start_tournament(tournament_id):
    graph = get_service().start_tournament(tournament_id)
    return jsonify({'success': True, 'bracket': bracket_display(graph)})


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
@json_api
def api_get_bracket(tournament_id):
    graph = get_service().get_bracket(tournament_id)
    return jsonify({'success': True, 'bracket': bracket_display(graph)})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>', methods=['GET'])
@json_api
def api_get_match(tournament_id, match_id):
    match = get_service().get_match_with_players(tournament_id, match_id)
    return jsonify({'success': True, **match})


@app.route('/api/tournaments/<tournament_id>/matches/<match_id>/result', methods=['POST'])
@json_api
def api_report_result(tournament_id, match_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get('winner_id'), str) or not data['winner_id']:
        return jsonify({'success': False, 'error': 'winner_id is required'}), 400
    outcome = get_service().report_result(tournament_id, match_id, data['winner_id'])
    return jsonify({'success': True, **outcome.to_dict()})


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
