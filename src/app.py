"""
Flask JSON API for fixture generation, live scoring and player statistics.
"""
import os

from flask import Flask, jsonify, request

import store
from engine.elimination import get_bracket_summary
from engine.errors import (
    AlreadyCompleted, EngineError, IllegalStateTransition, InsufficientParticipants, InvalidConfiguration,
    InvalidIdentifier, InvalidScore, StaleMatchVersion, TournamentNotFound,
)
from engine.fixtures import FixtureConfig, OPEN_AGE_GROUP, generate_fixtures
from engine.models import COMPLETED, WALKOVER
from engine.round_robin import calculate_group_standings
from engine.scoring import apply_score_update, get_scoring_format, match_display_text
from engine.stats import update_player_stats

app = Flask(__name__)
app.secret_key = os.environ.get('SECRET_KEY') or os.urandom(24)

ERROR_STATUS = (
    (TournamentNotFound, 404),
    (InsufficientParticipants, 400),
    (InvalidIdentifier, 400),
    (InvalidConfiguration, 400),
    (InvalidScore, 400),
    (StaleMatchVersion, 409),
    (IllegalStateTransition, 409),
)


def get_default_settings():
    """Return default tournament settings."""
    return {
        'seeding_policy': 'random',
        'group_by_age_group': True,
        'scoring_format': 'badminton_21',
    }


def resolve_settings(tournament: dict, overrides: dict = None) -> dict:
    """Defaults, then the tournament's saved settings, then per-request overrides."""
    settings = get_default_settings()
    settings.update(tournament.get('settings') or {})
    for key in settings:
        if overrides and overrides.get(key) is not None:
            settings[key] = overrides[key]
    return settings


@app.errorhandler(EngineError)
def handle_engine_error(error):
    """Report engine errors as JSON with a matching status code."""
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            break
    else:
        status = 400
    app.logger.info(f'{request.path}: {type(error).__name__}: {error}')
    return jsonify({'success': False, 'error': str(error), 'type': type(error).__name__}), status


def _filter_group(matches, category=None, age_group=None):
    if category:
        matches = [m for m in matches if m.category == category]
    if age_group:
        wanted = None if age_group == OPEN_AGE_GROUP else age_group
        matches = [m for m in matches if m.age_group == wanted]
    return matches


@app.route('/api/tournaments/<tournament_id>/fixtures', methods=['GET'])
def api_fixtures(tournament_id):
    """List a tournament's matches ordered by round and match number."""
    store.load_tournament(tournament_id)
    matches = _filter_group(store.load_matches(tournament_id),
                            request.args.get('category'), request.args.get('age_group'))
    return jsonify({
        'success': True,
        'data': [m.to_dict() for m in matches],
        'count': len(matches),
    })


@app.route('/api/tournaments/<tournament_id>/fixtures/generate', methods=['POST'])
def api_generate_fixtures(tournament_id):
    """Regenerate all fixtures of a tournament from its approved participants."""
    data = request.get_json(silent=True) or {}
    with store.tournament_lock(tournament_id):
        tournament = store.load_tournament(tournament_id)
        settings = resolve_settings(tournament, data)
        config = FixtureConfig(
            seeding_policy=settings['seeding_policy'],
            group_by_age_group=settings['group_by_age_group'],
            scoring_format=get_scoring_format(settings['scoring_format']),
        )
        participants = store.load_participants(tournament_id)
        matches = generate_fixtures(tournament_id, tournament.get('format', 'knockout'), participants, config)

        store.save_matches(tournament_id, matches)
        tournament['status'] = 'ongoing'
        store.save_tournament(tournament)

    app.logger.info(f'Generated {len(matches)} matches for tournament {tournament_id}')
    return jsonify({
        'success': True,
        'message': f'Generated {len(matches)} matches successfully',
        'data': {'matchCount': len(matches)},
    })


@app.route('/api/tournaments/<tournament_id>/bracket', methods=['GET'])
def api_bracket(tournament_id):
    """Bracket summary (knockout) or standings (round robin) for one group."""
    tournament = store.load_tournament(tournament_id)
    category = request.args.get('category', 'singles')
    matches = _filter_group(store.load_matches(tournament_id), category,
                            request.args.get('age_group', OPEN_AGE_GROUP))
    if tournament.get('format') == 'round_robin':
        return jsonify({'success': True, 'standings': calculate_group_standings(matches)})
    return jsonify({'success': True, 'bracket': get_bracket_summary(matches)})


def _record_stats(match):
    """Fold a finished match into the stored player stats."""
    with store.stats_lock():
        existing = store.load_player_stats()
        for stats in update_player_stats(match, existing):
            existing[stats.player_id] = stats
        store.save_player_stats(existing)


@app.route('/api/matches/<tournament_id>/<int:match_number>/score', methods=['POST'])
def api_score(tournament_id, match_number):
    """Apply a scoring action (start, update_score, award_point, end_match, walkover, cancel)."""
    data = request.get_json(silent=True)
    if not data or not data.get('action'):
        return jsonify({'success': False, 'error': 'Missing required field: action'}), 400

    action = data['action']
    payload = data.get('payload') or {k: v for k, v in data.items() if k not in ('action', 'version')}
    version = data.get('version')

    with store.tournament_lock(tournament_id):
        store.load_tournament(tournament_id)
        match = store.find_match(tournament_id, match_number)
        if match is None:
            return jsonify({'success': False, 'error': 'Match not found'}), 404
        try:
            updated = apply_score_update(match, action, payload, expected_version=version)
        except AlreadyCompleted:
            return jsonify({
                'success': True,
                'already_completed': True,
                'match': match.to_dict(),
            })
        store.replace_match(tournament_id, updated)

        # Stats are derived from the saved result
        if not match.is_terminal and updated.status in (COMPLETED, WALKOVER):
            try:
                _record_stats(updated)
            except Exception:
                app.logger.exception(f'Failed to record stats for match {match_number} of {tournament_id}')

    if updated.is_terminal:
        app.logger.info(f'Match {match_number} of {tournament_id} is {updated.status}: {match_display_text(updated)}')
    return jsonify({
        'success': True,
        'match': updated.to_dict(),
        'message': f'Match {action} successful',
    })


@app.route('/api/players/<player_id>/stats', methods=['GET'])
def api_player_stats(player_id):
    stats = store.load_player_stats().get(player_id)
    if stats is None:
        return jsonify({'success': False, 'error': 'No stats recorded for this player'}), 404
    return jsonify({'success': True, 'data': stats.to_dict()})


if __name__ == '__main__':
    app.run(debug=os.environ.get('FLASK_DEBUG') == '1')
