"""
YAML file storage for tournaments, participants, matches and player stats.

Layout under DATA_DIR:
    tournaments/<id>/tournament.yaml
    tournaments/<id>/participants.yaml
    tournaments/<id>/matches.yaml
    player_stats.yaml
    locks/<id>.lock
"""
import os
from datetime import datetime
from typing import Dict, List, Optional

import yaml
from filelock import FileLock

from engine.errors import TournamentNotFound
from engine.fixtures import validate_identifier
from engine.models import Match, Participant, PlayerStats

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))
LOCK_TIMEOUT = 10


def _tournaments_dir() -> str:
    return os.path.join(DATA_DIR, 'tournaments')


def tournament_dir(tournament_id: str) -> str:
    """Directory holding a tournament's files. Raises InvalidIdentifier for malformed ids."""
    validate_identifier(tournament_id)
    return os.path.join(_tournaments_dir(), tournament_id)


def _read_yaml(path: str):
    if not os.path.exists(path):
        return None
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f)


def _write_yaml(path: str, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def tournament_lock(tournament_id: str) -> FileLock:
    """Exclusive lock for fixture regeneration and match updates of one tournament.

    Lock files live under DATA_DIR/locks so that locking an unknown id does not
    create a tournament directory.
    """
    validate_identifier(tournament_id)
    locks_dir = os.path.join(DATA_DIR, 'locks')
    os.makedirs(locks_dir, exist_ok=True)
    return FileLock(os.path.join(locks_dir, f'{tournament_id}.lock'), timeout=LOCK_TIMEOUT)


def stats_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.stats.lock'), timeout=LOCK_TIMEOUT)


def create_tournament(tournament_id: str, name: str, tournament_format: str = 'knockout',
                      settings: Optional[Dict] = None) -> Dict:
    """Create a tournament record in 'registration' status."""
    tournament = {
        'id': tournament_id,
        'name': name,
        'format': tournament_format,
        'status': 'registration',
        'settings': settings or {},
        'created': datetime.now().isoformat(),
    }
    _write_yaml(os.path.join(tournament_dir(tournament_id), 'tournament.yaml'), tournament)
    return tournament


def load_tournament(tournament_id: str) -> Dict:
    """Load a tournament record. Raises TournamentNotFound when it does not exist."""
    data = _read_yaml(os.path.join(tournament_dir(tournament_id), 'tournament.yaml'))
    if not data:
        raise TournamentNotFound(f"Tournament not found: {tournament_id}")
    data.setdefault('settings', {})
    return data


def save_tournament(tournament: Dict):
    _write_yaml(os.path.join(tournament_dir(tournament['id']), 'tournament.yaml'), tournament)


def load_participants(tournament_id: str, approved_only: bool = True) -> List[Participant]:
    """Load registered participants; by default only the approved ones."""
    data = _read_yaml(os.path.join(tournament_dir(tournament_id), 'participants.yaml')) or {}
    participants = []
    for entry in data.get('participants', []):
        if approved_only and not entry.get('isApproved', False):
            continue
        participants.append(Participant.from_dict(entry))
    return participants


def save_participants(tournament_id: str, participants: List[Dict]):
    """Save raw participant entries (each may carry an 'isApproved' flag)."""
    _write_yaml(os.path.join(tournament_dir(tournament_id), 'participants.yaml'),
                {'participants': participants})


def load_matches(tournament_id: str) -> List[Match]:
    """Load a tournament's matches sorted by round then match number."""
    data = _read_yaml(os.path.join(tournament_dir(tournament_id), 'matches.yaml')) or {}
    matches = [Match.from_dict(entry) for entry in data.get('matches', [])]
    matches.sort(key=lambda m: (m.round_number, m.match_number))
    return matches


def save_matches(tournament_id: str, matches: List[Match]):
    """Replace the tournament's whole match set."""
    ordered = sorted(matches, key=lambda m: m.match_number)
    _write_yaml(os.path.join(tournament_dir(tournament_id), 'matches.yaml'),
                {'matches': [match.to_dict() for match in ordered]})


def find_match(tournament_id: str, match_number: int) -> Optional[Match]:
    for match in load_matches(tournament_id):
        if match.match_number == match_number:
            return match
    return None


def replace_match(tournament_id: str, updated: Match):
    """Write one match back into the tournament's match set."""
    matches = load_matches(tournament_id)
    matches = [updated if m.match_number == updated.match_number else m for m in matches]
    save_matches(tournament_id, matches)


def load_player_stats() -> Dict[str, PlayerStats]:
    data = _read_yaml(os.path.join(DATA_DIR, 'player_stats.yaml')) or {}
    return {entry['playerId']: PlayerStats.from_dict(entry) for entry in data.get('players', [])}


def save_player_stats(stats: Dict[str, PlayerStats]):
    _write_yaml(os.path.join(DATA_DIR, 'player_stats.yaml'),
                {'players': [stats[player_id].to_dict() for player_id in sorted(stats)]})
