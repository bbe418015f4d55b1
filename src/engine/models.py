"""
Records handled by the engine: participants, match lineups, matches, games,
scoring formats and player statistics.

Every persisted record converts to and from the stored camelCase shape with
``to_dict`` / ``from_dict``.
"""
import copy
from datetime import datetime
from typing import Dict, List, Optional

from engine.errors import InvalidConfiguration

CATEGORIES = ('singles', 'doubles', 'mixed')
TEAMS = ('team1', 'team2')
TBD = 'TBD'

SCHEDULED = 'scheduled'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
WALKOVER = 'walkover'
CANCELLED = 'cancelled'
MATCH_STATUSES = (SCHEDULED, IN_PROGRESS, COMPLETED, WALKOVER, CANCELLED)
TERMINAL_STATUSES = (COMPLETED, WALKOVER, CANCELLED)

COMPLETION_TYPES = ('normal', 'walkover', 'forfeit', 'disqualification', 'retired')


def other_team(team: str) -> str:
    """Return the opposing team key."""
    return 'team2' if team == 'team1' else 'team1'


def _to_iso(value):
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _from_iso(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value


class Participant:
    def __init__(self, id, display_name, category, age_group=None, skill_tier=None,
                 partner_id=None, partner_name=None):
        self.id = id
        self.display_name = display_name
        self.category = category
        self.age_group = age_group
        self.skill_tier = skill_tier
        self.partner_id = partner_id
        self.partner_name = partner_name

    @property
    def player_ids(self) -> List[str]:
        ids = [self.id]
        if self.partner_id:
            ids.append(self.partner_id)
        return ids

    @property
    def team_name(self) -> str:
        if self.partner_name:
            return f"{self.display_name} / {self.partner_name}"
        return self.display_name

    def to_side(self) -> 'Side':
        return Side(self.player_ids, self.team_name)

    def to_dict(self) -> Dict:
        data = {
            'id': self.id,
            'displayName': self.display_name,
            'category': self.category,
        }
        for key, value in (('ageGroup', self.age_group), ('skillTier', self.skill_tier),
                           ('partnerId', self.partner_id), ('partnerName', self.partner_name)):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Participant':
        return cls(
            id=data['id'],
            display_name=data.get('displayName') or data.get('name') or data['id'],
            category=data.get('category', 'singles'),
            age_group=data.get('ageGroup'),
            skill_tier=data.get('skillTier'),
            partner_id=data.get('partnerId'),
            partner_name=data.get('partnerName'),
        )

    def __repr__(self):
        return f"Participant(id={self.id}, name={self.team_name}, category={self.category})"


class Side:
    """One side of a match: the player ids on it and its display name."""

    def __init__(self, player_ids=None, name=TBD):
        self.player_ids = list(player_ids) if player_ids else []
        self.name = name

    @classmethod
    def tbd(cls) -> 'Side':
        return cls()

    @property
    def is_tbd(self) -> bool:
        return not self.player_ids

    def __eq__(self, other):
        if not isinstance(other, Side):
            return NotImplemented
        return self.player_ids == other.player_ids and self.name == other.name

    def __repr__(self):
        return f"Side(name={self.name}, player_ids={self.player_ids})"


class Lineup:
    """The two sides of a match. Use ``make_lineup`` to pick the variant."""
    kind = None
    max_players = 0

    def __init__(self, team1: Optional[Side] = None, team2: Optional[Side] = None):
        self.team1 = team1 or Side.tbd()
        self.team2 = team2 or Side.tbd()
        self._check(self.team1)
        self._check(self.team2)

    def _check(self, side: Side):
        if len(side.player_ids) > self.max_players:
            raise InvalidConfiguration(
                f"A {self.kind} side holds at most {self.max_players} player(s), got {side.player_ids}"
            )

    def side(self, team: str) -> Side:
        return self.team1 if team == 'team1' else self.team2

    def set_side(self, team: str, side: Side):
        self._check(side)
        if team == 'team1':
            self.team1 = side
        else:
            self.team2 = side

    @property
    def is_complete(self) -> bool:
        return not self.team1.is_tbd and not self.team2.is_tbd

    def team_of(self, player_id) -> Optional[str]:
        for team in TEAMS:
            if player_id in self.side(team).player_ids:
                return team
        return None

    def winner_player_ids(self, team: str) -> List[str]:
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}(team1={self.team1.name}, team2={self.team2.name})"


class SinglesLineup(Lineup):
    kind = 'singles'
    max_players = 1

    def winner_player_ids(self, team: str) -> List[str]:
        return self.side(team).player_ids[:1]


class DoublesLineup(Lineup):
    max_players = 2

    def __init__(self, team1=None, team2=None, kind='doubles'):
        self.kind = kind
        super().__init__(team1, team2)

    def winner_player_ids(self, team: str) -> List[str]:
        return list(self.side(team).player_ids)


def make_lineup(category: str, team1: Optional[Side] = None, team2: Optional[Side] = None) -> Lineup:
    """Build the lineup variant matching a category."""
    if category == 'singles':
        return SinglesLineup(team1, team2)
    if category in ('doubles', 'mixed'):
        return DoublesLineup(team1, team2, kind=category)
    raise InvalidConfiguration(f"Unknown category: {category}")


class ScoringFormat:
    def __init__(self, points_per_game=21, games_per_match=3, win_by_margin=2, max_points=None):
        if points_per_game < 1 or games_per_match < 1 or win_by_margin < 1:
            raise InvalidConfiguration("Scoring format values must be positive")
        if max_points is not None and max_points < points_per_game:
            raise InvalidConfiguration("maxPoints cannot be lower than pointsPerGame")
        self.points_per_game = points_per_game
        self.games_per_match = games_per_match
        self.win_by_margin = win_by_margin
        self.max_points = max_points

    @property
    def games_to_win(self) -> int:
        return -(-self.games_per_match // 2)

    def to_dict(self) -> Dict:
        data = {
            'pointsPerGame': self.points_per_game,
            'gamesPerMatch': self.games_per_match,
            'winByMargin': self.win_by_margin,
        }
        if self.max_points is not None:
            data['maxPoints'] = self.max_points
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'ScoringFormat':
        return cls(
            points_per_game=data.get('pointsPerGame', 21),
            games_per_match=data.get('gamesPerMatch', 3),
            win_by_margin=data.get('winByMargin', data.get('winBy', 2)),
            max_points=data.get('maxPoints'),
        )

    def __eq__(self, other):
        if not isinstance(other, ScoringFormat):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"ScoringFormat(points_per_game={self.points_per_game}, games_per_match={self.games_per_match}, "
                f"win_by_margin={self.win_by_margin}, max_points={self.max_points})")


class Game:
    def __init__(self, game_number, team1_score=0, team2_score=0, winner=None, completed_at=None):
        self.game_number = game_number
        self.team1_score = team1_score
        self.team2_score = team2_score
        self.winner = winner
        self.completed_at = completed_at

    def score(self, team: str) -> int:
        return self.team1_score if team == 'team1' else self.team2_score

    def to_dict(self) -> Dict:
        data = {
            'gameNumber': self.game_number,
            'team1Score': self.team1_score,
            'team2Score': self.team2_score,
        }
        if self.winner:
            data['winner'] = self.winner
            data['completedAt'] = _to_iso(self.completed_at)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Game':
        return cls(
            game_number=data['gameNumber'],
            team1_score=data.get('team1Score', 0),
            team2_score=data.get('team2Score', 0),
            winner=data.get('winner'),
            completed_at=_from_iso(data.get('completedAt')),
        )

    def __repr__(self):
        return f"Game({self.game_number}: {self.team1_score}-{self.team2_score}, winner={self.winner})"


class Match:
    def __init__(self, tournament_id, category, round_number, round_name, match_number,
                 lineup: Optional[Lineup] = None, age_group=None,
                 scoring_format: Optional[ScoringFormat] = None, status=SCHEDULED, games=None,
                 winner_team=None, winner_player_ids=None, completion_type=None, match_result=None,
                 start_time=None, end_time=None, walkover_reason=None, version=0):
        self.tournament_id = tournament_id
        self.category = category
        self.age_group = age_group
        self.round_number = round_number
        self.round_name = round_name
        self.match_number = match_number
        self.lineup = lineup or make_lineup(category)
        self.scoring_format = scoring_format or ScoringFormat()
        self.status = status
        self.games = games if games is not None else []
        self.winner_team = winner_team
        self.winner_player_ids = winner_player_ids if winner_player_ids is not None else []
        self.completion_type = completion_type
        self.match_result = match_result
        self.start_time = start_time
        self.end_time = end_time
        self.walkover_reason = walkover_reason
        self.version = version

    @property
    def team1(self) -> Side:
        return self.lineup.team1

    @property
    def team2(self) -> Side:
        return self.lineup.team2

    @property
    def is_bye(self) -> bool:
        return (self.status == COMPLETED and self.completion_type == 'walkover'
                and not self.games and (self.team1.is_tbd or self.team2.is_tbd))

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def winner_side(self) -> Optional[Side]:
        if not self.winner_team:
            return None
        return self.lineup.side(self.winner_team)

    def games_won(self, team: str) -> int:
        return sum(1 for game in self.games if game.winner == team)

    def copy(self) -> 'Match':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        data = {
            'tournamentId': self.tournament_id,
            'category': self.category,
            'roundNumber': self.round_number,
            'roundName': self.round_name,
            'matchNumber': self.match_number,
            'team1PlayerIds': list(self.team1.player_ids),
            'team2PlayerIds': list(self.team2.player_ids),
            'team1Name': self.team1.name,
            'team2Name': self.team2.name,
            'scoringFormat': self.scoring_format.to_dict(),
            'games': [game.to_dict() for game in self.games],
            'status': self.status,
            'winnerPlayerIds': list(self.winner_player_ids),
            'version': self.version,
        }
        optional = (
            ('ageGroup', self.age_group),
            ('winnerTeam', self.winner_team),
            ('completionType', self.completion_type),
            ('matchResult', _result_to_dict(self.match_result)),
            ('startTime', _to_iso(self.start_time)),
            ('endTime', _to_iso(self.end_time)),
            ('walkoverReason', self.walkover_reason),
        )
        for key, value in optional:
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'Match':
        category = data['category']
        lineup = make_lineup(
            category,
            Side(data.get('team1PlayerIds'), data.get('team1Name', TBD)),
            Side(data.get('team2PlayerIds'), data.get('team2Name', TBD)),
        )
        result = data.get('matchResult')
        if result:
            result = dict(result)
            result['completedAt'] = _from_iso(result.get('completedAt'))
        return cls(
            tournament_id=data['tournamentId'],
            category=category,
            age_group=data.get('ageGroup'),
            round_number=data['roundNumber'],
            round_name=data['roundName'],
            match_number=data['matchNumber'],
            lineup=lineup,
            scoring_format=ScoringFormat.from_dict(data.get('scoringFormat') or {}),
            status=data.get('status', SCHEDULED),
            games=[Game.from_dict(g) for g in data.get('games') or []],
            winner_team=data.get('winnerTeam'),
            winner_player_ids=list(data.get('winnerPlayerIds') or []),
            completion_type=data.get('completionType'),
            match_result=result,
            start_time=_from_iso(data.get('startTime')),
            end_time=_from_iso(data.get('endTime')),
            walkover_reason=data.get('walkoverReason'),
            version=data.get('version', 0),
        )

    def __repr__(self):
        return (f"Match(number={self.match_number}, round={self.round_name}, "
                f"{self.team1.name} vs {self.team2.name}, status={self.status})")


def _result_to_dict(result):
    if result is None:
        return None
    data = dict(result)
    data['completedAt'] = _to_iso(data.get('completedAt'))
    return data


def empty_record() -> Dict[str, int]:
    return {'played': 0, 'won': 0, 'lost': 0}


class PlayerStats:
    def __init__(self, player_id, total_matches=0, wins=0, losses=0, win_rate=0.0,
                 current_streak=0, longest_streak=0, recent_form=None, category_records=None,
                 total_games_won=0, total_games_lost=0, favorite_category=None):
        self.player_id = player_id
        self.total_matches = total_matches
        self.wins = wins
        self.losses = losses
        self.win_rate = win_rate
        self.current_streak = current_streak
        self.longest_streak = longest_streak
        self.recent_form = list(recent_form) if recent_form else []
        self.category_records = {category: empty_record() for category in CATEGORIES}
        if category_records:
            for category, record in category_records.items():
                self.category_records[category] = dict(record)
        self.total_games_won = total_games_won
        self.total_games_lost = total_games_lost
        self.favorite_category = favorite_category

    def copy(self) -> 'PlayerStats':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict:
        data = {
            'playerId': self.player_id,
            'totalMatches': self.total_matches,
            'wins': self.wins,
            'losses': self.losses,
            'winRate': self.win_rate,
            'currentStreak': self.current_streak,
            'longestStreak': self.longest_streak,
            'recentForm': list(self.recent_form),
            'totalGamesWon': self.total_games_won,
            'totalGamesLost': self.total_games_lost,
            'favoriteCategory': self.favorite_category,
        }
        for category, record in self.category_records.items():
            data[f'{category}Record'] = dict(record)
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> 'PlayerStats':
        records = {}
        for key, value in data.items():
            if key.endswith('Record') and isinstance(value, dict):
                records[key[:-len('Record')]] = value
        return cls(
            player_id=data['playerId'],
            total_matches=data.get('totalMatches', 0),
            wins=data.get('wins', 0),
            losses=data.get('losses', 0),
            win_rate=data.get('winRate', 0.0),
            current_streak=data.get('currentStreak', 0),
            longest_streak=data.get('longestStreak', 0),
            recent_form=data.get('recentForm'),
            category_records=records,
            total_games_won=data.get('totalGamesWon', 0),
            total_games_lost=data.get('totalGamesLost', 0),
            favorite_category=data.get('favoriteCategory'),
        )

    def __repr__(self):
        return (f"PlayerStats(player_id={self.player_id}, wins={self.wins}, losses={self.losses}, "
                f"streak={self.current_streak})")
