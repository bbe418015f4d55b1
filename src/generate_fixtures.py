import argparse
import os
import random

import yaml

from engine.fixtures import FixtureConfig, TOURNAMENT_FORMATS, generate_fixtures
from engine.models import Participant
from engine.seeding import SEEDING_POLICIES


def load_participants(file_path):
    """Load participants from a YAML file, grouped by category or as a flat list."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file) or {}

    if isinstance(data, list):
        entries = data
    else:
        entries = []
        for category, category_entries in data.items():
            for entry in category_entries or []:
                entry = dict(entry)
                entry.setdefault('category', category)
                entries.append(entry)

    participants = []
    for entry in entries:
        if entry.get('isApproved', True):
            participants.append(Participant.from_dict(entry))
    return participants


def format_fixtures(matches):
    """Render matches as text blocks, one per category / age group."""
    lines = []
    current_group = None
    for match in sorted(matches, key=lambda m: m.match_number):
        group = (match.category, match.age_group or 'open')
        if group != current_group:
            if current_group is not None:
                lines.append('')
            lines.append(f"# {group[0].capitalize()} / {group[1]}")
            current_group = group
        line = f"M{match.match_number} {match.round_name}: {match.team1.name} vs {match.team2.name}"
        if match.is_bye:
            line += f" (bye: {match.winner_side.name})"
        lines.append(line)
    return '\n'.join(lines)


def main(argv=None):
    script_dir = os.path.dirname(__file__)
    base_dir = os.path.dirname(script_dir)

    parser = argparse.ArgumentParser(description='Generate tournament fixtures from a participants file.')
    parser.add_argument('participants_file', nargs='?',
                        default=os.path.join(base_dir, 'data', 'participants.yaml'))
    parser.add_argument('--format', dest='tournament_format', choices=TOURNAMENT_FORMATS, default='knockout')
    parser.add_argument('--seeding', choices=SEEDING_POLICIES, default='skill')
    parser.add_argument('--no-age-groups', action='store_true', help='Ignore age groups when grouping')
    parser.add_argument('--random-seed', type=int, default=None)
    parser.add_argument('--tournament-id', default='local')
    args = parser.parse_args(argv)

    participants = load_participants(args.participants_file)
    if not participants:
        return

    config = FixtureConfig(seeding_policy=args.seeding, group_by_age_group=not args.no_age_groups)
    matches = generate_fixtures(args.tournament_id, args.tournament_format, participants, config,
                                rng=random.Random(args.random_seed))
    print(format_fixtures(matches))


if __name__ == '__main__':
    main()
