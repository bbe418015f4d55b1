"""
Shared pytest fixtures for the fixture and scoring engine tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
from datetime import datetime

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine.models import Participant, ScoringFormat


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the YAML store at a temporary data directory."""
    import store

    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(store, 'DATA_DIR', str(data_dir))
    return str(data_dir)


@pytest.fixture
def client(temp_data_dir):
    """Create a test client backed by the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def sample_participants():
    """Five singles players with mixed skill tiers."""
    return [
        Participant(id="p1", display_name="Asha", category="singles", skill_tier="beginner"),
        Participant(id="p2", display_name="Bruno", category="singles", skill_tier="professional"),
        Participant(id="p3", display_name="Chen", category="singles"),
        Participant(id="p4", display_name="Dana", category="singles", skill_tier="advanced"),
        Participant(id="p5", display_name="Eli", category="singles", skill_tier="advanced"),
    ]


@pytest.fixture
def doubles_participants():
    """Four doubles pairs."""
    return [
        Participant(id=f"d{i}", display_name=f"Player {i}", category="doubles",
                    partner_id=f"d{i}b", partner_name=f"Partner {i}")
        for i in range(1, 5)
    ]


@pytest.fixture
def badminton_format():
    """Best of three games to 21, win by 2, capped at 30."""
    return ScoringFormat(points_per_game=21, games_per_match=3, win_by_margin=2, max_points=30)


@pytest.fixture
def start_time():
    return datetime(2026, 7, 4, 10, 0, 0)
