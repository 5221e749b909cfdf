"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip threaded and exhaustive checks
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_engine.config import BracketSettings
from bracket_engine.models import MatchStatus, Participant, SeedingMethod, Tournament, TournamentFormat
from bracket_engine.service import BracketService
from bracket_engine.store import MemoryStore


@pytest.fixture
def make_participants():
    """Participants T1..Tn, pre-seeded 1..n so MANUAL seeding keeps that order."""
    def _make(count, prefix='T'):
        return [Participant(f'{prefix}{i}', seed_number=i) for i in range(1, count + 1)]
    return _make


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def make_service(store):
    def _make(**settings):
        settings.setdefault('random_seed', 7)
        return BracketService(store, settings=BracketSettings(**settings))
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def make_tournament(store, make_participants):
    def _make(count, format=TournamentFormat.SINGLE_ELIMINATION, tournament_id='cup',
              seeding_method=SeedingMethod.MANUAL):
        tournament = Tournament(
            tournament_id,
            format=format,
            seeding_method=seeding_method,
            participants=make_participants(count),
        )
        store.add_tournament(tournament)
        return tournament
    return _make


@pytest.fixture
def node_at(store):
    """Look up a stored node by bracket type, round and position."""
    def _find(tournament_id, bracket_type, round_number, position):
        for node in store.list_nodes(tournament_id):
            if (node.bracket_type == bracket_type and node.round_number == round_number
                    and node.position == position):
                return node
        raise AssertionError(f"No {bracket_type} node at round {round_number} position {position}")
    return _find


@pytest.fixture
def match_at(store, node_at):
    """The match currently attached to a node, or None."""
    def _find(tournament_id, bracket_type, round_number, position):
        node = node_at(tournament_id, bracket_type, round_number, position)
        if node.match_id is None:
            return None
        return store.get_match(node.match_id)
    return _find


@pytest.fixture
def play_out(store):
    """Complete every playable match until none is left. Returns the number played."""
    def _play(service, tournament_id, pick_winner):
        played = 0
        while True:
            ready = [
                m for m in store.list_matches(tournament_id)
                if m.match_status == MatchStatus.UPCOMING and m.is_full
            ]
            if not ready:
                return played
            match = ready[0]
            service.complete_match(match.id, pick_winner(match))
            played += 1
    return _play


def seed_of(team_id):
    """T7 -> 7"""
    return int(team_id[1:])


@pytest.fixture
def chalk():
    """Winner picker: the better (lower) seed always wins."""
    return lambda match: min(match.teams, key=seed_of)


@pytest.fixture
def upsets():
    """Winner picker: the worse (higher) seed always wins."""
    return lambda match: max(match.teams, key=seed_of)
