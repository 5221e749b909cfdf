"""
Unit tests for data models.
"""
from datetime import datetime

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_engine.errors import (
    InvalidMatchTransition,
    InvalidSeedingMethod,
    InvalidWinner,
    UnsupportedFormat,
)
from bracket_engine.models import (
    BracketNode,
    BracketPlan,
    BracketType,
    Match,
    MatchStatus,
    Participant,
    SeedingMethod,
    Tournament,
    TournamentFormat,
)


class TestEnums:
    """Tests for enum parsing."""

    def test_parse_format(self):
        """Strings and members both parse."""
        assert TournamentFormat.parse('ROUND_ROBIN') == TournamentFormat.ROUND_ROBIN
        assert TournamentFormat.parse(TournamentFormat.DOUBLE_ELIMINATION) == TournamentFormat.DOUBLE_ELIMINATION

    def test_unsupported_format(self):
        """Unknown formats raise UnsupportedFormat."""
        with pytest.raises(UnsupportedFormat) as exc:
            TournamentFormat.parse('SWISS')
        assert exc.value.value == 'SWISS'

    def test_parse_seeding_method(self):
        """Seeding methods parse from their names."""
        assert SeedingMethod.parse('RANKING_BASED') == SeedingMethod.RANKING_BASED

    def test_invalid_seeding_method(self):
        """Unknown seeding methods raise InvalidSeedingMethod."""
        with pytest.raises(InvalidSeedingMethod):
            SeedingMethod.parse('random')


class TestParticipant:
    """Tests for Participant."""

    def test_defaults(self):
        """Name falls back to the id."""
        p = Participant(42)
        assert p.name == '42'
        assert p.seed_number is None
        assert p.attributes == {}


class TestMatch:
    """Tests for the match state machine."""

    def make_match(self, **kwargs):
        return Match(team1_id='A', team2_id='B', round='Final', id=1, **kwargs)

    def test_place_team_fills_team1_then_team2(self):
        """First arrival takes team1, second takes team2, a third is refused."""
        match = Match()
        assert match.place_team('A')
        assert match.teams == ('A', None)
        assert not match.is_full
        assert match.place_team('B')
        assert match.teams == ('A', 'B')
        assert match.is_full
        assert not match.place_team('C')
        assert match.teams == ('A', 'B')

    def test_start(self):
        """Upcoming full match goes live."""
        match = self.make_match()
        match.start()
        assert match.match_status == MatchStatus.LIVE

    def test_start_needs_both_teams(self):
        """A half-filled match cannot go live."""
        with pytest.raises(InvalidMatchTransition):
            Match(team1_id='A').start()

    def test_start_twice(self):
        """Live is not a valid source for start."""
        match = self.make_match()
        match.start()
        with pytest.raises(InvalidMatchTransition):
            match.start()

    def test_complete_from_upcoming_or_live(self):
        """Both upcoming and live matches can be completed."""
        upcoming = self.make_match()
        upcoming.complete('A')
        live = self.make_match()
        live.start()
        live.complete('B')
        assert upcoming.match_status == live.match_status == MatchStatus.COMPLETED
        assert upcoming.winner_id == 'A'
        assert upcoming.loser_id == 'B'
        assert live.loser_id == 'A'

    def test_complete_again_same_winner(self):
        """Repeating a result is a no-op."""
        match = self.make_match()
        match.complete('A')
        match.complete('A')
        assert match.winner_id == 'A'

    def test_complete_again_other_winner(self):
        """A result cannot be overwritten."""
        match = self.make_match()
        match.complete('A')
        with pytest.raises(InvalidMatchTransition):
            match.complete('B')
        assert match.winner_id == 'A'

    def test_winner_must_have_played(self):
        """The winner must be one of the two teams."""
        match = self.make_match()
        with pytest.raises(InvalidWinner):
            match.complete('C')
        assert match.match_status == MatchStatus.UPCOMING

    def test_complete_needs_both_teams(self):
        """A match waiting for an opponent cannot be completed."""
        with pytest.raises(InvalidMatchTransition):
            Match(team1_id='A').complete('A')

    def test_cancel(self):
        """Cancelled matches cannot be completed or cancelled again."""
        match = self.make_match()
        match.cancel()
        assert match.match_status == MatchStatus.CANCELLED
        with pytest.raises(InvalidMatchTransition):
            match.complete('A')
        with pytest.raises(InvalidMatchTransition):
            match.cancel()

    def test_cannot_cancel_completed(self):
        """Completed matches stay completed."""
        match = self.make_match()
        match.complete('A')
        with pytest.raises(InvalidMatchTransition):
            match.cancel()

    def test_loser_before_result(self):
        """No winner, no loser."""
        assert self.make_match().loser_id is None


class TestSerialization:
    """Tests for to_dict/from_dict."""

    def test_tournament(self):
        """Enums and participants survive a dict round trip."""
        tournament = Tournament(
            'cup', name='Cup', format=TournamentFormat.DOUBLE_ELIMINATION,
            seeding_method=SeedingMethod.MANUAL,
            participants=[Participant('A', seed_number=1, ranking_points=1500, attributes={'club': 'X'})],
        )
        tournament.bracket_generated = True
        tournament.bracket_generated_at = datetime(2024, 5, 1, 12, 0)

        data = tournament.to_dict()
        assert data['format'] == 'DOUBLE_ELIMINATION'
        assert data['seeding_method'] == 'MANUAL'

        restored = Tournament.from_dict(data)
        assert restored.format is TournamentFormat.DOUBLE_ELIMINATION
        assert restored.seeding_method is SeedingMethod.MANUAL
        assert restored.bracket_generated_at == datetime(2024, 5, 1, 12, 0)
        assert restored.participants[0].attributes == {'club': 'X'}
        assert restored.participants[0].ranking_points == 1500

    def test_node_and_match(self):
        """Nodes and matches restore their enum fields."""
        node = BracketNode(2, 1, BracketType.LOSERS, 'Losers Round 2', next_node_id=9, expected_entrants=1, id=4)
        restored = BracketNode.from_dict(node.to_dict())
        assert restored.bracket_type is BracketType.LOSERS
        assert restored.next_node_id == 9
        assert restored.is_pass_through

        match = Match('A', 'B', 'Final', MatchStatus.COMPLETED, winner_id='B', node_id=4, id=3)
        assert Match.from_dict(match.to_dict()).match_status is MatchStatus.COMPLETED


class TestBracketPlan:
    """Tests for BracketPlan helpers."""

    def test_nodes_of_and_rounds(self):
        """Filter by bracket type and round."""
        plan = BracketPlan(nodes=[
            BracketNode(1, 0, BracketType.WINNERS),
            BracketNode(1, 1, BracketType.WINNERS),
            BracketNode(2, 0, BracketType.WINNERS),
            BracketNode(1, 0, BracketType.LOSERS),
        ])
        assert len(plan.nodes_of(BracketType.WINNERS)) == 3
        assert len(plan.nodes_of(BracketType.WINNERS, 1)) == 2
        assert plan.rounds(BracketType.WINNERS) == 2
        assert plan.rounds(BracketType.GRAND_FINAL) == 0
