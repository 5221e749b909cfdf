"""
Unit tests for round robin scheduling.
"""
from collections import Counter
from itertools import combinations

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from bracket_engine.errors import InsufficientParticipants
from bracket_engine.models import BracketType, TournamentFormat
from bracket_engine.round_robin import build_round_robin, calculate_round_robin_rounds


def matches_by_round(plan):
    rounds = {}
    for match in plan.matches:
        rounds.setdefault(plan.nodes[match.node_id].round_number, []).append(match)
    return rounds


class TestRoundCount:
    """Tests for calculate_round_robin_rounds."""

    def test_even(self):
        """n - 1 rounds for an even field."""
        assert calculate_round_robin_rounds(4) == 3
        assert calculate_round_robin_rounds(10) == 9

    def test_odd(self):
        """n rounds for an odd field."""
        assert calculate_round_robin_rounds(3) == 3
        assert calculate_round_robin_rounds(7) == 7

    def test_too_small(self):
        """No rounds without two teams."""
        assert calculate_round_robin_rounds(1) == 0
        assert calculate_round_robin_rounds(0) == 0


class TestBuildRoundRobin:
    """Tests for build_round_robin."""

    @pytest.mark.parametrize('count', [0, 1])
    def test_insufficient_participants(self, make_participants, count):
        """Fewer than two participants cannot be scheduled."""
        with pytest.raises(InsufficientParticipants):
            build_round_robin(make_participants(count))

    def test_four_teams(self, make_participants):
        """4 teams: 3 rounds of 2 matches, 6 in total, 3 per team."""
        plan = build_round_robin(make_participants(4))
        rounds = matches_by_round(plan)

        assert sorted(rounds) == [1, 2, 3]
        assert all(len(matches) == 2 for matches in rounds.values())
        assert len(plan.matches) == 6

        played = Counter(team for m in plan.matches for team in m.teams)
        assert played == {'T1': 3, 'T2': 3, 'T3': 3, 'T4': 3}

    def test_first_round_pairs_ends_inward(self, make_participants):
        """Round 1 pairs slot i with slot n-1-i."""
        plan = build_round_robin(make_participants(6))
        first = matches_by_round(plan)[1]
        assert [m.teams for m in first] == [('T1', 'T6'), ('T2', 'T5'), ('T3', 'T4')]

    @pytest.mark.parametrize('count', range(2, 13))
    def test_every_pair_once(self, make_participants, count):
        """Every unordered pair meets exactly once, n(n-1)/2 matches in total."""
        participants = make_participants(count)
        plan = build_round_robin(participants)

        pairs = [frozenset(m.teams) for m in plan.matches]
        assert len(pairs) == count * (count - 1) // 2
        assert set(pairs) == {frozenset(pair) for pair in combinations([p.id for p in participants], 2)}

    @pytest.mark.parametrize('count', range(2, 13))
    def test_round_shape(self, make_participants, count):
        """Nobody plays twice in a round; for an odd field each team sits out exactly once."""
        plan = build_round_robin(make_participants(count))
        rounds = matches_by_round(plan)
        assert len(rounds) == calculate_round_robin_rounds(count)

        sat_out = Counter()
        for round_number, matches in rounds.items():
            teams = [team for m in matches for team in m.teams]
            assert len(teams) == len(set(teams))
            assert len(matches) == count // 2
            for p in make_participants(count):
                if p.id not in teams:
                    sat_out[p.id] += 1

        if count % 2 == 1:
            assert sorted(sat_out.values()) == [1] * count
        else:
            assert not sat_out

    @pytest.mark.parametrize('count', [5, 8])
    def test_nodes(self, make_participants, count):
        """Main bracket nodes, no edges, contiguous positions per round."""
        plan = build_round_robin(make_participants(count))
        assert len(plan.nodes) == len(plan.matches)
        for node in plan.nodes:
            assert node.bracket_type == BracketType.MAIN
            assert node.next_node_id is None
            assert node.loser_next_node_id is None
            assert node.round_label == f"Round {node.round_number}"

        for round_number in range(1, plan.rounds(BracketType.MAIN) + 1):
            positions = [n.position for n in plan.nodes_of(BracketType.MAIN, round_number)]
            assert positions == list(range(len(positions)))


class TestRoundRobinService:
    """Round robin through the service: no advancement and no champion."""

    def test_complete_match_advances_nothing(self, service, make_tournament, store):
        """Completing a round robin match changes no other match."""
        make_tournament(4, format=TournamentFormat.ROUND_ROBIN)
        service.generate_bracket('cup')

        match = store.list_matches('cup')[0]
        assert service.complete_match(match.id, match.team1_id) == []
        assert len(store.list_matches('cup')) == 6
        assert service.champion('cup') is None

    def test_play_out(self, service, make_tournament, play_out, chalk):
        """Every scheduled match can be played."""
        make_tournament(5, format=TournamentFormat.ROUND_ROBIN)
        service.generate_bracket('cup')
        assert play_out(service, 'cup', chalk) == 10
