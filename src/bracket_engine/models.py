from enum import Enum

from .errors import (
    InvalidMatchTransition,
    InvalidSeedingMethod,
    InvalidWinner,
    UnsupportedFormat,
)


class TournamentFormat(str, Enum):
    SINGLE_ELIMINATION = 'SINGLE_ELIMINATION'
    DOUBLE_ELIMINATION = 'DOUBLE_ELIMINATION'
    ROUND_ROBIN = 'ROUND_ROBIN'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedFormat(value) from None


class SeedingMethod(str, Enum):
    RANDOM = 'RANDOM'
    RANKING_BASED = 'RANKING_BASED'
    MANUAL = 'MANUAL'

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            raise InvalidSeedingMethod(value) from None


class BracketType(str, Enum):
    MAIN = 'MAIN'
    WINNERS = 'WINNERS'
    LOSERS = 'LOSERS'
    GRAND_FINAL = 'GRAND_FINAL'


class MatchStatus(str, Enum):
    UPCOMING = 'UPCOMING'
    LIVE = 'LIVE'
    COMPLETED = 'COMPLETED'
    CANCELLED = 'CANCELLED'


class Participant:
    def __init__(self, id, name=None, seed_number=None, ranking_points=None, attributes=None):
        self.id = id
        self.name = name if name is not None else str(id)
        self.seed_number = seed_number
        self.ranking_points = ranking_points
        self.attributes = attributes if attributes else {}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'seed_number': self.seed_number,
            'ranking_points': self.ranking_points,
            'attributes': dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            data['id'],
            name=data.get('name'),
            seed_number=data.get('seed_number'),
            ranking_points=data.get('ranking_points'),
            attributes=data.get('attributes'),
        )

    def __repr__(self):
        return f"Participant(id={self.id}, seed_number={self.seed_number})"


class Tournament:
    def __init__(self, id, name=None, format=TournamentFormat.SINGLE_ELIMINATION,
                 seeding_method=None, participants=None):
        self.id = id
        self.name = name if name is not None else str(id)
        self.format = format
        self.seeding_method = seeding_method
        self.participants = participants if participants else []
        self.bracket_generated = False
        self.bracket_generated_at = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'format': _enum_value(self.format),
            'seeding_method': _enum_value(self.seeding_method),
            'participants': [p.to_dict() for p in self.participants],
            'bracket_generated': self.bracket_generated,
            'bracket_generated_at': self.bracket_generated_at,
        }

    @classmethod
    def from_dict(cls, data):
        seeding_method = data.get('seeding_method')
        tournament = cls(
            data['id'],
            name=data.get('name'),
            format=TournamentFormat(data['format']),
            seeding_method=SeedingMethod(seeding_method) if seeding_method else None,
            participants=[Participant.from_dict(p) for p in data.get('participants') or []],
        )
        tournament.bracket_generated = data.get('bracket_generated', False)
        tournament.bracket_generated_at = data.get('bracket_generated_at')
        return tournament

    def __repr__(self):
        return (f"Tournament(id={self.id}, format={_enum_value(self.format)}, "
                f"participants={len(self.participants)}, bracket_generated={self.bracket_generated})")


class BracketNode:
    """
    One round/position slot of a bracket.

    Edges (`next_node_id`, `loser_next_node_id`) hold node ids, never node
    objects. Inside a BracketPlan the ids are indices into the plan's node
    list; once assembled they are the ids assigned by the store.
    """

    def __init__(self, round_number, position, bracket_type=BracketType.MAIN, round_label=None,
                 seed_number=None, bye_team_id=None, match_id=None, next_node_id=None,
                 loser_next_node_id=None, expected_entrants=2, tournament_id=None, id=None):
        self.id = id
        self.tournament_id = tournament_id
        self.round_number = round_number
        self.position = position
        self.bracket_type = bracket_type
        self.round_label = round_label
        self.seed_number = seed_number
        self.bye_team_id = bye_team_id
        self.match_id = match_id
        self.next_node_id = next_node_id
        self.loser_next_node_id = loser_next_node_id
        self.expected_entrants = expected_entrants

    @property
    def is_terminal(self):
        return self.next_node_id is None

    @property
    def is_pass_through(self):
        return self.expected_entrants == 1

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'round_number': self.round_number,
            'position': self.position,
            'bracket_type': _enum_value(self.bracket_type),
            'round_label': self.round_label,
            'seed_number': self.seed_number,
            'bye_team_id': self.bye_team_id,
            'match_id': self.match_id,
            'next_node_id': self.next_node_id,
            'loser_next_node_id': self.loser_next_node_id,
            'expected_entrants': self.expected_entrants,
        }

    @classmethod
    def from_dict(cls, data):
        fields = dict(data)
        fields['bracket_type'] = BracketType(fields['bracket_type'])
        return cls(**fields)

    def __repr__(self):
        return (f"BracketNode(id={self.id}, type={_enum_value(self.bracket_type)}, "
                f"round={self.round_number}, position={self.position})")


class Match:
    def __init__(self, team1_id=None, team2_id=None, round=None, match_status=MatchStatus.UPCOMING,
                 winner_id=None, node_id=None, tournament_id=None, id=None):
        self.id = id
        self.tournament_id = tournament_id
        self.node_id = node_id
        self.team1_id = team1_id
        self.team2_id = team2_id
        self.round = round
        self.match_status = match_status
        self.winner_id = winner_id

    @property
    def teams(self):
        return (self.team1_id, self.team2_id)

    @property
    def is_full(self):
        return self.team1_id is not None and self.team2_id is not None

    @property
    def loser_id(self):
        if self.winner_id is None:
            return None
        return self.team2_id if self.winner_id == self.team1_id else self.team1_id

    def has_team(self, team_id):
        return team_id is not None and team_id in self.teams

    def place_team(self, team_id):
        """Put a team into the first empty slot. Returns False if both are taken."""
        if self.team1_id is None:
            self.team1_id = team_id
        elif self.team2_id is None:
            self.team2_id = team_id
        else:
            return False
        return True

    def start(self):
        if self.match_status != MatchStatus.UPCOMING:
            raise InvalidMatchTransition(
                f"Match {self.id} cannot go live from {self.match_status.value}")
        if not self.is_full:
            raise InvalidMatchTransition(f"Match {self.id} is still waiting for a team")
        self.match_status = MatchStatus.LIVE

    def complete(self, winner_id):
        """Mark the match completed. Completing twice with the same winner is a no-op."""
        if self.match_status == MatchStatus.COMPLETED:
            if self.winner_id == winner_id:
                return
            raise InvalidMatchTransition(
                f"Match {self.id} already completed with winner {self.winner_id}")
        if self.match_status == MatchStatus.CANCELLED:
            raise InvalidMatchTransition(f"Match {self.id} was cancelled")
        if not self.is_full:
            raise InvalidMatchTransition(f"Match {self.id} is still waiting for a team")
        if not self.has_team(winner_id):
            raise InvalidWinner(self.id, winner_id)
        self.winner_id = winner_id
        self.match_status = MatchStatus.COMPLETED

    def cancel(self):
        if self.match_status in (MatchStatus.COMPLETED, MatchStatus.CANCELLED):
            raise InvalidMatchTransition(
                f"Match {self.id} cannot be cancelled from {self.match_status.value}")
        self.match_status = MatchStatus.CANCELLED

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'node_id': self.node_id,
            'team1_id': self.team1_id,
            'team2_id': self.team2_id,
            'round': self.round,
            'match_status': _enum_value(self.match_status),
            'winner_id': self.winner_id,
        }

    @classmethod
    def from_dict(cls, data):
        fields = dict(data)
        fields['match_status'] = MatchStatus(fields['match_status'])
        return cls(**fields)

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round}, teams={self.teams}, "
                f"status={_enum_value(self.match_status)}, winner={self.winner_id})")


class BracketPlan:
    """
    Builder output: the node arena plus the matches known at build time.

    Each planned match carries `node_id` = index of its node in `nodes`.
    """

    def __init__(self, nodes=None, matches=None):
        self.nodes = nodes if nodes else []
        self.matches = matches if matches else []

    def nodes_of(self, bracket_type, round_number=None):
        return [
            node for node in self.nodes
            if node.bracket_type == bracket_type
            and (round_number is None or node.round_number == round_number)
        ]

    def rounds(self, bracket_type):
        return max((n.round_number for n in self.nodes_of(bracket_type)), default=0)

    def __repr__(self):
        return f"BracketPlan(nodes={len(self.nodes)}, matches={len(self.matches)})"


def _enum_value(value):
    return value.value if isinstance(value, Enum) else value
