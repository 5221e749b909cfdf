"""
Exceptions raised by the bracket engine.
"""


class BracketError(Exception):
    """Base class for all bracket engine failures."""


class InsufficientParticipants(BracketError):
    def __init__(self, count: int):
        super().__init__(f"Need at least 2 participants to generate bracket, got {count}")
        self.count = count


class UnsupportedFormat(BracketError):
    def __init__(self, value):
        super().__init__(f"Unsupported tournament format: {value}")
        self.value = value


class InvalidSeedingMethod(BracketError):
    def __init__(self, value):
        super().__init__(f"Invalid seeding method: {value}")
        self.value = value


class AlreadyGenerated(BracketError):
    def __init__(self, tournament_id):
        super().__init__(f"Bracket already generated for tournament {tournament_id}")
        self.tournament_id = tournament_id


class TournamentNotFound(BracketError):
    def __init__(self, tournament_id):
        super().__init__(f"Tournament not found: {tournament_id}")
        self.tournament_id = tournament_id


class MatchNotFound(BracketError):
    def __init__(self, match_id):
        super().__init__(f"Match not found: {match_id}")
        self.match_id = match_id


class InvalidMatchTransition(BracketError):
    """A match status change that the state machine does not allow."""


class InvalidWinner(BracketError):
    def __init__(self, match_id, winner_id):
        super().__init__(f"Team {winner_id} did not play in match {match_id}")
        self.match_id = match_id
        self.winner_id = winner_id


class LockTimeout(BracketError):
    def __init__(self, key: str, timeout: float):
        super().__init__(f"Could not acquire lock '{key}' within {timeout}s")
        self.key = key
        self.timeout = timeout


class ConfigError(BracketError):
    """Invalid bracket settings."""


class BracketIntegrityError(BracketError):
    """
    The stored node graph violates an assembly invariant.

    These are data-integrity alerts, not user errors: they mean the graph
    was corrupted after (or during) assembly.
    """


class NodeNotFound(BracketIntegrityError):
    pass


class TargetMatchMissing(BracketIntegrityError):
    pass


class SlotConflict(BracketIntegrityError):
    pass
