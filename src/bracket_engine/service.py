"""
Entry points used by the surrounding tournament service.
"""
import logging
import random
from typing import Callable, List, Optional

from .advancement import AdvancementEngine
from .assembly import AssembledBracket, BracketAssembler
from .config import BracketSettings
from .double_elimination import build_double_elimination
from .elimination import build_single_elimination
from .errors import AlreadyGenerated, InsufficientParticipants, MatchNotFound, TournamentNotFound
from .locks import FileKeyedLock, KeyedLock, match_lock_key
from .models import BracketType, Match, MatchStatus, Participant, SeedingMethod, TournamentFormat
from .round_robin import build_round_robin
from .seeding import next_power_of_two, seed_order, seed_participants
from .store import MemoryStore, YamlStore

logger = logging.getLogger(__name__)


def build_plan(tournament_format, seeded: List[Participant]):
    """Dispatch to the builder for a format."""
    tournament_format = TournamentFormat.parse(tournament_format)
    if tournament_format == TournamentFormat.ROUND_ROBIN:
        return build_round_robin(seeded)

    order = seed_order(next_power_of_two(len(seeded))) if len(seeded) >= 2 else None
    if tournament_format == TournamentFormat.SINGLE_ELIMINATION:
        return build_single_elimination(seeded, order)
    return build_double_elimination(seeded, order)


class BracketService:
    def __init__(self, store, settings: Optional[BracketSettings] = None, locks=None,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.settings = settings if settings is not None else BracketSettings()
        self.locks = locks if locks is not None else KeyedLock(timeout=self.settings.lock_timeout)
        self.rng = rng if rng is not None else random.Random(self.settings.random_seed)
        self.assembler = BracketAssembler(store)
        self.engine = AdvancementEngine(store, self.locks,
                                        third_place_match=self.settings.third_place_match)

    def generate_bracket(self, tournament_id, format=None, seeding_method=None,
                         ranking_lookup: Optional[Callable[[Participant], Optional[float]]] = None
                         ) -> AssembledBracket:
        """
        Seed the tournament's participants, build the bracket for its format
        and store it atomically.
        """
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            raise TournamentNotFound(tournament_id)
        if tournament.bracket_generated:
            raise AlreadyGenerated(tournament_id)

        tournament_format = TournamentFormat.parse(format or tournament.format)
        method = SeedingMethod.parse(
            seeding_method or tournament.seeding_method or self.settings.default_seeding_method)

        if len(tournament.participants) < 2:
            raise InsufficientParticipants(len(tournament.participants))

        seeded = seed_participants(
            tournament.participants,
            method,
            ranking_lookup=ranking_lookup,
            rng=self.rng,
            default_ranking=self.settings.default_ranking_points,
        )
        plan = build_plan(tournament_format, seeded)

        with self.store.transaction():
            assembled = self.assembler.assemble(tournament_id, plan)
            # Seed numbers are the only participant field the engine writes
            assembled.tournament.participants = seeded
            assembled.tournament.format = tournament_format
            assembled.tournament.seeding_method = method
            self.store.save_tournament(assembled.tournament)

        logger.info(f"Tournament {tournament_id}: {tournament_format.value} bracket with "
                    f"{len(seeded)} participants seeded {method.value}")
        return assembled

    def start_match(self, match_id) -> Match:
        with self.locks.hold(match_lock_key(match_id)):
            with self.store.transaction():
                match = self._get_match(match_id)
                match.start()
                self.store.update_match(match)
        return match

    def complete_match(self, match_id, winner_id) -> List[Match]:
        """
        Record the result and advance the winner (and loser, in double
        elimination). Returns the downstream matches that changed.
        """
        with self.locks.hold(match_lock_key(match_id)):
            with self.store.transaction():
                match = self._get_match(match_id)
                match.complete(winner_id)
                self.store.update_match(match)

        if match.node_id is None:
            # Standalone match (3rd place): nothing downstream
            return []
        return self.engine.advance(match_id, winner_id)

    def advance_winner(self, match_id, winner_id=None) -> List[Match]:
        return self.engine.advance(match_id, winner_id)

    def get_bracket(self, tournament_id) -> AssembledBracket:
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            raise TournamentNotFound(tournament_id)
        return AssembledBracket(
            tournament,
            self.store.list_nodes(tournament_id),
            self.store.list_matches(tournament_id),
        )

    def champion(self, tournament_id):
        """Winner of the terminal elimination match, once it is completed."""
        tournament = self.store.get_tournament(tournament_id)
        if tournament is None:
            raise TournamentNotFound(tournament_id)
        if not tournament.bracket_generated or tournament.format == TournamentFormat.ROUND_ROBIN:
            return None

        if tournament.format == TournamentFormat.DOUBLE_ELIMINATION:
            terminal_type = BracketType.GRAND_FINAL
        else:
            terminal_type = BracketType.MAIN

        for node in self.store.list_nodes(tournament_id):
            if node.bracket_type != terminal_type or not node.is_terminal:
                continue
            if node.match_id is None:
                return None
            match = self.store.get_match(node.match_id)
            if match is None or match.match_status != MatchStatus.COMPLETED:
                return None
            return match.winner_id
        return None

    def _get_match(self, match_id) -> Match:
        match = self.store.get_match(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match


def create_service(settings: Optional[BracketSettings] = None) -> BracketService:
    """Wire store and locks for the configured storage backend."""
    settings = settings if settings is not None else BracketSettings()
    if settings.storage == 'yaml':
        store = YamlStore(settings.data_dir, timeout=settings.lock_timeout)
        locks = FileKeyedLock(settings.lock_dir, timeout=settings.lock_timeout)
    else:
        store = MemoryStore()
        locks = KeyedLock(timeout=settings.lock_timeout)
    return BracketService(store, settings=settings, locks=locks)
