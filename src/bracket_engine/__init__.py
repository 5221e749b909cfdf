"""
Bracket engine: seeding, bracket construction and result advancement for
single elimination, double elimination and round robin tournaments.
"""
from .advancement import AdvancementEngine
from .assembly import AssembledBracket, BracketAssembler
from .config import BracketSettings, load_settings
from .errors import (
    AlreadyGenerated,
    BracketError,
    BracketIntegrityError,
    ConfigError,
    InsufficientParticipants,
    InvalidMatchTransition,
    InvalidSeedingMethod,
    InvalidWinner,
    LockTimeout,
    MatchNotFound,
    NodeNotFound,
    SlotConflict,
    TargetMatchMissing,
    TournamentNotFound,
    UnsupportedFormat,
)
from .locks import FileKeyedLock, KeyedLock
from .models import (
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
from .seeding import calculate_byes, next_power_of_two, seed_order, seed_participants
from .service import BracketService, build_plan, create_service
from .store import MemoryStore, YamlStore

__version__ = '0.1.0'
