"""
Participant seeding and the standard bracket seed order.
"""
import random
from functools import lru_cache
from typing import Callable, List, Optional

from .models import Participant, SeedingMethod

DEFAULT_RANKING_POINTS = 1000


def next_power_of_two(num_teams: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_teams <= 0:
        return 0
    return 1 << (num_teams - 1).bit_length()


def calculate_byes(num_teams: int) -> int:
    """Calculate number of byes needed."""
    return next_power_of_two(num_teams) - num_teams


def seed_order(bracket_size: int) -> List[int]:
    """
    Generate the standard tournament bracket order.
    This ensures that if all higher seeds win, they meet in the proper rounds.

    For 8 teams: [1, 8, 4, 5, 2, 7, 3, 6]
    This gives matchups: 1v8, 4v5, 2v7, 3v6
    Winners: 1v4 side, 2v3 side
    Final: 1v2 (if chalk)
    """
    if bracket_size < 2 or bracket_size & (bracket_size - 1):
        raise ValueError(f"Bracket size must be a power of 2 >= 2, got {bracket_size}")
    return list(_seed_order(bracket_size))


@lru_cache(maxsize=None)
def _seed_order(bracket_size: int) -> tuple:
    if bracket_size == 2:
        return (1, 2)

    # Pair each seed of the half-size order with its complement
    result = []
    for seed in _seed_order(bracket_size // 2):
        result.extend([seed, bracket_size + 1 - seed])
    return tuple(result)


def seed_participants(participants: List[Participant], method,
                      ranking_lookup: Optional[Callable[[Participant], Optional[float]]] = None,
                      rng: Optional[random.Random] = None,
                      default_ranking: float = DEFAULT_RANKING_POINTS) -> List[Participant]:
    """
    Order participants by seeding method and stamp `seed_number` (1-based).

    - RANDOM: unbiased shuffle
    - RANKING_BASED: highest ranking first; ties keep their original order
    - MANUAL: ascending existing seed_number; unseeded participants last,
      in original order

    Returns a new list; the input list keeps its order but its records get
    their `seed_number` overwritten.
    """
    method = SeedingMethod.parse(method)
    seeded = list(participants)

    if method == SeedingMethod.RANDOM:
        (rng or random).shuffle(seeded)
    elif method == SeedingMethod.RANKING_BASED:
        def ranking(participant):
            if ranking_lookup is not None:
                points = ranking_lookup(participant)
            else:
                points = participant.ranking_points
            return default_ranking if points is None else points

        seeded.sort(key=ranking, reverse=True)
    else:
        seeded.sort(key=lambda p: (p.seed_number is None, p.seed_number or 0))

    for index, participant in enumerate(seeded):
        participant.seed_number = index + 1

    return seeded
