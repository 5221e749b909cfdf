"""
Double elimination bracket generation.

In double elimination:
- Teams must lose twice to be eliminated
- Winners Bracket: Teams that haven't lost yet
- Losers Bracket: Teams that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
"""
import math
from typing import List, Optional

from .elimination import build_first_round, count_entrants, get_round_name, total_rounds_for
from .errors import InsufficientParticipants
from .models import BracketNode, BracketPlan, BracketType, Participant
from .seeding import next_power_of_two, seed_order

GRAND_FINAL_LABEL = "Grand Final"


def get_winners_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name for a winners bracket round."""
    return f"Winners {get_round_name(round_number, total_rounds)}"


def get_losers_round_name(round_number: int, total_losers_rounds: int) -> str:
    """Get the name for a losers bracket round (1-indexed)."""
    if round_number == total_losers_rounds:
        return "Losers Final"
    return f"Losers Round {round_number}"


def calculate_losers_bracket_rounds(winners_rounds: int) -> int:
    """Losers bracket has 2 * winners_rounds - 1 rounds."""
    if winners_rounds < 1:
        return 0
    return 2 * winners_rounds - 1


def calculate_losers_bracket_positions(round_number: int, winners_rounds: int) -> int:
    """
    Number of nodes in a losers bracket round.

    Even rounds take dropouts from the winners bracket, odd rounds pair
    losers bracket survivors. The last round's exponent goes negative; it
    still gets one node.
    """
    if round_number % 2 == 0:
        exponent = winners_rounds - math.ceil(round_number / 2) - 1
    else:
        exponent = winners_rounds - math.ceil((round_number + 1) / 2) - 1
    return 2 ** max(exponent, 0)


def build_double_elimination(seeded: List[Participant], order: Optional[List[int]] = None) -> BracketPlan:
    """
    Build winners bracket, losers bracket and grand final, fully wired.

    Edges:
    - Winners round r position p -> winners round r+1 position p // 2;
      the winners final -> grand final
    - Losers drop: winners round 1 position p -> losers round 1 position p // 2,
      winners round k >= 2 position p -> losers round 2k-2 position p
    - Losers odd round r -> round r+1 same position, even round r ->
      round r+1 position p // 2; last losers round -> grand final
    """
    if len(seeded) < 2:
        raise InsufficientParticipants(len(seeded))

    bracket_size = next_power_of_two(len(seeded))
    winners_rounds = total_rounds_for(len(seeded))
    losers_rounds = calculate_losers_bracket_rounds(winners_rounds)
    if order is None:
        order = seed_order(bracket_size)

    plan = BracketPlan()
    winners_start = {1: 0}
    build_first_round(seeded, order, BracketType.WINNERS,
                      get_winners_round_name(1, winners_rounds), plan)

    for round_number in range(2, winners_rounds + 1):
        winners_start[round_number] = len(plan.nodes)
        for position in range(bracket_size >> round_number):
            plan.nodes.append(BracketNode(
                round_number=round_number,
                position=position,
                bracket_type=BracketType.WINNERS,
                round_label=get_winners_round_name(round_number, winners_rounds),
            ))

    losers_start = {}
    for round_number in range(1, losers_rounds + 1):
        losers_start[round_number] = len(plan.nodes)
        for position in range(calculate_losers_bracket_positions(round_number, winners_rounds)):
            plan.nodes.append(BracketNode(
                round_number=round_number,
                position=position,
                bracket_type=BracketType.LOSERS,
                round_label=get_losers_round_name(round_number, losers_rounds),
            ))

    grand_final = len(plan.nodes)
    plan.nodes.append(BracketNode(
        round_number=1,
        position=0,
        bracket_type=BracketType.GRAND_FINAL,
        round_label=GRAND_FINAL_LABEL,
    ))

    for node in plan.nodes:
        if node.bracket_type == BracketType.WINNERS:
            if node.round_number < winners_rounds:
                node.next_node_id = winners_start[node.round_number + 1] + node.position // 2
            else:
                node.next_node_id = grand_final
            if node.round_number == 1:
                node.loser_next_node_id = losers_start[1] + node.position // 2
            else:
                node.loser_next_node_id = losers_start[2 * node.round_number - 2] + node.position
        elif node.bracket_type == BracketType.LOSERS:
            if node.round_number == losers_rounds:
                node.next_node_id = grand_final
            elif node.round_number % 2 == 1:
                node.next_node_id = losers_start[node.round_number + 1] + node.position
            else:
                node.next_node_id = losers_start[node.round_number + 1] + node.position // 2

    count_entrants(plan.nodes)
    return plan
