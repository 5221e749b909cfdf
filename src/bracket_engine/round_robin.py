"""
Round robin scheduling with the circle method.
"""
from typing import List

from .errors import InsufficientParticipants
from .models import BracketNode, BracketPlan, BracketType, Match, Participant


def calculate_round_robin_rounds(num_teams: int) -> int:
    """n - 1 rounds for an even field, n for an odd one (one team sits out per round)."""
    if num_teams < 2:
        return 0
    return num_teams - 1 if num_teams % 2 == 0 else num_teams


def build_round_robin(seeded: List[Participant]) -> BracketPlan:
    """
    Every participant plays every other participant exactly once.

    Slot 0 stays fixed while the rest rotate one position per round. An odd
    field gets a virtual bye slot; whoever draws it sits the round out and
    no node is emitted for that pairing.
    """
    if len(seeded) < 2:
        raise InsufficientParticipants(len(seeded))

    slots = list(seeded)
    if len(slots) % 2 == 1:
        slots.append(None)

    num_slots = len(slots)
    plan = BracketPlan()

    for round_index in range(num_slots - 1):
        round_number = round_index + 1
        round_label = f"Round {round_number}"
        position = 0

        for i in range(num_slots // 2):
            team1 = slots[i]
            team2 = slots[num_slots - 1 - i]
            if team1 is None or team2 is None:
                continue

            plan.matches.append(Match(
                team1_id=team1.id,
                team2_id=team2.id,
                round=round_label,
                node_id=len(plan.nodes),
            ))
            plan.nodes.append(BracketNode(
                round_number=round_number,
                position=position,
                bracket_type=BracketType.MAIN,
                round_label=round_label,
            ))
            position += 1

        # Rotation: the last slot moves to second place
        slots = [slots[0], slots[-1]] + slots[1:-1]

    return plan
