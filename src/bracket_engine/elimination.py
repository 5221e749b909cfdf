"""
Single elimination bracket generation.
"""
from typing import List, Optional

from .errors import InsufficientParticipants
from .models import BracketNode, BracketPlan, BracketType, Match, Participant
from .seeding import next_power_of_two, seed_order


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round based on how many rounds remain."""
    rounds_remaining = total_rounds - round_number + 1
    if rounds_remaining == 1:
        return "Final"
    elif rounds_remaining == 2:
        return "Semi-Final"
    elif rounds_remaining == 3:
        return "Quarter-Final"
    else:
        return f"Round {round_number}"


def total_rounds_for(num_teams: int) -> int:
    """Number of rounds in an elimination bracket for this many teams."""
    return max(next_power_of_two(num_teams).bit_length() - 1, 0)


def build_first_round(seeded: List[Participant], order: List[int], bracket_type: BracketType,
                      round_label: str, plan: BracketPlan) -> None:
    """
    Append round 1 nodes (and their matches) to the plan.

    Position p pairs seeds order[2p] and order[2p + 1]. Seed s is the
    participant at index s - 1 of `seeded`; seeds past the participant
    count are byes. A node with a single participant is stamped with
    `bye_team_id` and gets no match.
    """
    def entrant(seed):
        return seeded[seed - 1] if seed <= len(seeded) else None

    for position in range(len(order) // 2):
        team1 = entrant(order[position * 2])
        team2 = entrant(order[position * 2 + 1])

        node = BracketNode(
            round_number=1,
            position=position,
            bracket_type=bracket_type,
            round_label=round_label,
            seed_number=position + 1,
        )
        node_index = len(plan.nodes)

        if team1 and team2:
            plan.matches.append(Match(
                team1_id=team1.id,
                team2_id=team2.id,
                round=round_label,
                node_id=node_index,
            ))
        else:
            # Higher seed gets the bye; the standard order never leaves both empty
            node.bye_team_id = (team1 or team2).id
            node.expected_entrants = 1

        plan.nodes.append(node)


def count_entrants(nodes: List[BracketNode]) -> None:
    """
    Fill in `expected_entrants` for every node past round 1.

    A winner edge carries a team when its source expects at least one
    entrant; a loser edge only when its source holds a real match (two).
    Nodes must be ordered so every edge points forward in the list.
    """
    first_round = [
        node for node in nodes
        if node.round_number == 1 and node.bracket_type in (BracketType.MAIN, BracketType.WINNERS)
    ]
    for node in nodes:
        if node not in first_round:
            node.expected_entrants = 0

    for node in nodes:
        if node.next_node_id is not None and node.expected_entrants >= 1:
            nodes[node.next_node_id].expected_entrants += 1
        if node.loser_next_node_id is not None and node.expected_entrants == 2:
            nodes[node.loser_next_node_id].expected_entrants += 1


def build_single_elimination(seeded: List[Participant], order: Optional[List[int]] = None) -> BracketPlan:
    """
    Build the node tree for a single elimination bracket.

    Only round 1 gets matches; later rounds are empty nodes that the
    advancement engine fills as results come in.
    """
    if len(seeded) < 2:
        raise InsufficientParticipants(len(seeded))

    bracket_size = next_power_of_two(len(seeded))
    total_rounds = total_rounds_for(len(seeded))
    if order is None:
        order = seed_order(bracket_size)

    plan = BracketPlan()
    build_first_round(seeded, order, BracketType.MAIN, get_round_name(1, total_rounds), plan)

    # Subsequent rounds (empty nodes that will be filled as matches complete)
    round_start = {1: 0}
    for round_number in range(2, total_rounds + 1):
        round_start[round_number] = len(plan.nodes)
        for position in range(bracket_size >> round_number):
            plan.nodes.append(BracketNode(
                round_number=round_number,
                position=position,
                bracket_type=BracketType.MAIN,
                round_label=get_round_name(round_number, total_rounds),
            ))

    # Winner of (round, p) advances to (round + 1, p // 2)
    for node in plan.nodes:
        if node.round_number < total_rounds:
            node.next_node_id = round_start[node.round_number + 1] + node.position // 2

    count_entrants(plan.nodes)
    return plan
