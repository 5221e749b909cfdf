"""
Moves match results through the bracket node graph.
"""
import logging
from typing import List, Optional, Tuple

from .errors import (
    InvalidMatchTransition,
    InvalidWinner,
    MatchNotFound,
    NodeNotFound,
    SlotConflict,
    TargetMatchMissing,
)
from .locks import KeyedLock, node_lock_key
from .models import BracketType, Match, MatchStatus

logger = logging.getLogger(__name__)

SEMI_FINAL_LABEL = "Semi-Final"
THIRD_PLACE_LABEL = "3rd Place"


def fill_slot(store, node_id, team_id) -> Tuple[Optional[Match], Optional[int]]:
    """
    Place one team into a node. Must run inside a store transaction.

    Returns (match, forward_node_id): the match the team now sits in, or
    for a pass-through node (one expected entrant) no match and the node
    the team moves on to. Placing a team that is already there is a no-op.
    """
    node = store.get_node(node_id)
    if node is None:
        logger.error(f"Bracket edge points at missing node {node_id}")
        raise NodeNotFound(f"Bracket node {node_id} not found")

    if node.is_pass_through:
        if node.bye_team_id is None:
            store.update_node(node.id, bye_team_id=team_id)
            logger.debug(f"Team {team_id} passes through node {node.id} ({node.round_label})")
        elif node.bye_team_id != team_id:
            logger.error(f"Node {node.id} already forwards team {node.bye_team_id}, got {team_id}")
            raise SlotConflict(f"Node {node.id} already forwards team {node.bye_team_id}")
        return None, node.next_node_id

    if node.expected_entrants == 0:
        logger.error(f"Team {team_id} sent to node {node.id}, which expects no entrants")
        raise SlotConflict(f"Node {node.id} expects no entrants")

    if node.match_id is None:
        match = Match(
            team1_id=team_id,
            round=node.round_label,
            node_id=node.id,
            tournament_id=node.tournament_id,
        )
        match.id = store.insert_match(match)
        store.update_node(node.id, match_id=match.id)
        logger.debug(f"Created match {match.id} ({node.round_label}) with team {team_id}")
        return match, None

    match = store.get_match(node.match_id)
    if match is None:
        logger.error(f"Node {node.id} refers to missing match {node.match_id}")
        raise TargetMatchMissing(f"Node {node.id} refers to missing match {node.match_id}")

    if match.has_team(team_id):
        return match, None

    if not match.place_team(team_id):
        logger.error(f"Match {match.id} is full {match.teams}, cannot place team {team_id}")
        raise SlotConflict(f"Match {match.id} already has both teams")

    store.update_match(match)
    logger.debug(f"Placed team {team_id} into match {match.id} ({match.round})")
    return match, None


def deliver(store, node_id, team_id) -> List[Match]:
    """Follow pass-through nodes until the team lands in a match (no locking)."""
    updated = []
    while node_id is not None:
        match, node_id = fill_slot(store, node_id, team_id)
        if match is not None:
            updated.append(match)
    return updated


class AdvancementEngine:
    def __init__(self, store, locks=None, third_place_match=True):
        self.store = store
        self.locks = locks if locks is not None else KeyedLock()
        self.third_place_match = third_place_match

    def advance(self, match_id, winner_id=None) -> List[Match]:
        """
        Send the winner (and, from the winners bracket, the loser) of a
        completed match to the next node(s).

        Returns the downstream matches that now hold a team from this
        match, for broadcasting. Safe to call more than once.
        """
        match = self.store.get_match(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        if match.match_status != MatchStatus.COMPLETED:
            raise InvalidMatchTransition(
                f"Match {match_id} is {match.match_status.value}, only completed matches advance")
        if winner_id is None:
            winner_id = match.winner_id
        elif winner_id != match.winner_id:
            raise InvalidWinner(match_id, winner_id)

        node = self.store.node_for_match(match_id)
        if node is None:
            logger.error(f"Match {match_id} has no bracket node")
            raise NodeNotFound(f"Match {match_id} has no bracket node")

        updated = []
        if node.next_node_id is not None:
            updated.extend(self._send(node.tournament_id, node.next_node_id, winner_id))

        if node.bracket_type == BracketType.WINNERS and node.loser_next_node_id is not None:
            updated.extend(self._send(node.tournament_id, node.loser_next_node_id, match.loser_id))

        if (self.third_place_match and node.bracket_type == BracketType.MAIN
                and match.round == SEMI_FINAL_LABEL):
            third_place = self._third_place_if_ready(node.tournament_id)
            if third_place is not None:
                updated.append(third_place)

        return updated

    def _send(self, tournament_id, node_id, team_id) -> List[Match]:
        updated = []
        while node_id is not None:
            # One node at a time; the lock is released before moving on
            with self.locks.hold(node_lock_key(tournament_id, node_id)):
                with self.store.transaction():
                    match, node_id = fill_slot(self.store, node_id, team_id)
            if match is not None:
                updated.append(match)
        return updated

    def _third_place_if_ready(self, tournament_id) -> Optional[Match]:
        """Create the 3rd place match once both semi-finals are completed."""
        with self.locks.hold(f"{tournament_id}:third-place"):
            with self.store.transaction():
                matches = self.store.list_matches(tournament_id)
                if any(m.round == THIRD_PLACE_LABEL for m in matches):
                    return None

                semis = [
                    m for m in matches
                    if m.round == SEMI_FINAL_LABEL and m.match_status == MatchStatus.COMPLETED
                ]
                if len(semis) != 2:
                    logger.debug(f"Only {len(semis)} semi-finals completed, need 2")
                    return None

                third_place = Match(
                    team1_id=semis[0].loser_id,
                    team2_id=semis[1].loser_id,
                    round=THIRD_PLACE_LABEL,
                    tournament_id=tournament_id,
                )
                third_place.id = self.store.insert_match(third_place)

        logger.info(f"3rd place match {third_place.id} created for tournament {tournament_id}")
        return third_place
