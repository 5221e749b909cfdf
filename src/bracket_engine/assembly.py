"""
Writes a built bracket plan to the store as one transaction.
"""
import logging
from datetime import datetime
from typing import List

from .advancement import deliver
from .errors import AlreadyGenerated, TournamentNotFound
from .models import BracketNode, BracketPlan, Match, MatchStatus

logger = logging.getLogger(__name__)


class AssembledBracket:
    def __init__(self, tournament, nodes: List[BracketNode], matches: List[Match]):
        self.tournament = tournament
        self.nodes = nodes
        self.matches = matches

    def __repr__(self):
        return (f"AssembledBracket(tournament={self.tournament.id}, "
                f"nodes={len(self.nodes)}, matches={len(self.matches)})")


class BracketAssembler:
    def __init__(self, store):
        self.store = store

    def assemble(self, tournament_id, plan: BracketPlan) -> AssembledBracket:
        """
        Persist nodes and matches, wire edges, forward byes and mark the
        tournament as generated. Nothing is kept if any step fails.
        """
        with self.store.transaction():
            tournament = self.store.get_tournament(tournament_id)
            if tournament is None:
                raise TournamentNotFound(tournament_id)
            if tournament.bracket_generated:
                raise AlreadyGenerated(tournament_id)

            node_ids = self.store.insert_nodes(tournament_id, plan.nodes)

            for planned in plan.matches:
                match = Match(
                    team1_id=planned.team1_id,
                    team2_id=planned.team2_id,
                    round=planned.round,
                    match_status=MatchStatus.UPCOMING,
                    node_id=node_ids[planned.node_id],
                    tournament_id=tournament_id,
                )
                match_id = self.store.insert_match(match)
                self.store.update_node(node_ids[planned.node_id], match_id=match_id)

            for index, node in enumerate(plan.nodes):
                edges = {}
                if node.next_node_id is not None:
                    edges['next_node_id'] = node_ids[node.next_node_id]
                if node.loser_next_node_id is not None:
                    edges['loser_next_node_id'] = node_ids[node.loser_next_node_id]
                if node.bye_team_id is not None:
                    edges['bye_team_id'] = node.bye_team_id
                if edges:
                    self.store.update_node(node_ids[index], **edges)

            # Byes advance immediately
            for index, node in enumerate(plan.nodes):
                if node.bye_team_id is not None and node.next_node_id is not None:
                    deliver(self.store, node_ids[node.next_node_id], node.bye_team_id)

            tournament.bracket_generated = True
            tournament.bracket_generated_at = datetime.now()
            self.store.save_tournament(tournament)

            nodes = self.store.list_nodes(tournament_id)
            matches = self.store.list_matches(tournament_id)

        logger.info(f"Bracket generated for tournament {tournament_id}: "
                    f"{len(nodes)} nodes, {len(matches)} matches")
        return AssembledBracket(tournament, nodes, matches)
