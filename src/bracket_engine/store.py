"""
Transactional storage for tournaments, bracket nodes and matches.

Records go in and come out as copies: a caller that changes a node or a
match must write it back, just as it would against a database.
"""
import copy
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from typing import List, Optional

import yaml
from filelock import FileLock, Timeout

from .errors import LockTimeout, TournamentNotFound
from .models import BracketNode, Match, Tournament

logger = logging.getLogger(__name__)

NODE_EDGE_FIELDS = {'match_id', 'next_node_id', 'loser_next_node_id', 'bye_team_id'}

_ABSENT = object()


class MemoryStore:
    """
    Dict-backed store; the outermost transaction rolls back on any exception.

    Writes always replace a record with a fresh copy, so rollback only has
    to put back the records the transaction touched, not the whole state.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._depth = 0
        self._undo = None
        self._counters_before = None
        self._state = _empty_state()

    @contextmanager
    def transaction(self):
        with self._lock:
            if self._depth == 0:
                self._begin()
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                if self._depth == 0:
                    self._rollback()
                raise
            else:
                self._depth -= 1
                if self._depth == 0:
                    self._commit()

    @contextmanager
    def _reading(self):
        with self._lock:
            yield self._state

    def _begin(self):
        self._undo = {}  # (table, key) -> record before the first write, or _ABSENT
        self._counters_before = dict(self._state['counters'])

    def _commit(self):
        self._forget()

    def _rollback(self):
        for (table, key), previous in self._undo.items():
            if previous is _ABSENT:
                del self._state[table][key]
            else:
                self._state[table][key] = previous
        self._state['counters'] = self._counters_before
        self._forget()

    def _forget(self):
        self._undo = None
        self._counters_before = None

    def _put(self, table, key, record):
        """Store a record; must run inside a transaction."""
        slot = (table, key)
        if slot not in self._undo:
            self._undo[slot] = self._state[table].get(key, _ABSENT)
        self._state[table][key] = record

    # Tournaments

    def add_tournament(self, tournament: Tournament) -> Tournament:
        with self.transaction():
            self._put('tournaments', tournament.id, copy.deepcopy(tournament))
        return tournament

    def get_tournament(self, tournament_id) -> Optional[Tournament]:
        with self._reading() as state:
            return copy.deepcopy(state['tournaments'].get(tournament_id))

    def save_tournament(self, tournament: Tournament) -> None:
        with self.transaction():
            if tournament.id not in self._state['tournaments']:
                raise TournamentNotFound(tournament.id)
            self._put('tournaments', tournament.id, copy.deepcopy(tournament))

    # Nodes

    def insert_nodes(self, tournament_id, nodes: List[BracketNode]) -> List[int]:
        """Bulk insert. Edges are not copied; wire them with update_node."""
        ids = []
        with self.transaction():
            for node in nodes:
                stored = copy.deepcopy(node)
                stored.id = self._next_id('node')
                stored.tournament_id = tournament_id
                stored.match_id = None
                stored.next_node_id = None
                stored.loser_next_node_id = None
                self._put('nodes', stored.id, stored)
                ids.append(stored.id)
        return ids

    def update_node(self, node_id, **fields) -> BracketNode:
        unknown = set(fields) - NODE_EDGE_FIELDS
        if unknown:
            raise ValueError(f"Node fields cannot be updated: {sorted(unknown)}")
        with self.transaction():
            node = self._state['nodes'].get(node_id)
            if node is None:
                raise KeyError(node_id)
            node = copy.deepcopy(node)
            for name, value in fields.items():
                setattr(node, name, value)
            self._put('nodes', node_id, node)
            return copy.deepcopy(node)

    def get_node(self, node_id) -> Optional[BracketNode]:
        with self._reading() as state:
            return copy.deepcopy(state['nodes'].get(node_id))

    def node_for_match(self, match_id) -> Optional[BracketNode]:
        with self._reading() as state:
            for node in state['nodes'].values():
                if node.match_id == match_id:
                    return copy.deepcopy(node)
        return None

    def list_nodes(self, tournament_id) -> List[BracketNode]:
        with self._reading() as state:
            return [copy.deepcopy(n) for n in state['nodes'].values() if n.tournament_id == tournament_id]

    # Matches

    def insert_match(self, match: Match) -> int:
        with self.transaction():
            stored = copy.deepcopy(match)
            stored.id = self._next_id('match')
            self._put('matches', stored.id, stored)
            return stored.id

    def update_match(self, match: Match) -> None:
        with self.transaction():
            if match.id not in self._state['matches']:
                raise KeyError(match.id)
            self._put('matches', match.id, copy.deepcopy(match))

    def get_match(self, match_id) -> Optional[Match]:
        with self._reading() as state:
            return copy.deepcopy(state['matches'].get(match_id))

    def list_matches(self, tournament_id) -> List[Match]:
        with self._reading() as state:
            return [copy.deepcopy(m) for m in state['matches'].values() if m.tournament_id == tournament_id]

    def _next_id(self, kind) -> int:
        counters = self._state['counters']
        counters[kind] += 1
        return counters[kind]


class YamlStore(MemoryStore):
    """
    Whole-state YAML file under a data directory.

    Each outermost transaction holds the directory's FileLock, reloads the
    file, and writes it back only if the transaction succeeds.
    """

    FILE_NAME = 'brackets.yaml'

    def __init__(self, data_dir, timeout=10):
        super().__init__()
        self.data_dir = data_dir
        self.path = os.path.join(data_dir, self.FILE_NAME)
        self.timeout = timeout
        os.makedirs(data_dir, exist_ok=True)
        self._file_lock = FileLock(os.path.join(data_dir, '.lock'), timeout=timeout)

    @contextmanager
    def _reading(self):
        with self._lock:
            if self._depth == 0:
                with self._locked_file():
                    self._state = self._load()
            yield self._state

    def _begin(self):
        self._acquire_file()
        try:
            self._state = self._load()
        except Exception:
            self._file_lock.release()
            raise
        super()._begin()

    def _commit(self):
        try:
            self._dump(self._state)
        except Exception:
            MemoryStore._rollback(self)
            raise
        else:
            MemoryStore._commit(self)
        finally:
            self._file_lock.release()

    def _rollback(self):
        try:
            super()._rollback()
        finally:
            self._file_lock.release()

    @contextmanager
    def _locked_file(self):
        self._acquire_file()
        try:
            yield
        finally:
            self._file_lock.release()

    def _acquire_file(self):
        try:
            self._file_lock.acquire()
        except Timeout:
            raise LockTimeout(self._file_lock.lock_file, self.timeout) from None

    def _load(self):
        if not os.path.exists(self.path):
            return _empty_state()
        with open(self.path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
        state = _empty_state()
        state['counters'].update(data.get('counters') or {})
        for item in data.get('tournaments') or []:
            tournament = Tournament.from_dict(item)
            state['tournaments'][tournament.id] = tournament
        for item in data.get('nodes') or []:
            node = BracketNode.from_dict(item)
            state['nodes'][node.id] = node
        for item in data.get('matches') or []:
            match = Match.from_dict(item)
            state['matches'][match.id] = match
        return state

    def _dump(self, state):
        data = {
            'counters': dict(state['counters']),
            'tournaments': [t.to_dict() for t in state['tournaments'].values()],
            'nodes': [n.to_dict() for n in state['nodes'].values()],
            'matches': [m.to_dict() for m in state['matches'].values()],
        }
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.dump(data, f, default_flow_style=False)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Wrote {len(data['nodes'])} nodes and {len(data['matches'])} matches to {self.path}")


def _empty_state():
    return {
        'tournaments': {},
        'nodes': {},
        'matches': {},
        'counters': {'node': 0, 'match': 0},
    }
