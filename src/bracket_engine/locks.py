"""
Keyed mutual exclusion for bracket advancement.

Two matches finishing at the same moment can both target the same
downstream node; every "read match -> fill slot -> write match" step runs
under the lock for that node's key.
"""
import logging
import os
import threading
import zlib
from contextlib import contextmanager

from filelock import FileLock, Timeout

from .errors import LockTimeout

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10
DEFAULT_LOCK_STRIPES = 64


def node_lock_key(tournament_id, node_id) -> str:
    return f"{tournament_id}:node:{node_id}"


def match_lock_key(match_id) -> str:
    return f"match:{match_id}"


class KeyedLock:
    """
    In-process per-key mutexes.

    Entries are reference counted and dropped once no thread holds or waits
    on them, so the map does not grow with every match ever played.
    """

    def __init__(self, timeout=DEFAULT_LOCK_TIMEOUT):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._entries = {}  # key -> [lock, users]

    @contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            if not entry[0].acquire(timeout=self.timeout):
                logger.warning(f"Timed out after {self.timeout}s waiting for lock '{key}'")
                raise LockTimeout(key, self.timeout)
            logger.debug(f"Acquired lock '{key}'")
            try:
                yield
            finally:
                entry[0].release()
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self):
        with self._guard:
            return len(self._entries)


class FileKeyedLock:
    """
    Striped lock files, for processes sharing one data directory.

    Keys hash onto a fixed set of `stripes` files, so the directory stays
    the same size however many matches are played. Two keys sharing a
    stripe serialize; callers never hold two keys at once, so that cannot
    deadlock. Each acquisition opens its own FileLock so threads of one
    process exclude each other as well.
    """

    def __init__(self, lock_dir, timeout=DEFAULT_LOCK_TIMEOUT, stripes=DEFAULT_LOCK_STRIPES):
        if stripes < 1:
            raise ValueError(f"stripes must be at least 1, got {stripes}")
        self.lock_dir = lock_dir
        self.timeout = timeout
        self.stripes = stripes
        os.makedirs(lock_dir, exist_ok=True)

    def path_for(self, key) -> str:
        stripe = zlib.crc32(str(key).encode('utf-8')) % self.stripes
        return os.path.join(self.lock_dir, f'stripe-{stripe}.lock')

    @contextmanager
    def hold(self, key):
        lock = FileLock(self.path_for(key), timeout=self.timeout)
        try:
            lock.acquire()
        except Timeout:
            logger.warning(f"Timed out after {self.timeout}s waiting for lock file '{key}'")
            raise LockTimeout(key, self.timeout) from None
        logger.debug(f"Acquired lock file '{key}'")
        try:
            yield
        finally:
            lock.release()
