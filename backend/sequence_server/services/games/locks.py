import threading
from contextlib import contextmanager
from typing import Dict, List

_registry_lock = threading.Lock()
# game id -> [lock, number of holders and waiters]
_session_locks: Dict[str, List] = {}


def active_locks() -> int:
    with _registry_lock:
        return len(_session_locks)


@contextmanager
def locked_session(game_id: str):
    """Serialize mutations of one session.

    Entries are reference counted and dropped when the last holder releases,
    so the map only ever holds sessions that are being worked on.
    """
    key = str(game_id)
    with _registry_lock:
        entry = _session_locks.setdefault(key, [threading.RLock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                _session_locks.pop(key, None)
