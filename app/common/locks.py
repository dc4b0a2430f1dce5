"""
Locks en memoria por clave
"""
from contextlib import contextmanager
from typing import Dict, Hashable, List
import threading


class KeyedLocks:
    """
    Un lock por clave (ej. un lock por factura).
    Serializa las operaciones sobre el mismo recurso sin bloquear las demás.
    La entrada de una clave se elimina cuando nadie la retiene ni la espera.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # clave -> [lock, retenedores + en espera]
        self._locks: Dict[Hashable, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    def _acquire_entry(self, key: Hashable) -> List:
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
            return entry

    def _release_entry(self, key: Hashable, entry: List) -> None:
        with self._guard:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: Hashable):
        entry = self._acquire_entry(key)
        try:
            with entry[0]:
                yield
        finally:
            self._release_entry(key, entry)
