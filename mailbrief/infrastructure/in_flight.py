import threading
from typing import Set

from mailbrief.data.models import Fingerprint


class InFlightSet:
    """
    Fingerprints that are queued or being processed.

    Intake inserts, workers remove. try_add is the atomic test-and-insert
    that keeps a fingerprint from being admitted twice.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Set[Fingerprint] = set()

    def try_add(self, fingerprint: Fingerprint) -> bool:
        """Insert and return True, or return False if already present."""
        with self._lock:
            if fingerprint in self._items:
                return False
            self._items.add(fingerprint)
            return True

    def discard(self, fingerprint: Fingerprint) -> None:
        with self._lock:
            self._items.discard(fingerprint)

    def __contains__(self, fingerprint: Fingerprint) -> bool:
        with self._lock:
            return fingerprint in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
