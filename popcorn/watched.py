# popcorn/watched.py
import json
import logging
import threading
from typing import List, Optional

from popcorn.models import WatchedEntry

logger = logging.getLogger(__name__)

DEFAULT_KEY = "watched"

# Exceptions
class ValidationError(Exception):
    """Raised when input or business validation fails."""
    pass

class DuplicateEntryError(ValidationError):
    """Raised when a movie is already in the watched collection."""
    pass

class PersistenceReadError(Exception):
    """Stored collection could not be decoded; recovered as an empty list."""
    pass


def _average(values: List[float]) -> float:
    if not values:
        return 0
    return sum(values) / len(values)


class WatchedCollection:
    """
    The user's rated movies, mirrored write-through into a key-value store.
    The whole list is the unit of persistence: every mutation re-serializes it.
    """

    def __init__(self, store, key: str = DEFAULT_KEY):
        self.store = store
        self.key = key
        self._entries: List[WatchedEntry] = []
        self._lock = threading.RLock()

    def initialize(self) -> None:
        """Load the stored collection; absent or malformed data gives an empty one."""
        raw = self.store.get(self.key)
        entries: List[WatchedEntry] = []
        if raw is not None:
            try:
                entries = self._decode(raw)
            except PersistenceReadError as e:
                logger.warning("Discarding stored watched list under '%s': %s", self.key, e)
                entries = []
        with self._lock:
            self._entries = entries
        logger.info("Watched collection loaded with %d entries", len(entries))

    @staticmethod
    def _decode(raw: str) -> List[WatchedEntry]:
        try:
            data = json.loads(raw)
        except ValueError as e:
            raise PersistenceReadError(f"invalid JSON: {e}") from e
        if not isinstance(data, list):
            raise PersistenceReadError("stored value is not a list")
        entries = []
        seen = set()
        for i, item in enumerate(data):
            if not isinstance(item, dict):
                raise PersistenceReadError(f"entry {i} is not an object")
            try:
                e = WatchedEntry.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                raise PersistenceReadError(f"entry {i}: {exc}") from exc
            if e.id in seen:
                raise PersistenceReadError(f"duplicate id {e.id}")
            seen.add(e.id)
            entries.append(e)
        return entries

    def _persist(self, entries: List[WatchedEntry]) -> None:
        self.store.set(self.key, json.dumps([e.to_dict() for e in entries], ensure_ascii=False))

    # ---- Mutations ----
    def add(self, entry: WatchedEntry) -> WatchedEntry:
        """Append entry; an id already present raises DuplicateEntryError."""
        with self._lock:
            if any(e.id == entry.id for e in self._entries):
                logger.warning("Attempt to add duplicate watched entry id=%s", entry.id)
                raise DuplicateEntryError("This movie is already in the watched list")
            updated = self._entries + [entry]
            self._persist(updated)
            self._entries = updated
        logger.info("Added watched id=%s title=%s rating=%s", entry.id, entry.title, entry.user_rating)
        return entry

    def remove(self, movie_id: str) -> None:
        with self._lock:
            updated = [e for e in self._entries if e.id != movie_id]
            if len(updated) == len(self._entries):
                logger.debug("remove: id=%s not in watched list", movie_id)
                return
            self._persist(updated)
            self._entries = updated
        logger.info("Removed watched id=%s", movie_id)

    # ---- Reads ----
    @property
    def entries(self) -> List[WatchedEntry]:
        with self._lock:
            return list(self._entries)

    def get(self, movie_id: str) -> Optional[WatchedEntry]:
        with self._lock:
            for e in self._entries:
                if e.id == movie_id:
                    return e
        return None

    def __contains__(self, movie_id: str) -> bool:
        return self.get(movie_id) is not None

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def average_imdb_rating(self) -> float:
        return _average([e.imdb_rating for e in self.entries if e.imdb_rating is not None])

    @property
    def average_user_rating(self) -> float:
        return _average([e.user_rating for e in self.entries])

    @property
    def average_runtime(self) -> float:
        return _average([e.runtime_minutes for e in self.entries if e.runtime_minutes is not None])

    def snapshot(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "count": self.count,
            "average_imdb_rating": self.average_imdb_rating,
            "average_user_rating": self.average_user_rating,
            "average_runtime": self.average_runtime,
        }
