# popcorn/service.py
import logging
from concurrent.futures import Executor
from typing import Optional

from popcorn.search import SearchSession
from popcorn.selection import KeyBindings, SelectionController
from popcorn.watched import WatchedCollection, DEFAULT_KEY

logger = logging.getLogger(__name__)


class PopcornService:
    """
    One browser-session worth of state: search, selection and the watched list.
    The service expects a catalog client (CatalogClient or a fake with the same
    two methods) and a key-value store (SqliteKVStore or InMemoryKVStore).
    """

    def __init__(self, client, store, executor: Optional[Executor] = None, max_rating: int = 10,
                 storage_key: str = DEFAULT_KEY, min_query_length: int = 1,
                 default_title: str = "usePopcorn"):
        self.client = client
        self.store = store
        self.key_bindings = KeyBindings()
        self.watched = WatchedCollection(store, key=storage_key)
        self.selection = SelectionController(client, self.watched, executor=executor,
                                             max_rating=max_rating, key_bindings=self.key_bindings,
                                             default_title=default_title)
        self.search = SearchSession(client, selection=self.selection, executor=executor,
                                    min_query_length=min_query_length)
        self.watched.initialize()
        logger.debug("PopcornService initialized with store %s", type(store).__name__)

    def press_key(self, key: str) -> bool:
        return self.key_bindings.dispatch(key)

    def snapshot(self) -> dict:
        return {
            "search": self.search.snapshot(),
            "selection": self.selection.snapshot(),
            "watched": self.watched.snapshot(),
        }
