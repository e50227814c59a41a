# popcorn/selection.py
import logging
import threading
from concurrent.futures import Executor, Future
from typing import Callable, Dict, List, Optional

from popcorn.catalog import CancellationToken, CancelledError, CatalogError
from popcorn.models import DetailRecord, DetailStatus, StatusKind, WatchedEntry
from popcorn.search import submit
from popcorn.watched import ValidationError

logger = logging.getLogger(__name__)

ESCAPE = "escape"
DETAIL_FAILED_MESSAGE = "Something went wrong with fetching movie details"


class KeyBindings:
    """
    Global key-press fan-out. Subscriptions are scoped: subscribe() hands back
    the callable that releases them.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable[[], None]]] = {}
        self._lock = threading.Lock()

    def subscribe(self, key: str, handler: Callable[[], None]) -> Callable[[], None]:
        name = key.lower()
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(name, [])
                if handler in handlers:
                    handlers.remove(handler)
        return unsubscribe

    def dispatch(self, key: str) -> bool:
        """Call every handler bound to key. Returns True if any was bound."""
        with self._lock:
            handlers = list(self._handlers.get((key or "").lower(), []))
        for h in handlers:
            h()
        return bool(handlers)

    def count(self, key: str) -> int:
        with self._lock:
            return len(self._handlers.get(key.lower(), []))


class SelectionController:
    """Which catalog item is open, its detail record, and the rating flow."""

    def __init__(self, client, watched, executor: Optional[Executor] = None, max_rating: int = 10,
                 key_bindings: Optional[KeyBindings] = None, default_title: str = "usePopcorn"):
        self.client = client
        self.watched = watched
        self.executor = executor
        self.max_rating = max_rating
        self.key_bindings = key_bindings or KeyBindings()
        self.default_title = default_title
        self._lock = threading.RLock()
        self._selected_id: Optional[str] = None
        self._detail: Optional[DetailRecord] = None
        self._status = DetailStatus.idle()
        self._seq = 0
        self._token: Optional[CancellationToken] = None
        self._release_escape: Optional[Callable[[], None]] = None

    def select(self, movie_id: str) -> Future:
        """Toggle: the open id closes the panel, any other id opens it."""
        with self._lock:
            if movie_id == self._selected_id:
                self._close_locked()
                return submit(None, lambda: None)
            self._close_locked()
            self._selected_id = movie_id
            self._status = DetailStatus.loading()
            self._token = CancellationToken()
            seq, token = self._seq, self._token
            self._release_escape = self.key_bindings.subscribe(ESCAPE, self.close)
        logger.info("selected %s (detail request %d)", movie_id, seq)
        return submit(self.executor, self._fetch, movie_id, seq, token)

    def close(self) -> None:
        with self._lock:
            self._close_locked()

    def _close_locked(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None
        if self._release_escape is not None:
            self._release_escape()
            self._release_escape = None
        if self._selected_id is not None:
            logger.debug("closing detail for %s", self._selected_id)
        # any detail reply still in flight is now stale
        self._seq += 1
        self._selected_id = None
        self._detail = None
        self._status = DetailStatus.idle()

    def _fetch(self, movie_id: str, seq: int, token: CancellationToken) -> None:
        try:
            detail = self.client.fetch_by_id(movie_id, token)
        except CancelledError:
            logger.debug("detail request %d cancelled", seq)
            return
        except CatalogError as e:
            with self._lock:
                if seq != self._seq:
                    return
                self._status = DetailStatus.errored(str(e))
                self._token = None
            logger.warning("detail fetch for %s failed: %s", movie_id, e)
            return
        except Exception:
            logger.exception("detail request %d for %s failed", seq, movie_id)
            with self._lock:
                if seq == self._seq:
                    self._status = DetailStatus.errored(DETAIL_FAILED_MESSAGE)
                    self._token = None
            return
        with self._lock:
            if seq != self._seq:
                logger.debug("discarding stale detail response %d for %s", seq, movie_id)
                return
            self._detail = detail
            self._status = DetailStatus.ready()
            self._token = None

    def confirm_rating(self, user_rating) -> WatchedEntry:
        """Rate the open movie, add it to the watched list and close the panel."""
        if isinstance(user_rating, bool) or not isinstance(user_rating, int):
            raise ValidationError("rating must be a whole number")
        if user_rating < 1 or user_rating > self.max_rating:
            raise ValidationError(f"rating must be between 1 and {self.max_rating}")
        with self._lock:
            if self._detail is None or self._status.kind is not StatusKind.READY:
                raise ValidationError("no movie details loaded")
            entry = WatchedEntry.from_detail(self._detail, user_rating)
            self.watched.add(entry)
            self._close_locked()
        return entry

    # ---- Reads ----
    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def detail(self) -> Optional[DetailRecord]:
        return self._detail

    @property
    def detail_status(self) -> DetailStatus:
        return self._status

    @property
    def page_title(self) -> str:
        detail = self._detail
        if detail is not None and detail.title:
            return f"| {detail.title}"
        return self.default_title

    def snapshot(self) -> dict:
        with self._lock:
            selected = self._selected_id
            watched = self.watched.get(selected) if selected else None
            return {
                "selected_id": selected,
                "status": self._status.kind.value,
                "error": self._status.message,
                "detail": self._detail.to_dict() if self._detail else None,
                "watched_user_rating": watched.user_rating if watched else None,
                "max_rating": self.max_rating,
                "page_title": self.page_title,
            }
