# popcorn/search.py
import logging
import threading
from concurrent.futures import Executor, Future
from typing import List, Optional

from popcorn.catalog import CancellationToken, CancelledError, NetworkError, NotFoundError
from popcorn.models import SearchResultItem, SessionStatus, StatusKind

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "movie was not found"
FETCH_FAILED_MESSAGE = "Something went wrong with fetching movies"


def submit(executor: Optional[Executor], fn, *args) -> Future:
    """Run fn on executor, or inline when executor is None. Always returns a Future."""
    if executor is not None:
        return executor.submit(fn, *args)
    fut: Future = Future()
    try:
        fut.set_result(fn(*args))
    except Exception as e:
        fut.set_exception(e)
    return fut


class SearchSession:
    """
    Owns the query string, the result list and the search status.

    Each query change supersedes the previous request: its token is cancelled
    and its sequence number goes stale, so an older reply never overwrites a
    newer one regardless of arrival order.
    """

    def __init__(self, client, selection=None, executor: Optional[Executor] = None,
                 min_query_length: int = 1):
        self.client = client
        self.selection = selection
        self.executor = executor
        self.min_query_length = min_query_length
        self._lock = threading.RLock()
        self._query = ""
        self._status = SessionStatus.idle()
        self._results: List[SearchResultItem] = []
        self._seq = 0
        self._token: Optional[CancellationToken] = None

    def set_query(self, query: str) -> Future:
        query = query or ""
        with self._lock:
            # an errored session re-dispatches, so resubmitting retries
            if query == self._query and self._status.kind is not StatusKind.ERRORED:
                logger.debug("query '%s' unchanged, nothing to do", query)
                return submit(None, lambda: None)
        if self.selection is not None:
            self.selection.close()

        with self._lock:
            if self._token is not None:
                self._token.cancel()
            self._seq += 1
            seq = self._seq
            self._query = query
            self._results = []
            if len(query.strip()) < self.min_query_length:
                self._token = None
                self._status = SessionStatus.idle()
                logger.debug("query '%s' below minimum length, not searching", query)
            else:
                self._token = CancellationToken()
                self._status = SessionStatus.loading()
            token = self._token

        if token is None:
            return submit(None, lambda: None)
        logger.info("searching '%s' (request %d)", query, seq)
        return submit(self.executor, self._run, query.strip(), seq, token)

    def _is_current(self, seq: int) -> bool:
        return seq == self._seq

    def _run(self, query: str, seq: int, token: CancellationToken) -> None:
        try:
            results = self.client.search_by_title(query, token)
        except CancelledError:
            logger.debug("search request %d cancelled", seq)
            return
        except NotFoundError:
            self._apply(seq, [], SessionStatus.errored(NOT_FOUND_MESSAGE))
            return
        except NetworkError as e:
            self._apply(seq, [], SessionStatus.errored(str(e)))
            return
        except Exception:
            logger.exception("search request %d for '%s' failed", seq, query)
            self._apply(seq, [], SessionStatus.errored(FETCH_FAILED_MESSAGE))
            return
        self._apply(seq, results, SessionStatus.ready())

    def _apply(self, seq: int, results: List[SearchResultItem], status: SessionStatus) -> None:
        with self._lock:
            if not self._is_current(seq):
                logger.debug("discarding stale search response %d (current %d)", seq, self._seq)
                return
            self._results = results
            self._status = status
            self._token = None
        logger.info("search request %d finished: %s (%d results)", seq, status.kind.value, len(results))

    # ---- Reads ----
    @property
    def query(self) -> str:
        return self._query

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def results(self) -> List[SearchResultItem]:
        with self._lock:
            return list(self._results)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "query": self._query,
                "status": self._status.kind.value,
                "error": self._status.message,
                "results": [r.to_dict() for r in self._results],
                "result_count": len(self._results),
            }
