# popcorn/catalog.py
import logging
import threading
from typing import List, Optional

import requests

from popcorn.models import SearchResultItem, DetailRecord

logger = logging.getLogger(__name__)

OMDB_URL = "http://www.omdbapi.com/"

# Exceptions
class CatalogError(Exception):
    """Base class for catalog failures."""
    pass

class NetworkError(CatalogError):
    """Transport failure, non-2xx status or unreadable body."""
    pass

class NotFoundError(CatalogError):
    """Well-formed reply with no matching movie."""
    pass

class CancelledError(CatalogError):
    """The request was superseded; callers treat this as a no-op."""
    pass


class CancellationToken:
    """Per-request handle; cancel() may be called from any thread."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("request cancelled")


class CatalogClient:
    """
    Thin wrapper around the OMDb search (s=) and lookup (i=) endpoints.
    Base URL, key and timeout are fixed at construction; the session can be
    injected so callers (and tests) control the transport.
    """

    def __init__(self, api_key: str, base_url: str = OMDB_URL, timeout: float = 8.0,
                 session: Optional[requests.Session] = None):
        if not api_key:
            raise ValueError("OMDb api key required")
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def search_by_title(self, title: str, token: Optional[CancellationToken] = None) -> List[SearchResultItem]:
        data = self._get({"s": title}, token)
        try:
            items = [SearchResultItem.from_omdb(raw) for raw in data.get("Search") or []]
        except (KeyError, TypeError, AttributeError) as exc:
            raise NetworkError("Something went wrong with fetching movies (invalid response)") from exc
        logger.debug("search '%s' returned %d items", title, len(items))
        return items

    def fetch_by_id(self, imdb_id: str, token: Optional[CancellationToken] = None) -> DetailRecord:
        data = self._get({"i": imdb_id}, token)
        try:
            return DetailRecord.from_omdb(data)
        except KeyError as exc:
            raise NetworkError("Something went wrong with fetching movie details (invalid response)") from exc

    def _get(self, params: dict, token: Optional[CancellationToken]) -> dict:
        if token:
            token.raise_if_cancelled()
        query = {"apikey": self.api_key, **params}
        try:
            resp = self.session.get(self.base_url, params=query, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("OMDb request failed: %s", exc)
            raise NetworkError(f"Something went wrong with fetching movies ({exc})") from exc
        # a cancelled request's reply is never parsed
        if token:
            token.raise_if_cancelled()
        if not resp.ok:
            logger.warning("OMDb returned HTTP %s", resp.status_code)
            raise NetworkError(f"Something went wrong with fetching movies (HTTP {resp.status_code})")
        try:
            data = resp.json()
        except ValueError as exc:
            raise NetworkError("Something went wrong with fetching movies (invalid response)") from exc
        if not isinstance(data, dict):
            raise NetworkError("Something went wrong with fetching movies (invalid response)")
        if data.get("Response") == "False":
            raise NotFoundError(data.get("Error") or "movie was not found")
        return data
