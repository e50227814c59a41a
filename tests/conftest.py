import threading

import pytest

from popcorn.catalog import CatalogClient
from popcorn.models import SearchResultItem, DetailRecord
from popcorn.repo import InMemoryKVStore

# OMDb-shaped payloads
MATRIX_SEARCH = {
    "Search": [
        {"imdbID": "tt1", "Title": "The Matrix", "Year": "1999", "Poster": "http://img/tt1.jpg", "Type": "movie"},
        {"imdbID": "tt2", "Title": "Matrix Reloaded", "Year": "2003", "Poster": "N/A", "Type": "movie"},
    ],
    "totalResults": "2",
    "Response": "True",
}
MATRIX_DETAIL = {
    "imdbID": "tt1", "Title": "The Matrix", "Year": "1999", "Poster": "http://img/tt1.jpg",
    "Runtime": "136 min", "Genre": "Action, Sci-Fi", "imdbRating": "8.7",
    "Plot": "A hacker learns the truth.", "Actors": "Keanu Reeves, Laurence Fishburne",
    "Director": "Lana Wachowski, Lilly Wachowski", "Released": "31 Mar 1999", "Response": "True",
}
RELOADED_DETAIL = {
    "imdbID": "tt2", "Title": "Matrix Reloaded", "Year": "2003", "Poster": "N/A",
    "Runtime": "138 min", "Genre": "Action", "imdbRating": "7.2", "Plot": "N/A",
    "Actors": "Keanu Reeves", "Director": "N/A", "Released": "15 May 2003", "Response": "True",
}
NOT_FOUND = {"Response": "False", "Error": "Movie not found!"}


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    """requests.Session stand-in: handler(params) returns a FakeResponse or raises."""

    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": dict(params or {}), "timeout": timeout})
        return self.handler(params or {})


def omdb_handler(searches=None, details=None):
    searches = searches or {}
    details = details or {}

    def handler(params):
        if "s" in params:
            return FakeResponse(searches.get(params["s"], NOT_FOUND))
        return FakeResponse(details.get(params["i"], {"Response": "False", "Error": "Incorrect IMDb ID."}))
    return handler


class FakeCatalog:
    """
    Catalog stand-in for controller tests. Values are lists / DetailRecords or
    exceptions to raise. A gate (threading.Event) holds a call until set.
    """

    def __init__(self, searches=None, details=None, honor_cancel=False):
        self.searches = searches or {}
        self.details = details or {}
        self.honor_cancel = honor_cancel
        self.gates = {}
        self.started = {}
        self.calls = []

    def _wait(self, key, token):
        self.started.setdefault(key, threading.Event()).set()
        gate = self.gates.get(key)
        if gate is not None:
            assert gate.wait(5), f"gate {key} never released"
        if self.honor_cancel and token is not None:
            token.raise_if_cancelled()

    def search_by_title(self, title, token=None):
        self.calls.append(("s", title))
        self._wait(("s", title), token)
        value = self.searches[title]
        if isinstance(value, Exception):
            raise value
        return list(value)

    def fetch_by_id(self, movie_id, token=None):
        self.calls.append(("i", movie_id))
        self._wait(("i", movie_id), token)
        value = self.details[movie_id]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def matrix_items():
    return [SearchResultItem.from_omdb(r) for r in MATRIX_SEARCH["Search"]]

@pytest.fixture
def matrix_detail():
    return DetailRecord.from_omdb(MATRIX_DETAIL)

@pytest.fixture
def reloaded_detail():
    return DetailRecord.from_omdb(RELOADED_DETAIL)

@pytest.fixture
def fake_catalog(matrix_items, matrix_detail, reloaded_detail):
    return FakeCatalog(searches={"Matrix": matrix_items},
                       details={"tt1": matrix_detail, "tt2": reloaded_detail})

@pytest.fixture
def store():
    return InMemoryKVStore()

@pytest.fixture
def omdb_session():
    return FakeSession(omdb_handler(searches={"Matrix": MATRIX_SEARCH},
                                    details={"tt1": MATRIX_DETAIL, "tt2": RELOADED_DETAIL}))

@pytest.fixture
def omdb_client(omdb_session):
    return CatalogClient("test-key", base_url="http://omdb.test/", timeout=3, session=omdb_session)
