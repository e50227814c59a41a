import pytest
import requests
from popcorn.catalog import CatalogClient, CatalogError, NetworkError, NotFoundError, CancelledError
from popcorn.repo import InMemoryKVStore, RepoError
from popcorn.service import PopcornService
from popcorn.watched import ValidationError, DuplicateEntryError
from conftest import FakeSession

@pytest.fixture
def svc(fake_catalog):
    return PopcornService(fake_catalog, InMemoryKVStore())

def test_catalog_errors_share_base():
    for exc in (NetworkError, NotFoundError, CancelledError):
        assert issubclass(exc, CatalogError)

def test_cancelled_search_is_not_surfaced(svc, fake_catalog):
    fake_catalog.searches["gone"] = CancelledError("request cancelled")
    svc.search.set_query("gone")
    snap = svc.search.snapshot()
    # a cancelled reply leaves the session as the newer request left it
    assert snap["status"] == "loading"
    assert snap["error"] == ""

def test_timeout_becomes_network_error_in_session():
    def slow(params):
        raise requests.Timeout("read timed out")
    svc = PopcornService(CatalogClient("k", session=FakeSession(slow)), InMemoryKVStore())
    svc.search.set_query("Matrix")
    assert svc.search.status.message.startswith("Something went wrong with fetching movies")
    assert "read timed out" in svc.search.status.message

def test_duplicate_rating_message(svc):
    svc.selection.select("tt1")
    svc.selection.confirm_rating(8)
    svc.selection.select("tt1")
    with pytest.raises(DuplicateEntryError, match="already in the watched list"):
        svc.selection.confirm_rating(8)

def test_rating_out_of_range_message(svc):
    svc.selection.select("tt1")
    with pytest.raises(ValidationError, match="rating must be between 1 and 10"):
        svc.selection.confirm_rating(12)

def test_rating_not_integer_message(svc):
    svc.selection.select("tt1")
    with pytest.raises(ValidationError, match="rating must be a whole number"):
        svc.selection.confirm_rating(7.5)

def test_storage_full_keeps_panel_and_list(fake_catalog):
    svc = PopcornService(fake_catalog, InMemoryKVStore(max_value_bytes=10))
    svc.selection.select("tt1")
    with pytest.raises(RepoError):
        svc.selection.confirm_rating(9)
    assert svc.watched.count == 0
    assert svc.selection.selected_id == "tt1"
