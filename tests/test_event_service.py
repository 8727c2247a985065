import sqlite3
from unittest.mock import MagicMock, patch

import pytest

from conftest import make_event
from models.user_preferences import UserPreferences
from services.event_service import EventFinder, EventFinderRegistry, search_events, sort_events
from services.ticketmaster_service import TicketmasterError

FETCH = "services.event_service.fetch_ticketmaster_events"


def test_new_user_gets_default_preferences(config, store):
    finder = EventFinder(config, store, 1)
    assert finder.has_onboarded is False
    assert finder.location == ""
    prefs = store.load_preferences(1)
    assert prefs is not None
    assert prefs.has_onboarded is False


def test_loads_existing_preferences_and_events(config, store):
    store.save_preferences(1, UserPreferences(["KZFzniwnSyZfZ7v7nJ"], "Tempe", True))
    store.replace_events(1, [make_event("a")])
    finder = EventFinder(config, store, 1)
    assert finder.has_onboarded is True
    assert finder.location == "Tempe"
    assert finder.selected_event_types == ["KZFzniwnSyZfZ7v7nJ"]
    assert [event.id for event in finder.events] == ["a"]


def test_load_failure_sets_error(config, store):
    with patch.object(store, "load_preferences", side_effect=sqlite3.OperationalError("locked")):
        finder = EventFinder(config, store, 1)
    assert finder.error == "Failed to load preferences: locked"


def test_fetch_requires_location(config, store):
    finder = EventFinder(config, store, 1)
    with patch(FETCH) as mock_fetch:
        finder.fetch_events()
    mock_fetch.assert_not_called()
    assert finder.error == "Please enter a location"


def test_fetch_replaces_events(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    finder.selected_event_types = ["x"]
    finder.error = "old error"
    with patch(FETCH, return_value=[make_event("a")]) as mock_fetch:
        finder.fetch_events()
    mock_fetch.assert_called_once_with(config, "Tempe", ["x"])
    assert [event.id for event in finder.events] == ["a"]
    assert finder.error is None
    assert finder.is_loading is False
    assert [event.id for event in store.load_events(1)] == ["a"]


def test_fetch_failure_keeps_previous_events(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    finder.events = [make_event("old")]
    with patch(FETCH, side_effect=TicketmasterError("Ticketmaster returned HTTP 500")):
        finder.fetch_events()
    assert finder.error == "Failed to fetch events: Ticketmaster returned HTTP 500"
    assert [event.id for event in finder.events] == ["old"]
    assert finder.is_loading is False


def test_complete_onboarding_saves_and_fetches(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    with patch(FETCH, return_value=[make_event("a")]):
        finder.complete_onboarding()
    assert finder.has_onboarded is True
    assert store.load_preferences(1).has_onboarded is True
    assert store.load_preferences(1).location == "Tempe"
    assert len(finder.events) == 1


def test_toggle_saved(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    with patch(FETCH, return_value=[make_event("a"), make_event("b", day=2)]):
        finder.fetch_events()

    assert finder.toggle_saved("a") is True
    assert finder.events[0].is_saved is True
    assert [event.id for event in finder.saved_events()] == ["a"]
    assert finder.toggle_saved("a") is False
    assert finder.saved_events() == []
    assert finder.toggle_saved("missing") is None


def test_saved_event_found_after_refetch(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    with patch(FETCH, return_value=[make_event("a")]):
        finder.fetch_events()
    finder.toggle_saved("a")
    with patch(FETCH, return_value=[make_event("b")]):
        finder.fetch_events()
    assert finder.find_event("a").is_saved is True


def test_registry_reuses_finder(config, store):
    registry = EventFinderRegistry(config, store)
    assert registry.get(1) is registry.get(1)
    assert registry.get(1) is not registry.get(2)


def test_search_events():
    events = [
        make_event("a", name="Jazz Night", venue="Blue Room", city="Tempe"),
        make_event("b", name="Hockey", venue="Arena", city="Glendale"),
    ]
    assert [event.id for event in search_events(events, "jazz")] == ["a"]
    assert [event.id for event in search_events(events, "ARENA")] == ["b"]
    assert [event.id for event in search_events(events, "glen")] == ["b"]
    assert len(search_events(events, "  ")) == 2


def test_sort_events():
    events = [
        make_event("a", name="beta", day=3, price=20.0, venue="Zed"),
        make_event("b", name="Alpha", day=1, price=None, venue="Arena"),
        make_event("c", name="gamma", day=2, price=5.0, venue="Mid"),
    ]
    assert [event.id for event in sort_events(events)] == ["b", "c", "a"]
    assert [event.id for event in sort_events(events, "name")] == ["b", "a", "c"]
    assert [event.id for event in sort_events(events, "price")] == ["c", "a", "b"]
    assert [event.id for event in sort_events(events, "venue")] == ["b", "c", "a"]
    with pytest.raises(ValueError):
        sort_events(events, "popularity")


def test_save_failure_sets_error(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    with patch.object(store, "save_preferences", side_effect=sqlite3.OperationalError("disk is full")):
        finder.save_user_preferences()
    assert finder.error == "Failed to save preferences: disk is full"
    assert finder.has_onboarded is False


def test_store_failure_keeps_previous_events(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    with patch(FETCH, return_value=[make_event("old1"), make_event("old2", day=2)]):
        finder.fetch_events()

    with patch(FETCH, return_value=[make_event("new1", day=3)]):
        with patch.object(store, "replace_events", side_effect=sqlite3.OperationalError("disk I/O error")):
            finder.fetch_events()

    assert finder.error == "Failed to store events: disk I/O error"
    assert [event.id for event in finder.events] == ["old1", "old2"]
    assert [event.id for event in store.load_events(1)] == ["old1", "old2"]


def test_malformed_response_surfaces_as_error(config, store):
    finder = EventFinder(config, store, 1)
    finder.location = "Tempe"
    response = MagicMock()
    response.json.return_value = {"_embedded": {"events": [{"id": "x", "name": "Show", "dates": "soon"}]}}
    with patch("services.ticketmaster_service.requests.get", return_value=response):
        finder.fetch_events()
    assert finder.error.startswith("Failed to fetch events: Invalid response body")
    assert finder.is_loading is False
