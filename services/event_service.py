import logging
import sqlite3
from typing import Dict, List, Optional

from models.event import Event
from models.user_preferences import PreferenceStore, UserPreferences
from services.ticketmaster_service import TicketmasterError, fetch_events as fetch_ticketmaster_events

logger = logging.getLogger(__name__)

SORT_KEYS = ["date", "name", "price", "venue"]


class EventFinder:
    """Per-user state behind the chat screens.

    Holds the current preferences and fetched events. Failures never raise
    out of here; they land in ``error`` for the handlers to show.
    """

    def __init__(self, config, store: PreferenceStore, user_id: int):
        self.config = config
        self.store = store
        self.user_id = user_id
        self.events: List[Event] = []
        self.selected_event_types: List[str] = []
        self.location = ""
        self.is_loading = False
        self.error: Optional[str] = None
        self.has_onboarded = False
        self.load_user_preferences()

    def load_user_preferences(self):
        try:
            preferences = self.store.load_preferences(self.user_id)
            if preferences:
                self.selected_event_types = list(preferences.selected_event_types)
                self.location = preferences.location
                self.has_onboarded = preferences.has_onboarded
                self.events = self.store.load_events(self.user_id)
            else:
                # Onboarding stays incomplete so the user is asked for preferences
                self.store.save_preferences(self.user_id, UserPreferences())
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Failed to load preferences for user {self.user_id}: {e}")
            self.error = f"Failed to load preferences: {e}"

    def save_user_preferences(self):
        preferences = UserPreferences(
            selected_event_types=self.selected_event_types,
            location=self.location,
            has_onboarded=True,
        )
        try:
            self.store.save_preferences(self.user_id, preferences)
            self.has_onboarded = True
        except sqlite3.Error as e:
            logger.error(f"Failed to save preferences for user {self.user_id}: {e}")
            self.error = f"Failed to save preferences: {e}"

    def complete_onboarding(self):
        self.has_onboarded = True
        self.save_user_preferences()
        self.fetch_events()

    def fetch_events(self):
        # Categories are optional, the location is not
        if not self.location:
            self.error = "Please enter a location"
            return

        self.is_loading = True
        self.error = None
        try:
            events = fetch_ticketmaster_events(self.config, self.location, self.selected_event_types)
            self.store.replace_events(self.user_id, events)
            self.events = events
        except TicketmasterError as e:
            logger.error(f"Fetch error for user {self.user_id} in '{self.location}': {e}")
            self.error = f"Failed to fetch events: {e}"
        except sqlite3.Error as e:
            logger.error(f"Failed to store events for user {self.user_id}: {e}")
            self.error = f"Failed to store events: {e}"
        finally:
            self.is_loading = False

    def find_event(self, event_id: str) -> Optional[Event]:
        for event in self.events:
            if event.id == event_id:
                return event
        for event in self.saved_events():
            if event.id == event_id:
                return event
        return None

    def saved_events(self) -> List[Event]:
        try:
            return self.store.load_saved_events(self.user_id)
        except sqlite3.Error as e:
            logger.error(f"Failed to load saved events for user {self.user_id}: {e}")
            self.error = f"Failed to load saved events: {e}"
            return [event for event in self.events if event.is_saved]

    def toggle_saved(self, event_id: str) -> Optional[bool]:
        event = self.find_event(event_id)
        if event is None:
            return None
        saved = not event.is_saved
        try:
            if not self.store.set_saved(self.user_id, event_id, saved):
                return None
        except sqlite3.Error as e:
            logger.error(f"Failed to update saved event {event_id} for user {self.user_id}: {e}")
            self.error = f"Failed to save event: {e}"
            return None
        event.is_saved = saved
        for loaded in self.events:
            if loaded.id == event_id:
                loaded.is_saved = saved
        return saved


class EventFinderRegistry:
    def __init__(self, config, store: PreferenceStore):
        self.config = config
        self.store = store
        self.finders: Dict[int, EventFinder] = {}

    def get(self, user_id: int) -> EventFinder:
        finder = self.finders.get(user_id)
        if finder is None:
            finder = EventFinder(self.config, self.store, user_id)
            self.finders[user_id] = finder
        return finder


def search_events(events: List[Event], query: str) -> List[Event]:
    query = (query or "").strip().lower()
    if not query:
        return list(events)
    return [
        event for event in events
        if query in event.name.lower() or query in event.venue.lower() or query in event.city.lower()
    ]


def sort_events(events: List[Event], key: str = "date") -> List[Event]:
    if key == "date":
        return sorted(events, key=lambda event: event.date)
    if key == "name":
        return sorted(events, key=lambda event: event.name.lower())
    if key == "venue":
        return sorted(events, key=lambda event: (event.venue.lower(), event.date))
    if key == "price":
        # Unpriced events go last
        return sorted(events, key=lambda event: (event.price is None, event.price or 0.0, event.date))
    raise ValueError(f"Unknown sort key: {key}")
