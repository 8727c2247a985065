import json
import sqlite3
import logging
import threading
from typing import List, Optional

from models.event import Event

logger = logging.getLogger(__name__)


class UserPreferences:
    def __init__(self, selected_event_types: Optional[List[str]] = None, location: str = "", has_onboarded: bool = False):
        self.selected_event_types: List[str] = list(selected_event_types or [])
        self.location = location
        # Once set, /start skips the preferences screen and goes straight to the events
        self.has_onboarded = has_onboarded


class PreferenceStore:
    def __init__(self, config):
        self.config = config
        self.db_conn = sqlite3.connect(config["database_file"], check_same_thread=False)
        # Fetches store their results from worker threads while the bot loop reads and writes
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self):
        cursor = self.db_conn.cursor()
        cursor.execute(
            """CREATE TABLE IF NOT EXISTS preferences (
                user_id INTEGER PRIMARY KEY,
                data TEXT
            )"""
        )
        cursor.execute(
            """CREATE TABLE IF NOT EXISTS events (
                user_id INTEGER,
                event_id TEXT,
                data TEXT,
                is_saved INTEGER DEFAULT 0,
                PRIMARY KEY(user_id, event_id)
            )"""
        )
        self.db_conn.commit()

    def close(self):
        with self._lock:
            self.db_conn.close()

    def load_preferences(self, user_id: int) -> Optional[UserPreferences]:
        with self._lock:
            cursor = self.db_conn.cursor()
            cursor.execute("SELECT data FROM preferences WHERE user_id = ?", (user_id,))
            result = cursor.fetchone()
        if not result:
            return None
        data = json.loads(result[0])
        return UserPreferences(
            selected_event_types=data.get("selected_event_types", []),
            location=data.get("location", ""),
            has_onboarded=data.get("has_onboarded", False),
        )

    def save_preferences(self, user_id: int, preferences: UserPreferences):
        data = {
            "selected_event_types": preferences.selected_event_types,
            "location": preferences.location,
            "has_onboarded": preferences.has_onboarded,
        }
        with self._lock, self.db_conn:
            self.db_conn.execute(
                "INSERT OR REPLACE INTO preferences (user_id, data) VALUES (?, ?)",
                (user_id, json.dumps(data)),
            )

    def load_events(self, user_id: int) -> List[Event]:
        with self._lock:
            cursor = self.db_conn.cursor()
            cursor.execute("SELECT data, is_saved FROM events WHERE user_id = ?", (user_id,))
            rows = cursor.fetchall()
        return self._rows_to_events(user_id, rows)

    def load_saved_events(self, user_id: int) -> List[Event]:
        with self._lock:
            cursor = self.db_conn.cursor()
            cursor.execute("SELECT data, is_saved FROM events WHERE user_id = ? AND is_saved = 1", (user_id,))
            rows = cursor.fetchall()
        return self._rows_to_events(user_id, rows)

    def replace_events(self, user_id: int, events: List[Event]):
        """Store a fresh fetch for a user.

        Unsaved events from the previous fetch are dropped. Saved events are
        kept even when the new fetch no longer contains them, and an event
        that comes back in the new fetch keeps its saved flag. Either the
        whole fetch is stored or nothing changes.
        """
        with self._lock, self.db_conn:
            cursor = self.db_conn.cursor()
            cursor.execute("SELECT event_id FROM events WHERE user_id = ? AND is_saved = 1", (user_id,))
            saved_ids = {row[0] for row in cursor.fetchall()}
            cursor.execute("DELETE FROM events WHERE user_id = ? AND is_saved = 0", (user_id,))
            for event in events:
                cursor.execute(
                    "INSERT OR REPLACE INTO events (user_id, event_id, data, is_saved) VALUES (?, ?, ?, ?)",
                    (user_id, event.id, json.dumps(event.to_dict()), 1 if event.id in saved_ids else 0),
                )
        for event in events:
            event.is_saved = event.id in saved_ids

    def set_saved(self, user_id: int, event_id: str, saved: bool) -> bool:
        with self._lock, self.db_conn:
            cursor = self.db_conn.execute(
                "UPDATE events SET is_saved = ? WHERE user_id = ? AND event_id = ?",
                (1 if saved else 0, user_id, event_id),
            )
        return cursor.rowcount > 0

    def _rows_to_events(self, user_id: int, rows) -> List[Event]:
        events = []
        for data, is_saved in rows:
            try:
                event = Event.from_dict(json.loads(data))
            except (ValueError, KeyError, TypeError) as e:
                logger.error(f"Error parsing stored event for user {user_id}: {e}")
                continue
            event.is_saved = bool(is_saved)
            events.append(event)
        events.sort(key=lambda event: event.date)
        return events
