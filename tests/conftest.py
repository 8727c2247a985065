from datetime import datetime, timezone

import pytest

from models.event import Event
from models.user_preferences import PreferenceStore


@pytest.fixture
def config(tmp_path):
    return {
        "telegram_token": "123456:TEST",
        "ticketmaster_api_key": "test-key",
        "ticketmaster_base_url": "https://app.ticketmaster.com/discovery/v2/events.json",
        "database_file": str(tmp_path / "eventfinder.db"),
        "page_size": 50,
        "request_timeout": 5,
        "list_page_size": 2,
        "log_file": str(tmp_path / "bot.log"),
        "log_level": "INFO",
    }


@pytest.fixture
def store(config):
    store = PreferenceStore(config)
    yield store
    store.close()


def make_event(event_id="ev1", name="Concert", day=1, price=None, venue="Main Hall", city="Tempe", **kwargs):
    return Event(
        id=event_id,
        name=name,
        date=datetime(2026, 11, day, 19, 30, tzinfo=timezone.utc),
        venue=venue,
        address="1 Main St",
        city=city,
        state="Arizona",
        postal_code="85281",
        type_id=kwargs.pop("type_id", "KZFzniwnSyZfZ7v7nJ"),
        price=price,
        **kwargs,
    )


def sample_api_event(**overrides):
    data = {
        "id": "vvG1iZ4pS17Wpm",
        "name": "Phoenix Suns vs. Lakers",
        "url": "https://www.ticketmaster.com/event/vvG1iZ4pS17Wpm",
        "dates": {"start": {"dateTime": "2026-11-05T02:00:00Z", "localDate": "2026-11-04", "localTime": "19:00:00"}},
        "images": [
            {"url": "https://s1.ticketm.net/dam/a/small.jpg", "ratio": "4_3", "width": 305, "height": 225},
            {"url": "https://s1.ticketm.net/dam/a/wide.jpg", "ratio": "16_9", "width": 1024, "height": 576},
        ],
        "priceRanges": [{"type": "standard", "currency": "USD", "min": 35.5, "max": 250.0}],
        "classifications": [{"segment": {"id": "KZFzniwnSyZfZ7v7nE", "name": "Sports"}}],
        "_embedded": {
            "venues": [
                {
                    "name": "Footprint Center",
                    "timezone": "America/Phoenix",
                    "city": {"name": "Phoenix"},
                    "state": {"name": "Arizona", "stateCode": "AZ"},
                    "country": {"name": "United States Of America", "countryCode": "US"},
                    "address": {"line1": "201 E Jefferson St"},
                    "postalCode": "85004",
                    "location": {"latitude": "33.445899", "longitude": "-112.071313"},
                }
            ]
        },
    }
    data.update(overrides)
    return data
