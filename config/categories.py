from typing import List, NamedTuple, Optional


class EventType(NamedTuple):
    id: str
    name: str
    segment_id: str
    icon: str


# Ticketmaster segment ids, so the selection can be sent to the API as-is
EVENT_TYPES: List[EventType] = [
    EventType("KZFzniwnSyZfZ7v7nJ", "Music", "KZFzniwnSyZfZ7v7nJ", "🎵"),
    EventType("KZFzniwnSyZfZ7v7nE", "Sports", "KZFzniwnSyZfZ7v7nE", "🏟️"),
    EventType("KZFzniwnSyZfZ7v7na", "Arts & Theater", "KZFzniwnSyZfZ7v7na", "🎭"),
    EventType("KZFzniwnSyZfZ7v7nn", "Family", "KZFzniwnSyZfZ7v7nn", "👨‍👩‍👧"),
    EventType("KZFzniwnSyZfZ7v7nl", "Comedy", "KZFzniwnSyZfZ7v7nl", "😄"),
    EventType("KZFzniwnSyZfZ7v7n1", "Miscellaneous", "KZFzniwnSyZfZ7v7n1", "✨"),
]


def find_event_type(type_id: str) -> Optional[EventType]:
    for event_type in EVENT_TYPES:
        if event_type.id == type_id:
            return event_type
    return None
