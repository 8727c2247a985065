from datetime import datetime
from typing import Dict, Optional, Tuple


class Event:
    def __init__(
        self,
        id: str,
        name: str,
        date: datetime,
        venue: str,
        address: str,
        city: str,
        state: str,
        postal_code: str,
        type_id: str,
        image_url: Optional[str] = None,
        description: Optional[str] = None,
        price: Optional[float] = None,
        currency: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        url: Optional[str] = None,
        is_saved: bool = False,
    ):
        self.id = id
        self.name = name
        self.date = date
        self.image_url = image_url
        self.description = description
        self.price = price
        self.currency = currency
        self.venue = venue
        self.address = address
        self.city = city
        self.state = state
        self.postal_code = postal_code
        self.latitude = latitude
        self.longitude = longitude
        self.url = url
        self.is_saved = is_saved
        self.type_id = type_id

    @property
    def coordinate(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def full_address(self) -> str:
        return f"{self.venue}\n{self.address}\n{self.city}, {self.state} {self.postal_code}"

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date.isoformat(),
            "image_url": self.image_url,
            "description": self.description,
            "price": self.price,
            "currency": self.currency,
            "venue": self.venue,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "url": self.url,
            "is_saved": self.is_saved,
            "type_id": self.type_id,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Event":
        return cls(
            id=data["id"],
            name=data["name"],
            date=datetime.fromisoformat(data["date"]),
            image_url=data.get("image_url"),
            description=data.get("description"),
            price=data.get("price"),
            currency=data.get("currency"),
            venue=data.get("venue", "Unknown Venue"),
            address=data.get("address", "Unknown Address"),
            city=data.get("city", "Unknown City"),
            state=data.get("state", "Unknown State"),
            postal_code=data.get("postal_code", "Unknown Postal Code"),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            url=data.get("url"),
            is_saved=data.get("is_saved", False),
            type_id=data.get("type_id", ""),
        )

    def __repr__(self):
        return f"Event(id={self.id!r}, name={self.name!r}, date={self.date.isoformat()})"


class EventAnnotation:
    """Map marker for an event's venue."""

    def __init__(self, latitude: float, longitude: float, title: str, subtitle: str):
        self.latitude = latitude
        self.longitude = longitude
        self.title = title
        self.subtitle = subtitle

    @classmethod
    def for_event(cls, event: Event) -> Optional["EventAnnotation"]:
        coordinate = event.coordinate
        if coordinate is None:
            return None
        return cls(coordinate[0], coordinate[1], event.name, event.venue)
