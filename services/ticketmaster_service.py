import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests

from models.event import Event

logger = logging.getLogger(__name__)


class TicketmasterError(Exception):
    pass


class TicketmasterPage(NamedTuple):
    total_elements: int
    total_pages: int
    size: int
    number: int


def build_search_params(api_key: str, location: str, segment_ids: List[str], size: int) -> Dict[str, str]:
    params = {
        "apikey": api_key,
        "city": location,
        "size": str(size),
    }
    # Several categories can be selected at once; the API takes them comma separated
    if segment_ids:
        params["segmentId"] = ",".join(segment_ids)
    return params


def fetch_events(config, location: str, segment_ids: List[str]) -> List[Event]:
    """Query the Discovery API for events in a city and map them to Events."""
    api_key = config.get("ticketmaster_api_key")
    if not api_key:
        raise TicketmasterError("Ticketmaster API key is not configured")

    params = build_search_params(api_key, location, segment_ids, config["page_size"])
    try:
        response = requests.get(
            config["ticketmaster_base_url"],
            params=params,
            timeout=config["request_timeout"],
        )
        response.raise_for_status()
        data = response.json()
    # Messages are built by hand: the request URL carries the API key
    except requests.HTTPError as e:
        raise TicketmasterError(f"Ticketmaster returned HTTP {e.response.status_code}") from e
    except requests.Timeout as e:
        raise TicketmasterError("The request timed out") from e
    except requests.ConnectionError as e:
        raise TicketmasterError("Could not reach Ticketmaster") from e
    except requests.RequestException as e:
        raise TicketmasterError(f"Request failed ({type(e).__name__})") from e
    except ValueError as e:
        raise TicketmasterError(f"Invalid response body: {e}") from e

    if not isinstance(data, dict):
        raise TicketmasterError("Invalid response body: expected a JSON object")

    try:
        events = convert_to_events(data)
    except (AttributeError, KeyError, TypeError) as e:
        raise TicketmasterError(f"Invalid response body: {e}") from e
    page = parse_page(data)
    if page:
        logger.info(f"Fetched {len(events)} of {page.total_elements} events for '{location}'")
    else:
        logger.info(f"Fetched {len(events)} events for '{location}'")
    return events


def parse_page(response: Dict) -> Optional[TicketmasterPage]:
    page = response.get("page")
    if not isinstance(page, dict):
        return None
    try:
        return TicketmasterPage(
            total_elements=int(page.get("totalElements", 0)),
            total_pages=int(page.get("totalPages", 0)),
            size=int(page.get("size", 0)),
            number=int(page.get("number", 0)),
        )
    except (TypeError, ValueError):
        return None


def convert_to_events(response: Dict) -> List[Event]:
    api_events = (response.get("_embedded") or {}).get("events")
    if not api_events:
        return []

    events = []
    for api_event in api_events:
        if not isinstance(api_event, dict):
            logger.warning(f"Skipping event that is not an object: {api_event!r}")
            continue
        if not api_event.get("id") or not api_event.get("name"):
            logger.warning(f"Skipping event without id or name: {api_event.get('id')!r}")
            continue
        events.append(_convert_event(api_event))
    # Stable, so events sharing a start time keep the API's order
    events.sort(key=lambda event: event.date)
    return events


def _convert_event(api_event: Dict) -> Event:
    venues = (api_event.get("_embedded") or {}).get("venues") or []
    venue = venues[0] if venues else {}
    location = venue.get("location") or {}
    price_ranges = api_event.get("priceRanges") or []
    price_range = price_ranges[0] if price_ranges else {}
    classifications = api_event.get("classifications") or []
    segment = (classifications[0].get("segment") or {}) if classifications else {}

    return Event(
        id=api_event["id"],
        name=api_event["name"],
        date=parse_event_date(api_event.get("dates") or {}, venue.get("timezone")),
        image_url=select_image_url(api_event.get("images") or []),
        description=None,
        price=_parse_float(price_range.get("min")),
        currency=price_range.get("currency"),
        venue=venue.get("name") or "Unknown Venue",
        address=(venue.get("address") or {}).get("line1") or "Unknown Address",
        city=(venue.get("city") or {}).get("name") or "Unknown City",
        state=(venue.get("state") or {}).get("name") or "Unknown State",
        postal_code=venue.get("postalCode") or "Unknown Postal Code",
        latitude=_parse_float(location.get("latitude")),
        longitude=_parse_float(location.get("longitude")),
        url=api_event.get("url"),
        is_saved=False,
        type_id=segment.get("id") or "",
    )


def parse_event_date(dates: Dict, timezone_name: Optional[str] = None) -> datetime:
    """Start time of an event, shown in the venue's timezone where known.

    Falls back from the UTC ``dateTime`` to ``localDate``/``localTime`` and
    finally to the current time.
    """
    start = dates.get("start") or {}
    venue_tz = _load_timezone(timezone_name)

    date_time = start.get("dateTime")
    if date_time:
        try:
            parsed = datetime.fromisoformat(date_time.replace("Z", "+00:00"))
        except ValueError:
            logger.warning(f"Unparsable dateTime {date_time!r}")
        else:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(venue_tz) if venue_tz else parsed

    local_date = start.get("localDate")
    if local_date:
        local_time = start.get("localTime") or "00:00:00"
        try:
            parsed = datetime.fromisoformat(f"{local_date}T{local_time}")
        except ValueError:
            logger.warning(f"Unparsable local date {local_date!r} {local_time!r}")
        else:
            return parsed.replace(tzinfo=venue_tz or timezone.utc)

    return datetime.now(timezone.utc)


def select_image_url(images: List[Dict]) -> Optional[str]:
    # 16:9 fits the cards best, otherwise take whatever comes first
    for image in images:
        if image.get("ratio") == "16_9" and image.get("url"):
            return image["url"]
    if images:
        return images[0].get("url")
    return None


def _load_timezone(name: Optional[str]):
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown venue timezone {name!r}")
        return None


def _parse_float(value) -> Optional[float]:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None
