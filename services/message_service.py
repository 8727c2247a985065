from typing import Iterable, List, Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup
from telegram.helpers import escape_markdown

from config.categories import EVENT_TYPES, find_event_type
from models.event import Event
from services.event_service import SORT_KEYS

FEATURE_ROWS = [
    "🔍 Find events tailored to you!",
    "📍 Search events in your area!",
    "🎟️ Get event details and locations!",
    "✍️ Sign up for the events!",
]

HELP_TEXT = (
    "/events - Show events near you\n"
    "/refresh - Fetch events again\n"
    "/search - Search the event list\n"
    "/sort - Sort by date, name, price or venue\n"
    "/saved - Show your saved events\n"
    "/preferences - Edit event types\n"
    "/setlocation - Change your city"
)


def _md(text: str) -> str:
    return escape_markdown(text or "", version=1)


def format_price(price: float, currency: Optional[str] = None) -> str:
    if currency in (None, "", "USD"):
        return f"${price:.2f}"
    return f"{price:.2f} {currency}"


def format_short_date(event: Event) -> str:
    return event.date.strftime("%a, %b %d, %Y")


def format_full_date(event: Event) -> str:
    return event.date.strftime("%A, %B %d, %Y at %I:%M %p")


def format_welcome_message(has_onboarded: bool) -> str:
    lines = ["🌟 Welcome to EventFinder! 🌟", ""]
    lines.extend(FEATURE_ROWS)
    lines.append("")
    if has_onboarded:
        lines.append("Welcome back! Here is what you can do:")
        lines.append(HELP_TEXT)
    else:
        lines.append("Let's get started. Enter your location (only city names please):")
    return "\n".join(lines)


def format_event_card(event: Event) -> str:
    lines = [
        f"*{_md(event.name)}*",
        f"📍 {_md(event.venue)}",
        f"🗓️ {format_short_date(event)}",
    ]
    if event.price is not None:
        lines.append(f"💵 Starting at {format_price(event.price, event.currency)}")
    return "\n".join(lines)


def format_event_detail(event: Event) -> str:
    lines = [
        f"🎉 *{_md(event.name)}*",
        f"🗓️ {format_full_date(event)}",
    ]
    event_type = find_event_type(event.type_id)
    if event_type:
        lines.append(f"{event_type.icon} {_md(event_type.name)}")
    lines.extend([
        "",
        "*Venue*",
        _md(event.venue),
        _md(event.address),
        _md(f"{event.city}, {event.state} {event.postal_code}"),
    ])
    if event.price is not None:
        lines.extend(["", f"*Price*: {format_price(event.price, event.currency)}"])
    if event.coordinate is not None:
        lines.extend(["", "🗺️ Tap *Show on Map* to see the venue."])
    if event.url:
        lines.extend(["", "Get tickets directly from the provider below."])
    return "\n".join(lines)


def page_count(total: int, page_size: int) -> int:
    return max(1, (total + page_size - 1) // page_size)


def format_event_list(events: List[Event], title: str, page: int, page_size: int) -> str:
    if not events:
        return (
            f"*{_md(title)}*\n\n"
            "*No Events Found*\n"
            "Try adjusting your preferences or location to find more events."
        )
    pages = page_count(len(events), page_size)
    page = min(max(page, 0), pages - 1)
    start = page * page_size
    cards = []
    for number, event in enumerate(events[start:start + page_size], start=start + 1):
        cards.append(f"{number}. {format_event_card(event)}")
    header = f"*{_md(title)}* (page {page + 1}/{pages})"
    return header + "\n\n" + "\n\n".join(cards)


def build_selection_keyboard(selected: Iterable[str], is_onboarding: bool) -> InlineKeyboardMarkup:
    selected = set(selected)
    rows = []
    row = []
    for event_type in EVENT_TYPES:
        mark = "✅ " if event_type.id in selected else ""
        row.append(InlineKeyboardButton(f"{mark}{event_type.icon} {event_type.name}", callback_data=f"type:{event_type.id}"))
        if len(row) == 2:
            rows.append(row)
            row = []
    if row:
        rows.append(row)
    rows.append([InlineKeyboardButton("Find Events" if is_onboarding else "Update Preferences", callback_data="prefs:done")])
    return InlineKeyboardMarkup(rows)


def format_selection_message(location: str, is_onboarding: bool) -> str:
    title = "Set Your Preferences" if is_onboarding else "Edit Preferences"
    location_line = f"📍 Location: {_md(location)}" if location else "📍 No location set, use /setlocation"
    return (
        f"*{title}*\n\n"
        "What type of events are you interested in?\n"
        f"{location_line}"
    )


def build_list_keyboard(events: List[Event], page: int, page_size: int) -> InlineKeyboardMarkup:
    rows = []
    pages = page_count(len(events), page_size)
    page = min(max(page, 0), pages - 1)
    start = page * page_size
    for number, event in enumerate(events[start:start + page_size], start=start + 1):
        label = f"{number}. {event.name}"
        if len(label) > 48:
            label = label[:45] + "..."
        rows.append([InlineKeyboardButton(label, callback_data=f"event:{event.id}")])
    nav = []
    if page > 0:
        nav.append(InlineKeyboardButton("⬅️ Prev", callback_data=f"page:{page - 1}"))
    if page < pages - 1:
        nav.append(InlineKeyboardButton("Next ➡️", callback_data=f"page:{page + 1}"))
    if nav:
        rows.append(nav)
    rows.append([InlineKeyboardButton(f"↕️ {key.title()}", callback_data=f"sort:{key}") for key in SORT_KEYS])
    rows.append([InlineKeyboardButton("🔄 Refresh", callback_data="refresh")])
    return InlineKeyboardMarkup(rows)


def build_detail_keyboard(event: Event) -> InlineKeyboardMarkup:
    rows = []
    actions = []
    if event.coordinate is not None:
        actions.append(InlineKeyboardButton("🗺️ Show on Map", callback_data=f"map:{event.id}"))
    actions.append(InlineKeyboardButton("★ Unsave" if event.is_saved else "☆ Save", callback_data=f"save:{event.id}"))
    rows.append(actions)
    if event.url:
        rows.append([InlineKeyboardButton("🎟️ Get Tickets on Ticketmaster", url=event.url)])
    return InlineKeyboardMarkup(rows)
