import asyncio
import logging

from telegram import Update
from telegram.ext import ContextTypes
from telegram.helpers import escape_markdown

from services.event_service import SORT_KEYS, search_events, sort_events
from services.message_service import (
    HELP_TEXT,
    build_list_keyboard,
    build_selection_keyboard,
    format_event_list,
    format_selection_message,
    format_welcome_message,
)

logger = logging.getLogger(__name__)


def get_list_view(context: ContextTypes.DEFAULT_TYPE) -> dict:
    return context.user_data.setdefault("list_view", {"mode": "all", "query": "", "sort": "date", "page": 0})


def current_events(finder, view: dict):
    events = finder.saved_events() if view["mode"] == "saved" else finder.events
    return sort_events(search_events(events, view["query"]), view["sort"])


def render_list(finder, view: dict):
    events = current_events(finder, view)
    if view["mode"] == "saved":
        title = "Saved events"
    else:
        title = f"Events near {finder.location}"
    if view["query"]:
        title += f' matching "{view["query"]}"'
    page_size = finder.config["list_page_size"]
    text = format_event_list(events, title, view["page"], page_size)
    if finder.error:
        text += f"\n\n⚠️ {escape_markdown(finder.error, version=1)}"
    return text, build_list_keyboard(events, view["page"], page_size)


async def send_event_list(message, context: ContextTypes.DEFAULT_TYPE, finder):
    text, keyboard = render_list(finder, get_list_view(context))
    await message.reply_text(text, reply_markup=keyboard, parse_mode="Markdown")


async def refresh_and_send(message, context: ContextTypes.DEFAULT_TYPE, finder, fetch=None):
    """Fetch in a worker thread, then post the first page of the list."""
    await message.reply_text("⏳ Fetching events...")
    await asyncio.to_thread(fetch or finder.fetch_events)
    view = get_list_view(context)
    view.update({"mode": "all", "page": 0})
    await send_event_list(message, context, finder)


async def send_selection_grid(message, context: ContextTypes.DEFAULT_TYPE, finder, is_onboarding: bool):
    pending = context.user_data.setdefault("pending_types", set(finder.selected_event_types))
    await message.reply_text(
        format_selection_message(finder.location, is_onboarding),
        reply_markup=build_selection_keyboard(pending, is_onboarding),
        parse_mode="Markdown",
    )


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    user_id = update.effective_user.id
    finder = registry.get(user_id)
    await update.message.reply_text(format_welcome_message(finder.has_onboarded))
    if not finder.has_onboarded:
        context.user_data["onboarding"] = True
        context.user_data["awaiting_location"] = True
        return
    if finder.events:
        await send_event_list(update.message, context, finder)
    else:
        await refresh_and_send(update.message, context, finder)


async def set_location(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text("Enter your location (only city names please):")
    context.user_data["awaiting_location"] = True


async def edit_preferences(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    context.user_data["pending_types"] = set(finder.selected_event_types)
    is_onboarding = bool(context.user_data.get("onboarding")) or not finder.has_onboarded
    await send_selection_grid(update.message, context, finder, is_onboarding)


async def show_events(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    view = get_list_view(context)
    view.update({"mode": "all", "query": "", "page": 0})
    if not finder.events and finder.location:
        await refresh_and_send(update.message, context, finder)
        return
    if not finder.location:
        await update.message.reply_text("Please enter a location first with /setlocation")
        return
    await send_event_list(update.message, context, finder)


async def refresh_events(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    if not finder.location:
        await update.message.reply_text("Please enter a location first with /setlocation")
        return
    await refresh_and_send(update.message, context, finder)


async def search(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    query = " ".join(context.args or []).strip()
    if not query:
        await update.message.reply_text("What are you looking for? Send an event, venue or city name:")
        context.user_data["awaiting_search"] = True
        return
    view = get_list_view(context)
    view.update({"query": query, "page": 0})
    await send_event_list(update.message, context, finder)


async def sort(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    key = (context.args[0].lower() if context.args else "date")
    if key not in SORT_KEYS:
        await update.message.reply_text(f"Unknown sort order '{key}'. Use one of: {', '.join(SORT_KEYS)}")
        return
    view = get_list_view(context)
    view.update({"sort": key, "page": 0})
    await send_event_list(update.message, context, finder)


async def show_saved(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    finder = registry.get(update.effective_user.id)
    view = get_list_view(context)
    view.update({"mode": "saved", "query": "", "page": 0})
    await send_event_list(update.message, context, finder)


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(HELP_TEXT)
