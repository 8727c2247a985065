import logging

from telegram import Update
from telegram.error import BadRequest
from telegram.ext import ContextTypes

from config.categories import EVENT_TYPES
from handlers.commands import get_list_view, refresh_and_send, render_list
from models.event import EventAnnotation
from services.event_service import SORT_KEYS
from services.message_service import build_detail_keyboard, build_selection_keyboard, format_event_detail

logger = logging.getLogger(__name__)


async def handle_callback(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    query = update.callback_query
    user_id = query.from_user.id
    action, _, argument = query.data.partition(":")
    finder = registry.get(user_id)
    try:
        if action == "type":
            await toggle_event_type(query, context, finder, argument)
        elif action == "prefs" and argument == "done":
            await finish_selection(query, context, finder)
        elif action == "event":
            await show_event_detail(query, finder, argument)
        elif action == "map":
            await show_event_map(query, finder, argument)
        elif action == "save":
            await toggle_saved(query, finder, argument)
        elif action == "page":
            view = get_list_view(context)
            view["page"] = int(argument)
            await query.answer()
            await edit_event_list(query, finder, view)
        elif action == "sort" and argument in SORT_KEYS:
            view = get_list_view(context)
            view.update({"sort": argument, "page": 0})
            await query.answer(f"Sorted by {argument}")
            await edit_event_list(query, finder, view)
        elif action == "refresh":
            await query.answer("Fetching events...")
            await refresh_and_send(query.message, context, finder)
        else:
            await query.answer("Invalid action.")
    except Exception as e:
        logger.error(f"Callback error for user {user_id} ({query.data}): {e}")
        await query.message.reply_text("Error processing your request 😞")


async def toggle_event_type(query, context: ContextTypes.DEFAULT_TYPE, finder, type_id: str):
    if type_id not in {event_type.id for event_type in EVENT_TYPES}:
        await query.answer("Unknown event type.")
        return
    pending = context.user_data.setdefault("pending_types", set(finder.selected_event_types))
    if type_id in pending:
        pending.discard(type_id)
    else:
        pending.add(type_id)
    await query.answer()
    is_onboarding = bool(context.user_data.get("onboarding")) or not finder.has_onboarded
    await query.edit_message_reply_markup(reply_markup=build_selection_keyboard(pending, is_onboarding))


async def finish_selection(query, context: ContextTypes.DEFAULT_TYPE, finder):
    if not finder.location:
        await query.answer("Please enter a location", show_alert=True)
        return
    pending = context.user_data.pop("pending_types", set(finder.selected_event_types))
    # Keep the grid order so the stored selection is stable
    finder.selected_event_types = [event_type.id for event_type in EVENT_TYPES if event_type.id in pending]
    await query.answer()
    if context.user_data.pop("onboarding", None) or not finder.has_onboarded:
        await refresh_and_send(query.message, context, finder, fetch=finder.complete_onboarding)
    else:
        finder.save_user_preferences()
        await refresh_and_send(query.message, context, finder)


async def show_event_detail(query, finder, event_id: str):
    event = finder.find_event(event_id)
    if event is None:
        await query.answer("This event is no longer available.")
        return
    await query.answer()
    text = format_event_detail(event)
    keyboard = build_detail_keyboard(event)
    if event.image_url and len(text) <= 1024:
        try:
            await query.message.reply_photo(photo=event.image_url, caption=text, reply_markup=keyboard, parse_mode="Markdown")
            return
        except BadRequest as e:
            logger.warning(f"Could not send image for event {event.id}: {e}")
    await query.message.reply_text(text, reply_markup=keyboard, parse_mode="Markdown")


async def show_event_map(query, finder, event_id: str):
    event = finder.find_event(event_id)
    annotation = EventAnnotation.for_event(event) if event else None
    if annotation is None:
        await query.answer("No map location for this event.")
        return
    await query.answer()
    await query.message.reply_venue(
        latitude=annotation.latitude,
        longitude=annotation.longitude,
        title=annotation.title,
        address=annotation.subtitle,
    )


async def toggle_saved(query, finder, event_id: str):
    saved = finder.toggle_saved(event_id)
    if saved is None:
        await query.answer("Could not update this event.")
        return
    await query.answer("Saved ⭐" if saved else "Removed from saved events")
    event = finder.find_event(event_id)
    if event:
        await query.edit_message_reply_markup(reply_markup=build_detail_keyboard(event))


async def edit_event_list(query, finder, view: dict):
    text, keyboard = render_list(finder, view)
    try:
        await query.edit_message_text(text, reply_markup=keyboard, parse_mode="Markdown")
    except BadRequest as e:
        # Re-sorting by the current key leaves the message unchanged
        if "not modified" not in str(e).lower():
            raise
