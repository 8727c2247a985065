from telegram import Update
from telegram.ext import ContextTypes
from telegram.helpers import escape_markdown

from handlers.commands import get_list_view, refresh_and_send, send_event_list, send_selection_grid


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE, registry):
    user_id = update.effective_user.id
    text = update.message.text.strip()
    finder = registry.get(user_id)

    if context.user_data.get("awaiting_location"):
        if not text:
            await update.message.reply_text("Please enter a location")
            return
        finder.location = text
        context.user_data.pop("awaiting_location", None)
        await update.message.reply_text(f"📍 Location set to: {escape_markdown(text, version=1)}", parse_mode="Markdown")
        # A new user still has to pick categories before the first fetch
        if context.user_data.get("onboarding") or not finder.has_onboarded:
            context.user_data["onboarding"] = True
            context.user_data["pending_types"] = set(finder.selected_event_types)
            await send_selection_grid(update.message, context, finder, is_onboarding=True)
        else:
            finder.save_user_preferences()
            await refresh_and_send(update.message, context, finder)

    elif context.user_data.get("awaiting_search"):
        context.user_data.pop("awaiting_search", None)
        view = get_list_view(context)
        view.update({"query": text, "page": 0})
        await send_event_list(update.message, context, finder)

    else:
        await update.message.reply_text("Use /events to see events near you or /preferences to change what you see.")
