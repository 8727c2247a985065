from telegram import Update
from telegram.ext import Application, CallbackQueryHandler, CommandHandler, ContextTypes, MessageHandler, filters
from datetime import datetime
import logging

from config.settings import CONFIG
from services.logging_service import setup_logging
from models.user_preferences import PreferenceStore
from services.event_service import EventFinderRegistry
from handlers.commands import (
    edit_preferences,
    help_command,
    refresh_events,
    search,
    set_location,
    show_events,
    show_saved,
    sort,
    start,
)
from handlers.messages import handle_message
from handlers.callbacks import handle_callback

logger = logging.getLogger(__name__)


async def log_wake_up(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if update.message:
        user_id = update.effective_user.id
        logger.info(f"Bot woken up by user {user_id} at {datetime.now()}")
    return True


def build_application(config, registry) -> Application:
    application = Application.builder().token(config["telegram_token"]).build()

    application.add_handler(MessageHandler(filters.ALL, log_wake_up), group=-1)
    application.add_handler(CommandHandler("start", lambda update, context: start(update, context, registry)))
    application.add_handler(CommandHandler("setlocation", set_location))
    application.add_handler(CommandHandler("preferences", lambda update, context: edit_preferences(update, context, registry)))
    application.add_handler(CommandHandler("events", lambda update, context: show_events(update, context, registry)))
    application.add_handler(CommandHandler("refresh", lambda update, context: refresh_events(update, context, registry)))
    application.add_handler(CommandHandler("search", lambda update, context: search(update, context, registry)))
    application.add_handler(CommandHandler("sort", lambda update, context: sort(update, context, registry)))
    application.add_handler(CommandHandler("saved", lambda update, context: show_saved(update, context, registry)))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CallbackQueryHandler(lambda update, context: handle_callback(update, context, registry)))
    application.add_handler(MessageHandler(
        filters.TEXT & (~filters.COMMAND),
        lambda update, context: handle_message(update, context, registry)
    ))
    return application


def main():
    setup_logging(CONFIG)
    token = CONFIG["telegram_token"]
    if not token:
        raise ValueError("TELEGRAM_BOT_TOKEN_EVENTS environment variable is not set!")
    if not CONFIG["ticketmaster_api_key"]:
        logger.warning("TICKETMASTER_API_KEY is not set, event searches will fail")
    logger.info(f"Initializing bot with token: {token[:8]}...{token[-4:]}")

    store = PreferenceStore(CONFIG)
    registry = EventFinderRegistry(CONFIG, store)
    try:
        application = build_application(CONFIG, registry)
        logger.info("Bot started and ready to handle messages")
        application.run_polling(
            allowed_updates=Update.ALL_TYPES,
            drop_pending_updates=True
        )
    except Exception as e:
        logger.error(f"Failed to initialize bot: {str(e)}")
        raise
    finally:
        store.close()


if __name__ == "__main__":
    main()
