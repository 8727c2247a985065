import os

# Configuration using environment variables
telegram_token = os.getenv("TELEGRAM_BOT_TOKEN_EVENTS")

CONFIG = {
    "telegram_token": telegram_token.strip() if telegram_token else None,
    "ticketmaster_api_key": os.getenv("TICKETMASTER_API_KEY"),
    "ticketmaster_base_url": "https://app.ticketmaster.com/discovery/v2/events.json",
    "database_file": os.getenv("EVENTFINDER_DB", "eventfinder.db"),
    "page_size": 50,
    "request_timeout": int(os.getenv("TICKETMASTER_TIMEOUT", "15")),
    "list_page_size": 8,
    "log_file": os.getenv("EVENTFINDER_LOG_FILE", "bot.log"),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
}
