import logging
import logging.handlers

def setup_logging(config):
    logging.basicConfig(
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        level=getattr(logging, str(config["log_level"]).upper(), logging.INFO),
        handlers=[
            logging.StreamHandler(),
            logging.handlers.RotatingFileHandler(
                config["log_file"],
                maxBytes=1024 * 1024,
                backupCount=1
            )
        ]
    )
    # Keeps the API key in request URLs out of the log
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
