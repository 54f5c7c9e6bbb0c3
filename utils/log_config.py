
from utils.logger import logger_manager, log_function

import os

# Telegram notifications for trade outcomes and iteration errors
ENABLE_TELEGRAM = os.getenv("LOG_TELEGRAM_EVENTS", "false").lower() == "true"

log_function = log_function
