# =============================================
# File: magicommerce/utils/logging.py
# Purpose: Loguru sink configuration (imported once by the app)
# =============================================
import os

from loguru import logger

LOG_FILE = os.getenv("LOG_FILE", "logs/magicommerce.log")
logger.add(LOG_FILE, rotation="10 MB", level=os.getenv("LOG_LEVEL", "INFO").upper())
