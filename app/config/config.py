import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

APP_TITLE = "support_desk"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 32 bytes, hex encoded (AES-256). Development fallback only.
CHAT_ENCRYPTION_KEY = os.getenv(
    "CHAT_ENCRYPTION_KEY",
    "67566B59703373367639792442264529482B4D6251655468576D5A7134743777",
)
DECRYPT_FAILED_PLACEHOLDER = "[Could not decrypt message]"
DECRYPT_MISSING_PLACEHOLDER = "[Encrypted message unavailable]"

# memory | redis
WAITING_QUEUE_BACKEND = os.getenv("WAITING_QUEUE_BACKEND", "memory")
WAITING_QUEUE_KEY = os.getenv("WAITING_QUEUE_KEY", "support:waiting-queue")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))

ORDER_SERVICE_URL = os.getenv("ORDER_SERVICE_URL", "http://order_service:8000")
ORDER_LOOKUP_TIMEOUT = float(os.getenv("ORDER_LOOKUP_TIMEOUT", "5.0"))

PERFORMANCE_PERIODS = ("today", "week", "month", "all")

UNAVAILABLE_MESSAGE = "Service is temporarily unavailable. Try again later!"
