import os

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG = LOG_LEVEL == "DEBUG"

DRY_RUN = os.getenv("DRY_RUN", "false").lower() == "true"

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise ValueError("DATABASE_URL must be set in the environment")

ALLOWED_ORIGINS_RAW = os.getenv("ALLOWED_ORIGINS")
if not ALLOWED_ORIGINS_RAW:
    raise ValueError("ALLOWED_ORIGINS must be set in the environment")

ALLOWED_ORIGINS: list[str] = [
    origin.strip() for origin in ALLOWED_ORIGINS_RAW.split(",")
]

# Calendar feeds
FEED_TIMEOUT_SECONDS = float(os.getenv("FEED_TIMEOUT_SECONDS", "15"))
FEED_USER_AGENT = os.getenv("FEED_USER_AGENT", "Booking-Sync/1.0")

# Sync runs
SYNC_LEASE_SECONDS = int(os.getenv("SYNC_LEASE_SECONDS", "900"))
SCHEDULER_TICK_SECONDS = int(os.getenv("SCHEDULER_TICK_SECONDS", "60"))
SYNC_LOG_DEFAULT_LIMIT = int(os.getenv("SYNC_LOG_DEFAULT_LIMIT", "20"))
