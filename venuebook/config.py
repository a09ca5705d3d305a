import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./venuebook.db")

# All date keys are projected into this zone (venues operate in Bangkok, UTC+7)
LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", "Asia/Bangkok")

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Redis cache for calendar views
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
CALENDAR_CACHE_TTL = int(os.getenv("CALENDAR_CACHE_TTL", "300"))  # seconds

# Flip artist availability to BOOKED when an assignment is created
SYNC_AVAILABILITY_ON_ASSIGNMENT = (
    os.getenv("SYNC_AVAILABILITY_ON_ASSIGNMENT", "true").lower() == "true"
)

# Upper bound for bulk/template application requests
MAX_BULK_DATES = int(os.getenv("MAX_BULK_DATES", "31"))

# Booking window used by the availability check when the artist has no
# default template carrying its own minimum notice
MIN_ADVANCE_HOURS = int(os.getenv("MIN_ADVANCE_HOURS", "24"))
MAX_ADVANCE_DAYS = int(os.getenv("MAX_ADVANCE_DAYS", "365"))

# Cap on alternative slots suggested by a failed availability check
MAX_ALTERNATIVE_SLOTS = int(os.getenv("MAX_ALTERNATIVE_SLOTS", "10"))
