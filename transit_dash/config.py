"""
Configuration

Environment-driven settings for the dashboard engine.
Values are read once at import; a local .env file is loaded first.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# Upstream ticketing API
TICKETING_API_BASE_URL = os.getenv("TICKETING_API_BASE_URL", "http://localhost:8000/api")
TICKETING_API_TOKEN = os.getenv("TICKETING_API_TOKEN")
TICKETING_API_TIMEOUT = float(os.getenv("TICKETING_API_TIMEOUT", "30"))

# Cache
CACHE_TTL_SECONDS = int(os.getenv("CACHE_TTL_SECONDS", "300"))  # 5 minutes

# Metrics
DISTRIBUTION_TOP_N = int(os.getenv("DISTRIBUTION_TOP_N", "5"))
DEFAULT_RANGE_DAYS = int(os.getenv("DEFAULT_RANGE_DAYS", "30"))

# Scheduler
SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"
CACHE_PRUNE_INTERVAL_MINUTES = int(os.getenv("CACHE_PRUNE_INTERVAL_MINUTES", "5"))
CACHE_WARM_ENABLED = os.getenv("CACHE_WARM_ENABLED", "false").lower() == "true"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
