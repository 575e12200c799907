"""Configuration management."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
# Try to load from standard locations
env_paths = [
    Path(".env"),  # Current directory
    Path(__file__).parent.parent.parent / ".env",  # Project root
]
for env_path in env_paths:
    if env_path.exists():
        load_dotenv(env_path)
        break
else:
    # Fallback: try default load_dotenv() behavior
    load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Address cache (in-memory only, lost on restart)
ADDRESS_CACHE_MAX_SIZE = int(os.getenv("ADDRESS_CACHE_MAX_SIZE", "50"))
ADDRESS_CACHE_EXPIRATION_MS = int(os.getenv("ADDRESS_CACHE_EXPIRATION_MS", "300000"))  # 5 minutes
CACHE_CLEANUP_INTERVAL_MS = int(os.getenv("CACHE_CLEANUP_INTERVAL_MS", "60000"))

# Position admission thresholds
# MINIMUM_DISTANCE_CHANGE: meters the user must move for a sample to count
# TRACKING_INTERVAL: milliseconds after which a sample is accepted even without movement
# IMMEDIATE_UPDATE_THRESHOLD: accepted samples arriving sooner than this are "immediate"
MINIMUM_DISTANCE_CHANGE = float(os.getenv("MINIMUM_DISTANCE_CHANGE", "20"))
TRACKING_INTERVAL = int(os.getenv("TRACKING_INTERVAL", "50000"))
IMMEDIATE_UPDATE_THRESHOLD = int(os.getenv("IMMEDIATE_UPDATE_THRESHOLD", "50000"))

# Accuracy qualities that are never accepted (comma separated)
# Mobile devices reject medium and worse; desktops usually use "bad,very_bad"
NOT_ACCEPTED_ACCURACY = [
    item.strip()
    for item in os.getenv("NOT_ACCEPTED_ACCURACY", "medium,bad,very_bad").split(",")
    if item.strip()
]

# Nominatim reverse geocoding API
NOMINATIM_API_URL = os.getenv("NOMINATIM_API_URL", "https://nominatim.openstreetmap.org/reverse")
NOMINATIM_RATE_LIMIT_SECONDS = 1  # Nominatim requires max 1 request per second
NOMINATIM_TIMEOUT = 5  # seconds
NOMINATIM_LANGUAGE = os.getenv("NOMINATIM_LANGUAGE", "pt-BR")

# Project information
PROJECT_NAME = "Onde Estou Tracker"
USER_AGENT = "OndeEstou-Tracker/0.1"
