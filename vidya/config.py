"""
Vidya Configuration
Storage backend, OTP and reward settings
"""

import os

# Storage ("memory" or "mongo")
STORE_BACKEND = os.getenv("STORE_BACKEND", "memory").lower()
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "vidya_db")
SEED_CATALOG = os.getenv("SEED_CATALOG", "true").lower() in ("1", "true", "yes")

# HTTP
API_PREFIX = os.getenv("API_PREFIX", "/api")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
PORT = int(os.getenv("PORT", "8000"))

# OTP settings
OTP_TTL_MINUTES = int(os.getenv("OTP_TTL_MINUTES", "5"))
OTP_SWEEP_INTERVAL_SECONDS = int(os.getenv("OTP_SWEEP_INTERVAL_SECONDS", "0"))

# Rewards
POINTS_PER_LEVEL = int(os.getenv("POINTS_PER_LEVEL", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
