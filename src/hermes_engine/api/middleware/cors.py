"""CORS configuration."""

import os

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def allowed_origins():
    """Origins from HERMES_CORS_ORIGINS (comma separated), else the local dev defaults."""
    raw = os.getenv("HERMES_CORS_ORIGINS", "")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or DEFAULT_ORIGINS
