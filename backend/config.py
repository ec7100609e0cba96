"""
Backend configuration
"""

import os
from pathlib import Path

# Base paths
ROOT_DIR = Path(__file__).parent.parent
EXPORT_DIR = Path(os.getenv("EXPORT_DIR", str(ROOT_DIR / "exports")))

# API settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))

# CORS origins (frontend URL)
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
).split(",")

# Viewport the drawing surface is fitted into
SURFACE_MAX_WIDTH = int(os.getenv("SURFACE_MAX_WIDTH", "1024"))
SURFACE_MAX_HEIGHT = int(os.getenv("SURFACE_MAX_HEIGHT", "768"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
