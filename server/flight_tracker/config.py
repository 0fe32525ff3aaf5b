from __future__ import annotations

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

# Base URLs
AERODATABOX_BASE_URL = os.getenv("AERODATABOX_BASE_URL", "https://aerodatabox.p.rapidapi.com")
AERODATABOX_HOST = "aerodatabox.p.rapidapi.com"
OPENSKY_BASE_URL = os.getenv("OPENSKY_BASE_URL", "https://opensky-network.org/api")
OPEN_METEO_BASE_URL = os.getenv("OPEN_METEO_BASE_URL", "https://api.open-meteo.com")

# API keys
AERODATABOX_KEY: str | None = os.getenv("AERODATABOX_KEY")

# Polling knobs
POSITION_POLL_SECONDS: float = float(os.getenv("POSITION_POLL_SECONDS", "15"))
USE_OPENSKY: bool = os.getenv("USE_OPENSKY", "1").strip().lower() not in ("0", "false", "no", "off")

# Fixed tracking constants
LIVE_WINDOW = timedelta(hours=2)
BBOX_SPAN_DEG = 8.0

# Neutral placeholder for unknown values
PLACEHOLDER = "–"
