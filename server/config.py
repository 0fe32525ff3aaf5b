# config.py
import logging
import os

from dotenv import load_dotenv

load_dotenv()

from logging_utils import configure_logging

configure_logging()
logger = logging.getLogger("flighttracker.config")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8001"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv(
        "CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if o.strip()
]

logger.info(f"Config: host={HOST}, port={PORT}, cors_origins={len(CORS_ORIGINS)}")
