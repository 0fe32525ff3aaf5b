# main.py
# Family Flight Tracker server entry point

from dotenv import load_dotenv
load_dotenv()

import logging

from config import HOST, PORT
from api import app

logger = logging.getLogger("flighttracker.main")

# ================= Run Server =================
if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting Family Flight Tracker on {HOST}:{PORT}")

    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        log_level="info",
        access_log=True,
    )
