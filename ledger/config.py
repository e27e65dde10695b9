"""Settings for the finance tracker client.

Values come from the environment (optionally a local ``.env`` file) and are
read once at import time.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()

BACKEND_URL = os.getenv("FINANCE_BACKEND_URL", "http://localhost:8080").rstrip("/")
API_PREFIX = "/api/user"
REQUEST_TIMEOUT = float(os.getenv("FINANCE_REQUEST_TIMEOUT", "10"))

CURRENCY = os.getenv("FINANCE_CURRENCY", "₹")

TRANSACTIONS_PAGE_SIZE = int(os.getenv("FINANCE_PAGE_SIZE", "7"))
DASHBOARD_PAGE_SIZE = 200
TOP_CATEGORIES = 6

LOG_LEVEL = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
