import logging
import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.environ.get("MILK_LEDGER_DATA_DIR") or BASE_DIR / DATA_DIR)
DB_PATH = Path(os.environ.get("MILK_LEDGER_DB") or DATA_PATH / DB_FILE_NAME)

LOG_LEVEL = getattr(
    logging,
    os.environ.get("MILK_LEDGER_LOG_LEVEL", "INFO").upper(),
    logging.INFO,
)
