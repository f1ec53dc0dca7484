import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DATA_PATH = Path(os.getenv("FINANCE_DATA_PATH", "data/ledger.json"))
SEED_PATH = Path(os.getenv("FINANCE_SEED_PATH", "data/seed.json"))
LOG_LEVEL = os.getenv("FINANCE_LOG_LEVEL", "INFO")
DEFAULT_CURRENCY = os.getenv("FINANCE_DEFAULT_CURRENCY", "EUR")

CURRENCIES = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "JPY": "¥",
    "CHF": "CHF",
}

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def currency_symbol(code: Optional[str]) -> str:
    if not code:
        return ""
    return CURRENCIES.get(code, code)
