
import json
import logging
import math
import os
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from payledger.core.config import settings

TWO_PLACES = Decimal("0.01")


def mkdir_safe(path: str):
    Path(path).mkdir(parents=True, exist_ok=True)


def atomic_write_json(path: str, obj: Any):
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    tmp = p.with_suffix(".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, default=str)
    os.replace(str(tmp), str(p))


def setup_logging(realm: str = "system", *, log_level: str = None):
    """Attach file (and in DEV, console) handlers to the package logger. Safe to call repeatedly."""
    logger = logging.getLogger(settings.APP_NAME)
    if logger.handlers:
        return logger
    level = log_level or settings.LOG_LEVEL
    logger.setLevel(getattr(logging, level.upper()))
    mkdir_safe(settings.LOG_PATH)
    logfile = Path(settings.LOG_PATH) / f"{realm}.log"
    handler = RotatingFileHandler(str(logfile), maxBytes=10_000_000, backupCount=5)
    formatter = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if os.getenv("DEV", "").lower() in ("1", "true", "yes"):
        ch = logging.StreamHandler()
        ch.setFormatter(formatter)
        logger.addHandler(ch)
    logger.propagate = False
    return logger


def is_numeric(value: Any) -> bool:
    """True for ints, floats, Decimals and numeric strings. Booleans are not amounts."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float, Decimal)):
        return True
    if isinstance(value, str):
        try:
            Decimal(value.strip())
        except InvalidOperation:
            return False
        return bool(value.strip())
    return False


def is_finite(value: Any) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    if isinstance(value, str):
        return Decimal(value.strip()).is_finite()
    return math.isfinite(value)


def to_money(value: Any) -> Decimal:
    """Convert an int, float, numeric string or Decimal to Decimal without binary noise."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, str):
        return Decimal(value.strip())
    return Decimal(str(value))


def round2(value: Any) -> Decimal:
    return to_money(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
