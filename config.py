"""
Central configuration for the HY-TEK results reconciler.

Shared constants live here so the parser, matcher, scorer and store agree
on the same values.
"""

import logging
import os
from pathlib import Path
from typing import Optional

# --- Persistent database location ---
DB_DIR = Path(os.environ.get("HYTEK_RESULTS_HOME", Path.home() / ".hytek_results"))
DB_PATH = DB_DIR / "results.db"

# --- Scoring defaults (championship format) ---
DEFAULT_SCORING_PLACES = 24
DEFAULT_START_POINTS = 32
DEFAULT_RELAY_MULTIPLIER = 2.0
RELAY_SCORING_PLACES = 8

# --- Parser ---
CLASS_YEARS = ('FR', 'SO', 'JR', 'SR', 'GR')
EVENT_TYPES = ('individual', 'relay', 'diving')
RELAY_NUM_LEGS = 4
SPLIT_DISTANCE = 50          # split cadence in yards/meters
MIN_SWIM_TIME = 10           # "55.32" is a time, "9.50" is not
MAX_POINTS = 60              # largest plausible points value on a results line

# --- Logging ---
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def setup_logging(name: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Configure and return a logger with consistent formatting.

    Args:
        name: Logger name (None configures the root logger)
        level: Logging level (default: INFO)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        logger.addHandler(handler)

    logger.setLevel(level)
    return logger
