"""Configuration management for the budget dashboard.

This module centralizes runtime configuration values including paths,
the settings refresh debounce window and the log level, each with an
environment variable override.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

# Base project root - assumes this file is in budget_dashboard/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("BUDGET_DASHBOARD_DATA_DIR", _PROJECT_ROOT / "data"))

# Budget/settings export read by the dashboard and the CLI script
SNAPSHOT_PATH = Path(
    os.getenv("BUDGET_DASHBOARD_SNAPSHOT", DATA_DIR / "budgets.json")
).resolve()

# Quiet period for coalescing manual setting refreshes
DEFAULT_DEBOUNCE_SECONDS = 0.3

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_debounce_seconds() -> float:
    """Return the refresh debounce window, honouring the env override.

    Invalid or negative override values fall back to the default.
    """
    raw = os.getenv("BUDGET_DASHBOARD_DEBOUNCE_SECONDS")
    if raw is None:
        return DEFAULT_DEBOUNCE_SECONDS
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_DEBOUNCE_SECONDS
    return value if value >= 0 else DEFAULT_DEBOUNCE_SECONDS


def get_log_level() -> int:
    """Resolve ``BUDGET_DASHBOARD_LOG_LEVEL`` to a logging level (default INFO)."""
    name = os.getenv("BUDGET_DASHBOARD_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[int] = None) -> None:
    """Configure root logging for the script and Streamlit entry points."""
    logging.basicConfig(
        level=level if level is not None else get_log_level(),
        format=LOG_FORMAT,
    )


def get_snapshot_path() -> str:
    """Get the snapshot path as a string."""
    return str(SNAPSHOT_PATH)
