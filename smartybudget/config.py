"""Configuration for the budgeting dashboard.

Paths, the AI model and timeouts, each overridable from the environment.
"""

from __future__ import annotations

import os
from pathlib import Path

_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

DATA_DIR = Path(os.getenv("SMARTYBUDGET_DATA_DIR", _PROJECT_ROOT / "data"))

STORAGE_KEY = "smartyBudgetData"
STATE_PATH = Path(
    os.getenv("SMARTYBUDGET_STATE_FILE", DATA_DIR / f"{STORAGE_KEY}.json")
)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
AI_MODEL = os.getenv("SMARTYBUDGET_MODEL", "gemini-2.5-flash")
AI_TIMEOUT = float(os.getenv("SMARTYBUDGET_AI_TIMEOUT", "8.0"))

LOG_LEVEL = os.getenv("SMARTYBUDGET_LOG_LEVEL", "INFO")


def ensure_data_directory() -> None:
    """Create the data directory if it doesn't exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
