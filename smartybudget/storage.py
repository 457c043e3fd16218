"""Durable local storage for the ledger snapshot."""

from __future__ import annotations

import json
from pathlib import Path

from smartybudget.domain import Ledger
from smartybudget.logging_setup import get_logger
from smartybudget.transforms import ledger_from_dict, ledger_to_dict

logger = get_logger("smartybudget.storage")


def load_state(path: Path, seed: Ledger) -> Ledger:
    """Read the persisted ledger, falling back to ``seed``.

    A missing, unreadable or structurally invalid document counts as absent.
    """
    if not path.exists():
        return seed
    try:
        with path.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError, UnicodeDecodeError):
        logger.warning("Could not read stored budget at %s, using the default budget", path, exc_info=True)
        return seed

    parsed = ledger_from_dict(data)
    if parsed.is_left():
        logger.warning("Stored budget at %s is invalid (%s), using the default budget", path, parsed.get_error()["message"])
        return seed
    return parsed.get_or_else(seed)


def save_state(ledger: Ledger, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + '.tmp')
    with tmp.open('w', encoding='utf-8') as handle:
        json.dump(ledger_to_dict(ledger), handle, indent=2, ensure_ascii=False)
    tmp.replace(path)


def clear_state(path: Path) -> None:
    path.unlink(missing_ok=True)
