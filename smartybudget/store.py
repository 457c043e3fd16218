"""The single owner of the mutable ledger.

Every command computes a new snapshot, installs it, persists it and only
then notifies subscribers, so anything reacting to ``LEDGER_CHANGED`` sees
state that is already on disk (or whose save failure has been logged).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from smartybudget import transforms
from smartybudget.domain import Bucket, BudgetItem, Ledger
from smartybudget.events import IMPORT_FAILED, LEDGER_CHANGED, EventBus
from smartybudget.functional import Either, Left, Right
from smartybudget.logging_setup import get_logger
from smartybudget.storage import clear_state, load_state, save_state

logger = get_logger("smartybudget.store")


class LedgerStore:

    def __init__(
        self,
        ledger: Ledger,
        seed: Ledger,
        persist: Optional[Callable[[Ledger], None]] = None,
        clear: Optional[Callable[[], None]] = None,
        bus: Optional[EventBus] = None,
        item_id_factory: Callable[[], str] = transforms.new_item_id,
        txn_id_factory: Callable[[], str] = transforms.new_transaction_id,
    ):
        self._ledger = ledger
        self._seed = seed
        self._persist = persist
        self._clear = clear
        self._revision = 0
        self.bus = bus or EventBus()
        self.item_id_factory = item_id_factory
        self.txn_id_factory = txn_id_factory

    @classmethod
    def open(cls, path: Path, seed: Optional[Ledger] = None, bus: Optional[EventBus] = None) -> "LedgerStore":
        """Load the ledger stored at ``path`` and persist every change back to it."""
        seed = seed or transforms.load_seed()
        return cls(
            load_state(path, seed),
            seed,
            persist=lambda ledger: save_state(ledger, path),
            clear=lambda: clear_state(path),
            bus=bus,
        )

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    @property
    def revision(self) -> int:
        return self._revision

    def _commit(self, command: str, new: Ledger) -> Ledger:
        self._ledger = new
        self._revision += 1
        if self._persist is not None:
            try:
                self._persist(new)
            except Exception:
                logger.exception("Could not save budget after %s", command)
        self.bus.publish(LEDGER_CHANGED, {"command": command, "revision": self._revision})
        return new

    def update_item(self, bucket: Bucket, item: BudgetItem) -> Ledger:
        return self._commit("update_item", transforms.update_item(self._ledger, bucket, item))

    def add_item(self, bucket: Bucket, name: str, planned: float = 0) -> Ledger:
        return self._commit(
            "add_item",
            transforms.add_item(self._ledger, bucket, name, planned, id_factory=self.item_id_factory),
        )

    def remove_item(self, bucket: Bucket, item_id: str) -> Ledger:
        return self._commit("remove_item", transforms.remove_item(self._ledger, bucket, item_id))

    def set_display_currency(self, code: str) -> Ledger:
        return self._commit("set_display_currency", transforms.set_display_currency(self._ledger, code))

    def add_transaction(self, fields: Mapping[str, Any]) -> Ledger:
        return self._commit(
            "add_transaction",
            transforms.add_transaction(self._ledger, fields, id_factory=self.txn_id_factory),
        )

    def remove_transaction(self, txn_id: str) -> Ledger:
        return self._commit("remove_transaction", transforms.remove_transaction(self._ledger, txn_id))

    def replace_all(self, new: Ledger) -> Ledger:
        return self._commit("replace_all", transforms.replace_all(self._ledger, new))

    def reset_to_default(self) -> Ledger:
        if self._clear is not None:
            try:
                self._clear()
            except OSError:
                logger.exception("Could not remove stored budget")
        return self._commit("reset_to_default", transforms.reset_to_default(self._seed))

    def import_json(self, text: str | bytes) -> Either[dict, Ledger]:
        parsed = transforms.ledger_from_json(text)
        if parsed.is_left():
            err = parsed.get_error()
            logger.warning("Import rejected: %s", err["message"])
            self.bus.publish(IMPORT_FAILED, err)
            return parsed
        return Right(self.replace_all(parsed.get_or_else(self._ledger)))

    def export_json(self) -> str:
        return transforms.ledger_to_json(self._ledger)

    def is_current(self, revision: int) -> bool:
        return revision == self._revision

    def stale_error(self, revision: int) -> Left:
        return Left({
            "error": "stale_response",
            "message": "The budget changed while the request was running; please try again.",
            "revision": revision,
            "current": self._revision,
        })
