import json
from datetime import date

from smartybudget.aggregation import aggregate_month
from smartybudget.domain import Bucket, BudgetItem, CategoryRef, Ledger, Period
from smartybudget.events import IMPORT_FAILED, LEDGER_CHANGED, EventBus
from smartybudget.store import LedgerStore
from smartybudget.transforms import ledger_to_dict, load_seed


def make_ledger():
    return Ledger(
        period=Period(date(2025, 10, 1), date(2025, 10, 31)),
        display_currency="USD",
        expenses=(BudgetItem("e1", "Food", 400),),
    )


def make_store(saved=None, **kwargs):
    saved = [] if saved is None else saved
    ids = iter(f"id{n}" for n in range(100))
    return LedgerStore(
        make_ledger(),
        load_seed(),
        persist=saved.append,
        item_id_factory=lambda: next(ids),
        txn_id_factory=lambda: next(ids),
        **kwargs,
    )


def fields(amount=25.0, item_id="e1"):
    return {
        "date": date(2025, 10, 4),
        "description": "Market",
        "amount": amount,
        "category": CategoryRef(Bucket.EXPENSES, item_id),
    }


def test_each_mutation_persists_snapshot():
    saved = []
    store = make_store(saved)

    store.add_item(Bucket.BILLS, "Rent", 1200)
    store.add_transaction(fields())
    store.set_display_currency("EUR")

    assert len(saved) == 3
    assert saved[-1] is store.ledger
    assert store.revision == 3
    assert store.ledger.bills[0].id == "id0"
    assert store.ledger.transactions[0].id == "id1"


def test_persist_then_notify():
    order = []
    bus = EventBus()
    store = LedgerStore(make_ledger(), load_seed(), persist=lambda l: order.append("persist"), bus=bus)

    def on_change(event, payload):
        order.append(("notify", payload["command"], payload["revision"]))
        return {}

    bus.subscribe(LEDGER_CHANGED, on_change)
    store.remove_item(Bucket.EXPENSES, "e1")

    assert order == ["persist", ("notify", "remove_item", 1)]


def test_persist_failure_keeps_mutation(caplog):
    def broken(ledger):
        raise OSError("disk full")

    store = LedgerStore(make_ledger(), load_seed(), persist=broken)
    store.update_item(Bucket.EXPENSES, BudgetItem("e1", "Groceries", 450))

    assert store.ledger.expenses[0].name == "Groceries"
    assert "Could not save budget" in caplog.text


def test_reset_to_default_clears_and_installs_seed():
    cleared = []
    store = LedgerStore(make_ledger(), load_seed(), persist=lambda l: None, clear=lambda: cleared.append(True))
    store.reset_to_default()

    assert cleared == [True]
    assert store.ledger == load_seed()


def test_import_missing_bucket_is_all_or_nothing():
    store = make_store()
    store.add_transaction(fields())
    before = store.ledger
    revision = store.revision
    failures = []
    store.bus.subscribe(IMPORT_FAILED, lambda e, p: failures.append(p))

    doc = ledger_to_dict(load_seed())
    del doc["savings"]
    result = store.import_json(json.dumps(doc))

    assert result.is_left()
    assert result.get_error()["error"] == "missing_bucket"
    assert store.ledger is before
    assert store.revision == revision
    assert len(failures) == 1


def test_import_valid_document_replaces_everything():
    store = make_store()
    result = store.import_json(json.dumps(ledger_to_dict(load_seed())))

    assert result.is_right()
    assert store.ledger == load_seed()


def test_export_is_verbatim():
    store = make_store()
    store.add_transaction(fields())
    assert json.loads(store.export_json()) == ledger_to_dict(store.ledger)


def test_remove_item_with_transactions_then_aggregate():
    store = make_store()
    store.add_transaction(fields(amount=30))
    store.remove_item(Bucket.EXPENSES, "e1")

    view = aggregate_month(store.ledger, 2025, 10)
    assert len(view.transactions) == 1
    assert view.expenses == ()


def test_open_persists_to_path(tmp_path):
    path = tmp_path / "state.json"
    store = LedgerStore.open(path)
    assert store.ledger == load_seed()

    store.set_display_currency("GBP")
    reopened = LedgerStore.open(path)
    assert reopened.ledger.display_currency == "GBP"

    reopened.reset_to_default()
    assert LedgerStore.open(path).ledger.display_currency == "INR"


def test_stale_revision():
    store = make_store()
    revision = store.revision
    assert store.is_current(revision)

    store.add_item(Bucket.DEBT, "Loan")
    assert not store.is_current(revision)
    assert store.stale_error(revision).get_error()["error"] == "stale_response"


def test_unexpected_persist_error_is_logged_and_still_notifies(caplog):
    def broken(ledger):
        raise RuntimeError("serializer exploded")

    bus = EventBus()
    seen = []
    bus.subscribe(LEDGER_CHANGED, lambda e, p: seen.append(p["command"]))
    store = LedgerStore(make_ledger(), load_seed(), persist=broken, bus=bus)

    store.add_item(Bucket.BILLS, "Water", 40)

    assert [i.name for i in store.ledger.bills] == ["Water"]
    assert seen == ["add_item"]
    assert "Could not save budget after add_item" in caplog.text
