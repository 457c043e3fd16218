import json

from smartybudget.storage import clear_state, load_state, save_state
from smartybudget.transforms import ledger_to_dict, load_seed, set_display_currency


def test_load_missing_file_returns_seed(tmp_path):
    seed = load_seed()
    assert load_state(tmp_path / "absent.json", seed) is seed


def test_save_and_load(tmp_path):
    path = tmp_path / "nested" / "state.json"
    ledger = set_display_currency(load_seed(), "JPY")
    save_state(ledger, path)

    assert json.loads(path.read_text(encoding="utf-8")) == ledger_to_dict(ledger)
    assert load_state(path, load_seed()) == ledger


def test_unparsable_file_falls_back(tmp_path, caplog):
    path = tmp_path / "state.json"
    path.write_text("{oops", encoding="utf-8")
    seed = load_seed()

    assert load_state(path, seed) is seed
    assert "Could not read stored budget" in caplog.text


def test_structurally_invalid_file_falls_back(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({"income": []}), encoding="utf-8")
    seed = load_seed()
    assert load_state(path, seed) is seed


def test_clear_state(tmp_path):
    path = tmp_path / "state.json"
    save_state(load_seed(), path)
    clear_state(path)
    assert not path.exists()
    clear_state(path)
