import json
import logging
from datetime import datetime

import pytest

from withdrawal_planner import storage
from withdrawal_planner.models import AssetClass, FilingStatus, Holding, Holdings


@pytest.fixture
def store(tmp_path):
    return storage.JsonFileStore(tmp_path / "state" / "storage.json")


def _edited_state():
    state = storage.default_state()
    state.holdings = Holdings(
        stocks=state.holdings.stocks,
        crypto=(Holding("BTC", 0.5, 30000, 60000),),
        metals=(Holding("Gold", 4, 1800, 2300),),
    )
    book = state.book
    book.set_withdrawal(1, "traditional_ira", 20000)
    book.set_sale(1, AssetClass.STOCK, "Stock 1", 40)
    second = book.add("Roth heavy")
    book.set_withdrawal(second.id, "roth_ira", 15000)
    book.set_sale(second.id, AssetClass.METAL, "Gold", 2)
    state.api_key = "SECRETKEY"
    return state


def test_save_and_load_round_trip(store):
    state = _edited_state()
    assert storage.save_state(store, state)
    loaded = storage.load_state(store)
    assert loaded.personal_info == state.personal_info
    assert loaded.balances == state.balances
    assert loaded.holdings == state.holdings
    assert loaded.book.scenarios == state.book.scenarios
    assert loaded.book.active_id == state.book.active_id
    assert loaded.book.counter == state.book.counter
    assert loaded.api_key == "SECRETKEY"


def test_record_uses_camel_case_keys():
    record = storage.state_to_record(_edited_state())
    assert record["accountBalances"]["traditionalIRA"] == 300000
    assert record["stockHoldings"][0] == {"name": "Stock 1", "shares": 100, "costBasis": 50, "currentPrice": 75}
    assert record["cryptoHoldings"][0]["units"] == 0.5
    assert record["scenarios"][0]["stockWithdrawals"] == [{"stockName": "Stock 1", "sharesToSell": 40}]
    assert record["scenarios"][1]["metalSales"] == [{"metalName": "Gold", "unitsToSell": 2}]
    assert record["scenarioIdCounter"] == 2
    assert "timestamp" in record


def test_load_from_empty_store_is_none(store):
    assert storage.load_state(store) is None


def test_unreadable_saved_data_is_ignored(store, caplog):
    store.set(storage.STORAGE_KEY, "{broken")
    with caplog.at_level(logging.WARNING, logger="withdrawal_planner.storage"):
        assert storage.load_state(store) is None
    assert "unreadable" in caplog.text


def test_save_failure_returns_false(tmp_path, caplog):
    blocked = storage.JsonFileStore(tmp_path)  # a directory cannot be opened as a file
    with caplog.at_level(logging.ERROR, logger="withdrawal_planner.storage"):
        assert storage.save_state(blocked, storage.default_state()) is False
    assert "failed" in caplog.text


def test_clear_state(store):
    storage.save_state(store, storage.default_state())
    storage.clear_state(store)
    assert storage.load_state(store) is None
    storage.clear_state(store)


def test_export_leaves_api_key_out_by_default():
    state = _edited_state()
    assert json.loads(storage.export_state(state))["apiKey"] == ""
    assert json.loads(storage.export_state(state, include_api_key=True))["apiKey"] == "SECRETKEY"


def test_import_round_trip():
    state = _edited_state()
    imported = storage.import_state(storage.export_state(state))
    assert imported.book.scenarios == state.book.scenarios
    assert imported.api_key == ""


def test_legacy_single_plan_becomes_scenario_one():
    legacy = {
        "personalInfo": {"age": 67, "filingStatus": "married", "workMonths": 0,
                         "monthlyPension": 2500, "pensionStartMonth": 1},
        "accounts": {"savings": 1000, "traditionalIRA": 200000},
        "stocks": [{"name": "VTI", "shares": 10, "costBasis": 150, "currentPrice": 250}],
        "withdrawals": {"traditionalIRA": 12000, "rothIRA": 3000},
        "stockWithdrawals": [{"stockName": "VTI", "sharesToSell": 4}],
        "cryptoSales": [],
    }
    state = storage.record_to_state(legacy)
    assert state.personal_info.filing_status is FilingStatus.JOINT
    assert state.balances.traditional_ira == 200000
    assert state.holdings.stocks[0].quantity == 10
    assert len(state.book) == 1
    scenario = state.book.active
    assert scenario.id == 1
    assert scenario.withdrawal("traditional_ira") == 12000
    assert scenario.withdrawal("roth_ira") == 3000
    assert state.book.sale_quantity(1, AssetClass.STOCK, "VTI") == 4


def test_old_key_names_are_read():
    record = {
        "scenarios": [{"id": 2, "name": "Kept", "withdrawals": {}}],
        "activeScenarioId": 2,
        "scenarioCounter": 6,
        "metals": [{"name": "Silver", "units": 100, "costBasis": 20, "currentPrice": 30}],
    }
    state = storage.record_to_state(record)
    assert state.book.counter == 6
    assert state.book.active.name == "Kept"
    assert state.holdings.metals[0].name == "Silver"


def test_missing_sections_fall_back_to_defaults():
    state = storage.record_to_state({})
    defaults = storage.default_state()
    assert state.personal_info == defaults.personal_info
    assert state.balances == defaults.balances
    assert state.holdings.stocks == defaults.holdings.stocks
    assert len(state.book) == 1


@pytest.mark.parametrize("text", ["{not json", "[1, 2, 3]", '{"scenarios": [{"name": "no id"}]}',
                                  '{"scenarios": [{"id": "abc"}]}'])
def test_malformed_import_raises(text):
    with pytest.raises(storage.StorageError):
        storage.import_state(text)


@pytest.mark.parametrize("text", [
    '{"scenarios": [5]}',
    '{"scenarios": "abc"}',
    '{"accountBalances": [1]}',
    '{"personalInfo": "abc"}',
    '{"stockHoldings": {"name": "VTI"}}',
    '{"cryptoHoldings": [1, 2]}',
    '{"scenarios": [{"id": 1, "withdrawals": [1]}]}',
    '{"scenarios": [{"id": 1, "stockWithdrawals": ["VTI"]}]}',
    '{"withdrawals": [1]}',
])
def test_wrongly_shaped_sections_raise(text):
    """Each section must be an object or a list of objects."""
    with pytest.raises(storage.StorageError):
        storage.import_state(text)


def test_empty_sections_are_accepted():
    state = storage.import_state('{"personalInfo": {}, "accountBalances": {}, "stockHoldings": []}')
    assert state.personal_info.work_months == 0
    assert state.balances.traditional_ira == 0
    assert state.holdings.stocks == ()


@pytest.mark.parametrize("contents", ["{corrupt", "[]", '"just a string"'])
def test_corrupt_store_file_reads_as_empty(store, contents, caplog):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(contents, encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="withdrawal_planner.storage"):
        assert storage.load_state(store) is None
    assert "treating it as empty" in caplog.text


@pytest.mark.parametrize("contents", ["{corrupt", "[]"])
def test_corrupt_store_file_recovers(store, contents):
    store.path.parent.mkdir(parents=True)
    store.path.write_text(contents, encoding="utf-8")

    storage.clear_state(store)
    assert not store.path.exists()

    store.path.write_text(contents, encoding="utf-8")
    assert storage.save_state(store, storage.default_state()) is True
    assert storage.load_state(store) is not None


def test_clear_keeps_other_keys(store):
    store.set("other", "value")
    storage.save_state(store, storage.default_state())
    storage.clear_state(store)
    assert store.get("other") == "value"
    assert store.get(storage.STORAGE_KEY) is None


def test_export_filename():
    assert storage.export_filename(datetime(2026, 3, 9)) == "retirement-plan-2026-03-09.json"
