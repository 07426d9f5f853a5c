"""Saving, loading, exporting and importing planner state.

The whole planner is persisted as one JSON record under a single key of a
small key-value store.  Exports write the same record as a standalone
document, and imports read it back through the same migration path, so an
export from any version can be loaded by this one.

Record layout::

    {
      "personalInfo": {...}, "accountBalances": {...},
      "stockHoldings": [...], "cryptoHoldings": [...], "metalHoldings": [...],
      "scenarios": [...], "activeScenarioId": 1, "scenarioIdCounter": 1,
      "apiKey": "", "timestamp": "2026-01-01T00:00:00+00:00"
    }

Records written before scenarios existed carry a single plan as top-level
``withdrawals``/``stockWithdrawals``/``cryptoSales``/``metalSales`` fields;
those become scenario 1.  Earlier key names (``accounts``, ``stocks``,
``crypto``, ``metals``, ``scenarioCounter``) are still read.

The Alpha Vantage key is only written when the caller passes
``include_api_key=True``; exports leave it out by default.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Mapping, Optional

from .holdings import holdings_from_records
from .models import (
    AccountBalances,
    AssetClass,
    Holding,
    Holdings,
    PersonalInfo,
    SaleEntry,
    Scenario,
    to_amount,
)
from .scenarios import ScenarioBook

logger = logging.getLogger(__name__)

STORAGE_KEY = "retirement-planner-data"
DEFAULT_STATE_PATH = Path(
    os.environ.get("PLANNER_STATE_PATH", Path.home() / ".withdrawal_planner" / "storage.json")
)

# python field name -> record key
_PERSONAL_KEYS = {
    "age": "age",
    "filing_status": "filingStatus",
    "work_months": "workMonths",
    "monthly_work_income": "monthlyWorkIncome",
    "monthly_pension": "monthlyPension",
    "pension_start_month": "pensionStartMonth",
    "interest_income": "interestIncome",
    "qualified_dividends": "qualifiedDividends",
    "ordinary_dividends": "ordinaryDividends",
}

_ACCOUNT_RECORD_KEYS = {
    "savings": "savings",
    "traditional_ira": "traditionalIRA",
    "roth_ira": "rothIRA",
    "traditional_401k": "traditional401k",
    "roth_401k": "roth401k",
}

# asset class -> (scenario list key, entry name key, entry quantity key, holding quantity key)
_SALE_RECORD_KEYS = {
    AssetClass.STOCK: ("stockWithdrawals", "stockName", "sharesToSell", "shares"),
    AssetClass.CRYPTO: ("cryptoSales", "cryptoName", "unitsToSell", "units"),
    AssetClass.METAL: ("metalSales", "metalName", "unitsToSell", "units"),
}


class StorageError(Exception):
    """A stored or imported document could not be read."""


@dataclass
class PlannerState:
    """The caller-owned store: everything the UI edits between evaluations."""

    personal_info: PersonalInfo = field(default_factory=PersonalInfo)
    balances: AccountBalances = field(default_factory=AccountBalances)
    holdings: Holdings = field(default_factory=Holdings)
    book: ScenarioBook = field(default_factory=ScenarioBook)
    api_key: str = ""


def default_state() -> PlannerState:
    """The sample profile a fresh install (or a reset) starts from."""
    return PlannerState(
        personal_info=PersonalInfo(
            age=65,
            work_months=3,
            monthly_work_income=5000,
            monthly_pension=3000,
            pension_start_month=4,
        ),
        balances=AccountBalances(
            savings=50000,
            traditional_ira=300000,
            roth_ira=100000,
            traditional_401k=400000,
            roth_401k=50000,
        ),
        holdings=Holdings(stocks=(
            Holding("Stock 1", quantity=100, cost_basis=50, current_price=75),
            Holding("Stock 2", quantity=50, cost_basis=100, current_price=120),
        )),
        book=ScenarioBook(),
    )


# ---------- record -> state ----------
def _section(value, what: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise StorageError(f"{what} must be a JSON object, got {type(value).__name__}")
    return value


def _section_list(value, what: str) -> list:
    """A list of JSON objects; ``None`` reads as empty."""
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, Mapping) for v in value):
        raise StorageError(f"{what} must be a list of JSON objects")
    return value


def _personal_from_record(data: Mapping) -> PersonalInfo:
    data = _section(data, "personalInfo")
    return PersonalInfo.from_dict({py: data.get(rec) for py, rec in _PERSONAL_KEYS.items() if rec in data})


def _accounts_from_record(data: Mapping, what: str = "accountBalances") -> Dict[str, float]:
    data = _section(data, what)
    return {py: to_amount(data.get(rec)) for py, rec in _ACCOUNT_RECORD_KEYS.items()}


def _sales_from_record(entries, asset_class: AssetClass) -> tuple:
    list_key, name_key, qty_key, _ = _SALE_RECORD_KEYS[asset_class]
    sales: Dict[str, SaleEntry] = {}
    for e in _section_list(entries, list_key):
        name = str(e.get(name_key, e.get("name", "")))
        # a later duplicate overwrites the earlier one, keeping one entry per asset
        sales[name] = SaleEntry(name=name, quantity=to_amount(e.get(qty_key, e.get("quantity"))))
    return tuple(sales.values())


def _scenario_from_record(data: Mapping) -> Scenario:
    kwargs = {
        f"{asset_class.value}_sales": _sales_from_record(data.get(keys[0]), asset_class)
        for asset_class, keys in _SALE_RECORD_KEYS.items()
    }
    scenario_id = int(data["id"])
    withdrawals = data.get("withdrawals")
    return Scenario(
        id=scenario_id,
        name=str(data.get("name") or f"Scenario {scenario_id}"),
        withdrawals=_accounts_from_record({} if withdrawals is None else withdrawals, "withdrawals"),
        **kwargs,
    )


def _book_from_record(data: Mapping) -> ScenarioBook:
    raw = data.get("scenarios")
    if raw:
        scenarios = [_scenario_from_record(s) for s in _section_list(raw, "scenarios")]
        counter = data.get("scenarioIdCounter", data.get("scenarioCounter"))
        return ScenarioBook(
            scenarios,
            active_id=data.get("activeScenarioId"),
            counter=int(counter) if counter else len(scenarios),
        )
    # single-plan record from before scenarios existed
    legacy = dict(data)
    legacy["id"] = 1
    legacy["name"] = "Scenario 1"
    return ScenarioBook([_scenario_from_record(legacy)], active_id=1, counter=1)


def _holdings_from_record(data: Mapping, key: str, old_key: str, default=()) -> tuple:
    records = data.get(key, data.get(old_key))
    if records is None:
        return tuple(default)
    return holdings_from_records(_section_list(records, key))


def record_to_state(data: Mapping) -> PlannerState:
    """Build a :class:`PlannerState` from a stored or imported record.

    Raises :class:`StorageError` when the record, or any section of it, has
    the wrong shape.
    """
    if not isinstance(data, Mapping):
        raise StorageError(f"expected a JSON object, got {type(data).__name__}")
    defaults = default_state()
    try:
        personal = data.get("personalInfo")
        accounts = data.get("accountBalances", data.get("accounts"))
        return PlannerState(
            personal_info=defaults.personal_info if personal is None else _personal_from_record(personal),
            balances=defaults.balances if accounts is None else AccountBalances(**_accounts_from_record(accounts)),
            holdings=Holdings(
                stocks=_holdings_from_record(data, "stockHoldings", "stocks", defaults.holdings.stocks),
                crypto=_holdings_from_record(data, "cryptoHoldings", "crypto"),
                metals=_holdings_from_record(data, "metalHoldings", "metals"),
            ),
            book=_book_from_record(data),
            api_key=str(data.get("apiKey") or ""),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"malformed planner record: {e}") from e


# ---------- state -> record ----------
def _holding_record(lot: Holding, qty_key: str) -> dict:
    return {"name": lot.name, qty_key: lot.quantity, "costBasis": lot.cost_basis, "currentPrice": lot.current_price}


def _scenario_record(scenario: Scenario) -> dict:
    record = {
        "id": scenario.id,
        "name": scenario.name,
        "withdrawals": {rec: scenario.withdrawal(py) for py, rec in _ACCOUNT_RECORD_KEYS.items()},
    }
    for asset_class, (list_key, name_key, qty_key, _) in _SALE_RECORD_KEYS.items():
        record[list_key] = [{name_key: e.name, qty_key: e.quantity} for e in scenario.sales(asset_class)]
    return record


def state_to_record(state: PlannerState, include_api_key: bool = True) -> dict:
    info = state.personal_info
    personal = {rec: getattr(info, py) for py, rec in _PERSONAL_KEYS.items()}
    personal["filingStatus"] = info.filing_status.value
    holdings = {}
    for asset_class, key in ((AssetClass.STOCK, "stockHoldings"),
                             (AssetClass.CRYPTO, "cryptoHoldings"),
                             (AssetClass.METAL, "metalHoldings")):
        qty_key = _SALE_RECORD_KEYS[asset_class][3]
        holdings[key] = [_holding_record(lot, qty_key) for lot in state.holdings.lots(asset_class)]
    return {
        "personalInfo": personal,
        "accountBalances": {rec: getattr(state.balances, py) for py, rec in _ACCOUNT_RECORD_KEYS.items()},
        **holdings,
        "scenarios": [_scenario_record(s) for s in state.book],
        "activeScenarioId": state.book.active_id,
        "scenarioIdCounter": state.book.counter,
        "apiKey": state.api_key if include_api_key else "",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ---------- key-value store ----------
class JsonFileStore:
    """A tiny key-value store backed by one JSON file of string values.

    A file that is not a JSON object reads as an empty store; the next write
    replaces it and removing the last key deletes it.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path or DEFAULT_STATE_PATH)

    def _read(self) -> Dict[str, str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except ValueError as e:
            logger.warning("Store file %s is not valid JSON, treating it as empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Store file %s holds a %s, not an object; treating it as empty",
                           self.path, type(data).__name__)
            return {}
        return data

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def remove(self, key: str) -> None:
        data = self._read()
        data.pop(key, None)
        if data:
            self._write(data)
        else:
            self.path.unlink(missing_ok=True)


def load_state(store: JsonFileStore) -> Optional[PlannerState]:
    """Return the saved state, or ``None`` when nothing usable is stored."""
    try:
        raw = store.get(STORAGE_KEY)
    except (OSError, ValueError) as e:
        logger.warning("Could not read saved planner data from %s: %s", store.path, e)
        return None
    if not raw:
        return None
    try:
        return record_to_state(json.loads(raw))
    except (ValueError, StorageError) as e:
        logger.warning("Ignoring unreadable saved planner data: %s", e)
        return None


def save_state(store: JsonFileStore, state: PlannerState) -> bool:
    """Persist ``state``; returns ``False`` (and logs) instead of raising on failure."""
    try:
        store.set(STORAGE_KEY, json.dumps(state_to_record(state)))
    except (OSError, TypeError, ValueError) as e:
        logger.error("Saving planner data to %s failed: %s", store.path, e)
        return False
    logger.info("Saved planner data to %s", store.path)
    return True


def clear_state(store: JsonFileStore) -> None:
    try:
        store.remove(STORAGE_KEY)
    except (OSError, ValueError) as e:
        logger.error("Clearing saved planner data failed: %s", e)


def export_state(state: PlannerState, include_api_key: bool = False) -> str:
    return json.dumps(state_to_record(state, include_api_key=include_api_key), indent=2)


def import_state(text) -> PlannerState:
    """Parse an exported document; raises :class:`StorageError` if it is unusable."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise StorageError(f"not a valid JSON document: {e}") from e
    return record_to_state(data)


def export_filename(today: Optional[datetime] = None) -> str:
    today = today or datetime.now()
    return f"retirement-plan-{today.strftime('%Y-%m-%d')}.json"


__all__ = [
    "DEFAULT_STATE_PATH",
    "JsonFileStore",
    "PlannerState",
    "STORAGE_KEY",
    "StorageError",
    "clear_state",
    "default_state",
    "export_filename",
    "export_state",
    "import_state",
    "load_state",
    "record_to_state",
    "save_state",
    "state_to_record",
]
