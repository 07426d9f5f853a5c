"""The scenario book: up to five withdrawal scenarios and the active pointer.

The book always holds at least one scenario and its active id always names a
scenario it holds.  Operations that would break either rule raise a
:class:`ScenarioError` and leave the book untouched.  Ids come from a counter
and are never handed out twice, even after the scenario is removed.

Scenarios themselves are immutable; every setter swaps in a new
:class:`~withdrawal_planner.models.Scenario` built with ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterator, List, Optional, Sequence

from .models import ACCOUNT_KEYS, AssetClass, SaleEntry, Scenario, to_amount

MAX_SCENARIOS = 5

_SALE_FIELDS = {
    AssetClass.STOCK: "stock_sales",
    AssetClass.CRYPTO: "crypto_sales",
    AssetClass.METAL: "metal_sales",
}


class ScenarioError(ValueError):
    """Base class for operations the scenario book refuses."""


class ScenarioLimitError(ScenarioError):
    pass


class LastScenarioError(ScenarioError):
    pass


class UnknownScenarioError(ScenarioError, KeyError):
    pass


def new_scenario(scenario_id: int, name: Optional[str] = None) -> Scenario:
    """A scenario with zero withdrawals and no sales."""
    return Scenario(id=scenario_id, name=name or f"Scenario {scenario_id}")


class ScenarioBook:
    def __init__(
        self,
        scenarios: Optional[Sequence[Scenario]] = None,
        active_id: Optional[int] = None,
        counter: Optional[int] = None,
    ):
        scenarios = list(scenarios or [])
        if not scenarios:
            scenarios = [new_scenario(1)]
        if len(scenarios) > MAX_SCENARIOS:
            raise ScenarioLimitError(f"at most {MAX_SCENARIOS} scenarios are allowed, got {len(scenarios)}")
        ids = [s.id for s in scenarios]
        if len(set(ids)) != len(ids):
            raise ScenarioError(f"duplicate scenario ids: {ids}")

        self._scenarios: List[Scenario] = scenarios
        self._counter = max([counter or 0] + ids)
        self._active_id = active_id if active_id in ids else ids[0]

    # ---- read access ----
    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(list(self._scenarios))

    @property
    def scenarios(self) -> List[Scenario]:
        return list(self._scenarios)

    @property
    def active_id(self) -> int:
        return self._active_id

    @property
    def counter(self) -> int:
        return self._counter

    @property
    def active(self) -> Scenario:
        return self.get(self._active_id)

    @property
    def is_full(self) -> bool:
        return len(self._scenarios) >= MAX_SCENARIOS

    def get(self, scenario_id: int) -> Scenario:
        return self._scenarios[self._index(scenario_id)]

    def sale_quantity(self, scenario_id: int, asset_class: AssetClass, name: str) -> float:
        for entry in self.get(scenario_id).sales(asset_class):
            if entry.name == name:
                return entry.quantity
        return 0.0

    # ---- collection changes ----
    def add(self, name: Optional[str] = None) -> Scenario:
        """Append a blank scenario and make it active."""
        if self.is_full:
            raise ScenarioLimitError(f"at most {MAX_SCENARIOS} scenarios are allowed")
        self._counter += 1
        scenario = new_scenario(self._counter, name)
        self._scenarios.append(scenario)
        self._active_id = scenario.id
        return scenario

    def remove(self, scenario_id: int) -> None:
        idx = self._index(scenario_id)
        if len(self._scenarios) == 1:
            raise LastScenarioError("the last remaining scenario cannot be removed")
        del self._scenarios[idx]
        if self._active_id == scenario_id:
            self._active_id = self._scenarios[0].id

    def switch(self, scenario_id: int) -> Scenario:
        scenario = self.get(scenario_id)
        self._active_id = scenario.id
        return scenario

    # ---- field updates ----
    def rename(self, scenario_id: int, name: str) -> Scenario:
        return self._update(scenario_id, name=name)

    def set_withdrawal(self, scenario_id: int, account: str, amount) -> Scenario:
        if account not in ACCOUNT_KEYS:
            raise KeyError(f"unknown account {account!r}; expected one of {ACCOUNT_KEYS}")
        withdrawals = dict(self.get(scenario_id).withdrawals)
        withdrawals[account] = to_amount(amount)
        return self._update(scenario_id, withdrawals=withdrawals)

    def set_sale(self, scenario_id: int, asset_class: AssetClass, name: str, quantity) -> Scenario:
        """Set the quantity to sell for ``name``, adding an entry if there is none."""
        asset_class = AssetClass(asset_class)
        quantity = to_amount(quantity)
        entries = list(self.get(scenario_id).sales(asset_class))
        for i, entry in enumerate(entries):
            if entry.name == name:
                entries[i] = replace(entry, quantity=quantity)
                break
        else:
            entries.append(SaleEntry(name=name, quantity=quantity))
        return self._update(scenario_id, **{_SALE_FIELDS[asset_class]: tuple(entries)})

    def drop_sales(self, asset_class: AssetClass, name: str) -> None:
        """Remove every scenario's sale entry for a holding that no longer exists."""
        asset_class = AssetClass(asset_class)
        field_name = _SALE_FIELDS[asset_class]
        for i, scenario in enumerate(self._scenarios):
            kept = tuple(e for e in scenario.sales(asset_class) if e.name != name)
            self._scenarios[i] = replace(scenario, **{field_name: kept})

    def rename_sales(self, asset_class: AssetClass, old_name: str, new_name: str) -> None:
        """Follow a holding rename so existing sale entries keep resolving."""
        asset_class = AssetClass(asset_class)
        field_name = _SALE_FIELDS[asset_class]
        for i, scenario in enumerate(self._scenarios):
            current = scenario.sales(asset_class)
            if any(e.name == new_name for e in current):
                # keep the entry already filed under the new name
                entries = tuple(e for e in current if e.name != old_name)
            else:
                entries = tuple(replace(e, name=new_name) if e.name == old_name else e for e in current)
            self._scenarios[i] = replace(scenario, **{field_name: entries})

    # ---- helpers ----
    def _index(self, scenario_id: int) -> int:
        for i, scenario in enumerate(self._scenarios):
            if scenario.id == scenario_id:
                return i
        raise UnknownScenarioError(f"no scenario with id {scenario_id}")

    def _update(self, scenario_id: int, **changes) -> Scenario:
        idx = self._index(scenario_id)
        updated = replace(self._scenarios[idx], **changes)
        self._scenarios[idx] = updated
        return updated


__all__ = [
    "MAX_SCENARIOS",
    "LastScenarioError",
    "ScenarioBook",
    "ScenarioError",
    "ScenarioLimitError",
    "UnknownScenarioError",
    "new_scenario",
]
