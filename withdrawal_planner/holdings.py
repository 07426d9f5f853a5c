"""Editing helpers for holding lots.

Each asset class is an ordered tuple of :class:`Holding`; these helpers return
a new tuple instead of changing one in place.  Numeric fields go through
:func:`~withdrawal_planner.models.to_amount` like every other user entry.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Mapping, Sequence, Tuple

from .models import AssetClass, Holding, to_amount

MAX_HOLDINGS_PER_CLASS = 12

_DEFAULT_PREFIX = {
    AssetClass.STOCK: "Stock",
    AssetClass.CRYPTO: "Crypto",
    AssetClass.METAL: "Metal",
}

_NUMERIC_FIELDS = ("quantity", "cost_basis", "current_price")


def add_holding(lots: Sequence[Holding], asset_class: AssetClass) -> Tuple[Holding, ...]:
    """Append an empty lot named after its position, e.g. ``"Stock 3"``.

    Lists already at :data:`MAX_HOLDINGS_PER_CLASS` come back unchanged.
    """
    if len(lots) >= MAX_HOLDINGS_PER_CLASS:
        return tuple(lots)
    name = f"{_DEFAULT_PREFIX[AssetClass(asset_class)]} {len(lots) + 1}"
    return tuple(lots) + (Holding(name=name),)


def update_holding(lots: Sequence[Holding], index: int, **fields) -> Tuple[Holding, ...]:
    changes = {}
    for key, value in fields.items():
        if key == "name":
            changes[key] = str(value)
        elif key in _NUMERIC_FIELDS:
            changes[key] = to_amount(value)
        else:
            raise TypeError(f"unknown holding field {key!r}")
    lots = list(lots)
    lots[index] = replace(lots[index], **changes)
    return tuple(lots)


def lots_from_rows(
    rows: Iterable[Mapping], asset_class: AssetClass, quantity_key: str = "quantity",
) -> Tuple[Tuple[Holding, ...], List[str]]:
    """Rebuild a class's lots from editor rows.

    Rows need ``name``, ``quantity_key``, ``cost_basis`` and ``current_price``.
    Blank names are dropped, a repeated name keeps its first row and rows past
    :data:`MAX_HOLDINGS_PER_CLASS` are cut.  Returns the lots plus a message
    for every row that was not kept.
    """
    lots: Tuple[Holding, ...] = ()
    problems: List[str] = []
    seen = set()
    for row in rows:
        name = row.get("name")
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            continue
        if name in seen:
            problems.append(f"Duplicate name {name!r}: only the first lot is kept.")
            continue
        grown = add_holding(lots, asset_class)
        if len(grown) == len(lots):
            problems.append(f"Only the first {MAX_HOLDINGS_PER_CLASS} lots are kept.")
            break
        seen.add(name)
        lots = update_holding(
            grown, len(grown) - 1,
            name=name,
            quantity=row.get(quantity_key),
            cost_basis=row.get("cost_basis"),
            current_price=row.get("current_price"),
        )
    return lots, problems


def holding_from_dict(data: Mapping) -> Holding:
    """Build a lot from a stored record.

    Older records call the quantity ``shares`` (stocks) or ``units`` (crypto
    and metals); all three spellings are accepted.
    """
    quantity = data.get("quantity", data.get("shares", data.get("units")))
    return Holding(
        name=str(data.get("name", "")),
        quantity=to_amount(quantity),
        cost_basis=to_amount(data.get("costBasis", data.get("cost_basis"))),
        current_price=to_amount(data.get("currentPrice", data.get("current_price"))),
    )


def holdings_from_records(records: Iterable[Mapping]) -> Tuple[Holding, ...]:
    return tuple(holding_from_dict(r) for r in records or [] if isinstance(r, Mapping))


def portfolio_value(lots: Iterable[Holding]) -> float:
    return sum(lot.total_value for lot in lots)


def unrealized_gain(lots: Iterable[Holding]) -> float:
    return sum(lot.total_gain for lot in lots)


__all__ = [
    "MAX_HOLDINGS_PER_CLASS",
    "add_holding",
    "holding_from_dict",
    "holdings_from_records",
    "lots_from_rows",
    "portfolio_value",
    "unrealized_gain",
    "update_holding",
]
