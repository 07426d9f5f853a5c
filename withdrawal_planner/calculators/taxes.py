"""Tax table loading.

Rates, brackets, standard deductions and IRMAA tiers are data, not code.  The
defaults ship in ``data/tax_tables.json`` keyed by tax year, so a new year is
added by extending the file rather than editing the calculators.  The bundled
file covers 2026 for single and joint filers, a flat 15% preferential rate for
capital gains and qualified dividends, and Utah's flat state rate.

Schema for one year::

    {
      "federal": {"single": {"standard_deduction": ..., "brackets": [...]},
                  "joint":  {...}},
      "preferential_rate": 0.15,
      "irmaa": {"single": [...], "joint": [...]},
      "state": {"UT": {"rate": 0.0455}}
    }

Bracket and IRMAA entries use ``start``/``end`` bounds with ``end: null`` for
the unbounded top tier.

>>> tables = tax_year(2026)
>>> tables.standard_deduction(FilingStatus.SINGLE)
16100.0
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Tuple

from ..models import BracketTier, FilingStatus, SurchargeTier
from .brackets import validate_tiers

_DEFAULT_TAX_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "tax_tables.json"

DEFAULT_TAX_YEAR = 2026
DEFAULT_STATE = "UT"


def load_tax_tables(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load the raw tax tables from JSON.

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file following the schema above.  Defaults to the file
        shipped with the package.

    Returns
    -------
    dict
        The parsed tables keyed by year (as a string).
    """
    p = path or _DEFAULT_TAX_TABLE_PATH
    with open(p, "r", encoding="utf-8") as f:
        return json.load(f)


def _bound(value) -> float:
    return math.inf if value is None else float(value)


@dataclass(frozen=True)
class TaxYear:
    """Everything the scenario evaluator needs for one tax year and state."""

    year: int
    state: str
    ordinary_brackets: Dict[FilingStatus, Tuple[BracketTier, ...]]
    standard_deductions: Dict[FilingStatus, float]
    irmaa_tiers: Dict[FilingStatus, Tuple[SurchargeTier, ...]]
    preferential_rate: float
    state_rate: float

    def brackets(self, status: FilingStatus) -> Tuple[BracketTier, ...]:
        return self.ordinary_brackets[FilingStatus.parse(status)]

    def standard_deduction(self, status: FilingStatus) -> float:
        return self.standard_deductions[FilingStatus.parse(status)]

    def irmaa(self, status: FilingStatus) -> Tuple[SurchargeTier, ...]:
        return self.irmaa_tiers[FilingStatus.parse(status)]


def build_tax_year(tables: Dict[str, Dict], year: int, state: str = DEFAULT_STATE) -> TaxYear:
    """Turn the raw JSON for ``year`` into validated tier tables.

    Raises ``KeyError`` for a year missing from ``tables`` and ``ValueError``
    when a bracket or IRMAA table has gaps or is not unbounded at the top.
    """
    year_tables = tables[str(year)]

    brackets = {}
    deductions = {}
    for status in FilingStatus:
        federal = year_tables["federal"][status.value]
        tiers = tuple(
            BracketTier(rate=float(b["rate"]), lower=float(b["start"]), upper=_bound(b["end"]))
            for b in federal["brackets"]
        )
        validate_tiers(tiers)
        brackets[status] = tiers
        deductions[status] = float(federal.get("standard_deduction", 0.0))

    irmaa = {}
    for status in FilingStatus:
        tiers = tuple(
            SurchargeTier(
                lower=float(t["start"]),
                upper=_bound(t["end"]),
                part_b=float(t.get("part_b", 0.0)),
                part_d=float(t.get("part_d", 0.0)),
                label=t.get("label", ""),
            )
            for t in year_tables["irmaa"][status.value]
        )
        validate_tiers(tiers)
        irmaa[status] = tiers

    state_info = year_tables.get("state", {}).get(state, {})
    return TaxYear(
        year=int(year),
        state=state,
        ordinary_brackets=brackets,
        standard_deductions=deductions,
        irmaa_tiers=irmaa,
        preferential_rate=float(year_tables.get("preferential_rate", 0.0)),
        state_rate=float(state_info.get("rate", 0.0)),
    )


@lru_cache(maxsize=None)
def _bundled_tax_year(year: int, state: str) -> TaxYear:
    return build_tax_year(load_tax_tables(), year, state)


def tax_year(year: Optional[int] = None, state: Optional[str] = None) -> TaxYear:
    """Return the bundled tables for ``year`` (default 2026) and ``state`` (default UT)."""
    return _bundled_tax_year(int(year or DEFAULT_TAX_YEAR), state or DEFAULT_STATE)


def available_years(tables: Optional[Dict[str, Dict]] = None) -> Tuple[int, ...]:
    tables = tables or load_tax_tables()
    return tuple(sorted(int(y) for y in tables))


__all__ = [
    "DEFAULT_STATE",
    "DEFAULT_TAX_YEAR",
    "TaxYear",
    "available_years",
    "build_tax_year",
    "load_tax_tables",
    "tax_year",
]
