"""Side-by-side scenario comparison.

Builds the table shown under "Scenario Comparison": one column per scenario,
one row per headline figure.  Values are left numeric so the caller decides on
formatting (Streamlit styling, CSV export, ...).
"""

from __future__ import annotations

from typing import Iterable, Tuple

import pandas as pd

from ..models import Scenario, ScenarioResult

COMPARISON_ROWS = (
    ("Total withdrawals", lambda r: r.total_withdrawals),
    ("MAGI (for IRMAA)", lambda r: r.magi),
    ("Federal bracket", lambda r: r.current_bracket.rate * 100),
    ("Federal tax", lambda r: r.total_tax),
    ("State tax", lambda r: r.state_total_tax),
    ("IRMAA annual cost", lambda r: r.irmaa_annual_cost),
    ("Total cost", lambda r: r.total_cost),
    ("Effective rate with state (%)", lambda r: r.effective_rate_with_state),
)


def comparison_table(pairs: Iterable[Tuple[Scenario, ScenarioResult]]) -> pd.DataFrame:
    """Return a DataFrame indexed by metric with a column per scenario name.

    Two scenarios sharing a display name get their id appended so columns
    stay unique.
    """
    pairs = list(pairs)
    names = [s.name for s, _ in pairs]
    columns = {}
    for scenario, result in pairs:
        label = scenario.name if names.count(scenario.name) == 1 else f"{scenario.name} (#{scenario.id})"
        columns[label] = [fn(result) for _, fn in COMPARISON_ROWS]
    return pd.DataFrame(columns, index=[label for label, _ in COMPARISON_ROWS])


def cheapest_scenario(pairs: Iterable[Tuple[Scenario, ScenarioResult]]) -> Scenario:
    """Scenario with the lowest total cost; ties go to the earliest one."""
    pairs = list(pairs)
    if not pairs:
        raise ValueError("no scenarios to compare")
    return min(pairs, key=lambda p: p[1].total_cost)[0]


__all__ = ["COMPARISON_ROWS", "cheapest_scenario", "comparison_table"]
