"""Scenario evaluation.

:func:`evaluate` turns one withdrawal scenario plus the shared inputs into a
:class:`~withdrawal_planner.models.ScenarioResult`.  It is a pure function:
nothing is cached between calls and the inputs are never modified, so
comparing scenarios is just calling it once per scenario.

Simplifications carried by the model:

* all capital gains (stocks, crypto, metals) and qualified dividends are taxed
  at one flat preferential rate instead of the tiered long-term brackets;
* net losses lower the preferential total but never produce a refund;
* the state tax is a flat rate on taxable ordinary income plus positive
  preferential income;
* MAGI for IRMAA is ordinary income before the standard deduction.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from ..models import (
    TAX_FREE_ACCOUNTS,
    TRADITIONAL_ACCOUNTS,
    AccountBalances,
    AssetClass,
    Holdings,
    PersonalInfo,
    SaleResult,
    Scenario,
    ScenarioResult,
)
from .brackets import compute_progressive_tax, locate_tier
from .taxes import TaxYear, tax_year


def pension_months(start_month: int) -> int:
    """Months of pension received when payments begin in ``start_month`` (1-12)."""
    return max(0, min(12, 12 - int(start_month) + 1))


def _sales_for_class(scenario: Scenario, holdings: Holdings, asset_class: AssetClass) -> List[SaleResult]:
    results = []
    for entry in scenario.sales(asset_class):
        lot = holdings.find(asset_class, entry.name)
        # unresolved names and zero quantities contribute nothing
        if lot is None or entry.quantity <= 0:
            continue
        proceeds = entry.quantity * lot.current_price
        basis = entry.quantity * lot.cost_basis
        results.append(SaleResult(
            asset_class=asset_class,
            name=entry.name,
            quantity=entry.quantity,
            proceeds=proceeds,
            basis=basis,
            gain=proceeds - basis,
        ))
    return results


def evaluate(
    scenario: Scenario,
    personal_info: PersonalInfo,
    balances: AccountBalances,
    holdings: Holdings,
    tables: Optional[TaxYear] = None,
) -> ScenarioResult:
    """Compute the full tax breakdown for ``scenario``.

    ``balances`` are ceilings for the withdrawal inputs and are not consulted
    by the arithmetic; the caller keeps withdrawals within them.
    """
    tables = tables or tax_year()
    status = personal_info.filing_status

    employment_income = personal_info.work_months * personal_info.monthly_work_income
    pension_income = pension_months(personal_info.pension_start_month) * personal_info.monthly_pension

    traditional_withdrawals = sum(scenario.withdrawal(k) for k in TRADITIONAL_ACCOUNTS)
    ordinary_income = (
        employment_income
        + pension_income
        + traditional_withdrawals
        + personal_info.interest_income
        + personal_info.ordinary_dividends
    )
    tax_free_withdrawals = sum(scenario.withdrawal(k) for k in TAX_FREE_ACCOUNTS)

    sales: List[SaleResult] = []
    proceeds = {}
    gains = {}
    for asset_class in AssetClass:
        class_sales = _sales_for_class(scenario, holdings, asset_class)
        sales.extend(class_sales)
        proceeds[asset_class] = sum(s.proceeds for s in class_sales)
        gains[asset_class] = sum(s.gain for s in class_sales)

    deduction = tables.standard_deduction(status)
    taxable_ordinary = max(0.0, ordinary_income - deduction)

    preferential_income = sum(gains.values()) + personal_info.qualified_dividends
    preferential_tax = preferential_income * tables.preferential_rate if preferential_income > 0 else 0.0

    brackets = tables.brackets(status)
    ordinary_tax = compute_progressive_tax(taxable_ordinary, brackets)
    bracket = locate_tier(taxable_ordinary, brackets)

    state_ordinary_tax = taxable_ordinary * tables.state_rate
    state_preferential_tax = preferential_income * tables.state_rate if preferential_income > 0 else 0.0
    state_total_tax = state_ordinary_tax + state_preferential_tax

    magi = ordinary_income
    irmaa = locate_tier(magi, tables.irmaa(status))

    total_tax = ordinary_tax + preferential_tax
    total_tax_with_state = total_tax + state_total_tax
    total_withdrawals = sum(scenario.withdrawals.values()) + sum(proceeds.values())
    if total_withdrawals > 0:
        effective_rate = total_tax / total_withdrawals * 100
        effective_rate_with_state = total_tax_with_state / total_withdrawals * 100
    else:
        effective_rate = effective_rate_with_state = 0.0

    return ScenarioResult(
        employment_income=employment_income,
        pension_income=pension_income,
        traditional_withdrawals=traditional_withdrawals,
        ordinary_income=ordinary_income,
        tax_free_withdrawals=tax_free_withdrawals,
        sales=tuple(sales),
        stock_proceeds=proceeds[AssetClass.STOCK],
        stock_gains=gains[AssetClass.STOCK],
        crypto_proceeds=proceeds[AssetClass.CRYPTO],
        crypto_gains=gains[AssetClass.CRYPTO],
        metal_proceeds=proceeds[AssetClass.METAL],
        metal_gains=gains[AssetClass.METAL],
        preferential_income=preferential_income,
        standard_deduction=deduction,
        taxable_ordinary_income=taxable_ordinary,
        ordinary_tax=ordinary_tax,
        preferential_tax=preferential_tax,
        total_tax=total_tax,
        current_bracket=bracket.tier,
        room_in_bracket=bracket.room_to_next,
        state_ordinary_tax=state_ordinary_tax,
        state_preferential_tax=state_preferential_tax,
        state_total_tax=state_total_tax,
        total_tax_with_state=total_tax_with_state,
        magi=magi,
        irmaa_tier=irmaa.tier,
        room_to_next_irmaa_tier=irmaa.room_to_next,
        room_below_irmaa_tier=irmaa.room_below,
        irmaa_annual_cost=irmaa.tier.annual_cost,
        total_withdrawals=total_withdrawals,
        effective_rate=effective_rate,
        effective_rate_with_state=effective_rate_with_state,
    )


def evaluate_all(
    scenarios: Iterable[Scenario],
    personal_info: PersonalInfo,
    balances: AccountBalances,
    holdings: Holdings,
    tables: Optional[TaxYear] = None,
) -> List[Tuple[Scenario, ScenarioResult]]:
    """Evaluate every scenario independently, keeping the input order."""
    tables = tables or tax_year()
    return [(s, evaluate(s, personal_info, balances, holdings, tables)) for s in scenarios]


__all__ = ["evaluate", "evaluate_all", "pension_months"]
