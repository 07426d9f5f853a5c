"""Tests for scenario evaluation.

The baseline profile matches the planner's defaults: three months of work at
$5,000/month and a $3,000/month pension starting in April, single filer, no
investment income.
"""

import math

import pytest

from withdrawal_planner.calculators import scenario as evaluator
from withdrawal_planner.models import (
    AccountBalances,
    FilingStatus,
    Holding,
    Holdings,
    PersonalInfo,
    SaleEntry,
    Scenario,
)

BASE_INFO = PersonalInfo(
    age=65,
    filing_status=FilingStatus.SINGLE,
    work_months=3,
    monthly_work_income=5000,
    monthly_pension=3000,
    pension_start_month=4,
)
BALANCES = AccountBalances(savings=50000, traditional_ira=300000, roth_ira=100000,
                           traditional_401k=400000, roth_401k=50000)
HOLDINGS = Holdings(
    stocks=(Holding("Stock 1", quantity=100, cost_basis=50, current_price=75),),
    crypto=(Holding("BTC", quantity=1, cost_basis=5000, current_price=1000),),
    metals=(Holding("Gold", quantity=10, cost_basis=1800, current_price=2000),),
)


def _evaluate(scenario, info=BASE_INFO, holdings=HOLDINGS):
    return evaluator.evaluate(scenario, info, BALANCES, holdings)


def test_baseline_income_and_ordinary_tax():
    result = _evaluate(Scenario(id=1, name="Base"))
    assert result.employment_income == 15000
    assert result.pension_income == 27000
    assert result.traditional_withdrawals == 0
    assert result.ordinary_income == 42000
    assert result.taxable_ordinary_income == 25900
    assert math.isclose(result.ordinary_tax, 2860.0, rel_tol=1e-9)
    assert result.preferential_tax == 0
    assert result.current_bracket.rate == 0.12
    assert result.room_in_bracket == 50400 - 25900


def test_baseline_state_tax_and_rates():
    result = _evaluate(Scenario(id=1, name="Base"))
    assert math.isclose(result.state_ordinary_tax, 25900 * 0.0455)
    assert result.state_preferential_tax == 0
    assert result.total_withdrawals == 0
    assert result.effective_rate == 0
    assert result.effective_rate_with_state == 0


def test_baseline_irmaa_tier():
    result = _evaluate(Scenario(id=1, name="Base"))
    assert result.magi == 42000
    assert result.irmaa_tier.label == "No IRMAA"
    assert result.room_to_next_irmaa_tier == 109000 - 42000
    assert result.room_below_irmaa_tier == 0
    assert result.irmaa_annual_cost == 0


def test_stock_sale_gain_and_preferential_tax():
    s = Scenario(id=1, name="Sell", stock_sales=(SaleEntry("Stock 1", 100),))
    result = _evaluate(s)
    assert result.stock_proceeds == 7500
    assert result.stock_gains == 2500
    assert math.isclose(result.preferential_tax, 375.0)
    assert math.isclose(result.state_preferential_tax, 2500 * 0.0455)
    assert result.total_withdrawals == 7500
    assert len(result.sales) == 1
    assert result.sales[0].basis == 5000


def test_zero_quantity_sale_contributes_nothing():
    s = Scenario(id=1, name="Zero", stock_sales=(SaleEntry("Stock 1", 0),),
                 metal_sales=(SaleEntry("Gold", 0),))
    result = _evaluate(s)
    assert result.stock_proceeds == 0 and result.stock_gains == 0
    assert result.metal_proceeds == 0 and result.metal_gains == 0
    assert result.sales == ()


def test_unknown_holding_is_skipped():
    s = Scenario(id=1, name="Ghost", stock_sales=(SaleEntry("Sold Long Ago", 10),))
    result = _evaluate(s)
    assert result.stock_proceeds == 0
    assert result.stock_gains == 0
    assert result.preferential_income == 0


def test_losses_offset_gains_across_classes_without_refund():
    s = Scenario(
        id=1, name="Mixed",
        stock_sales=(SaleEntry("Stock 1", 100),),   # +2,500
        crypto_sales=(SaleEntry("BTC", 1),),        # -4,000
    )
    result = _evaluate(s)
    assert result.crypto_gains == -4000
    assert result.preferential_income == -1500
    assert result.preferential_tax == 0
    assert result.state_preferential_tax == 0
    assert result.total_withdrawals == 7500 + 1000


def test_metal_gains_use_the_flat_rate():
    s = Scenario(id=1, name="Gold", metal_sales=(SaleEntry("Gold", 5),))
    result = _evaluate(s)
    assert result.metal_proceeds == 10000
    assert result.metal_gains == 1000
    assert math.isclose(result.preferential_tax, 150.0)


def test_qualified_dividends_are_preferential():
    info = PersonalInfo(qualified_dividends=4000, ordinary_dividends=1000, interest_income=500)
    result = _evaluate(Scenario(id=1, name="Divs"), info=info)
    assert result.ordinary_income == 1500
    assert result.preferential_income == 4000
    assert math.isclose(result.preferential_tax, 600.0)


def test_account_withdrawals_split_ordinary_and_tax_free():
    withdrawals = {"savings": 3000, "traditional_ira": 10000, "roth_ira": 2000,
                   "traditional_401k": 5000, "roth_401k": 0}
    result = _evaluate(Scenario(id=1, name="Draw", withdrawals=withdrawals))
    assert result.ordinary_income == 57000
    assert result.traditional_withdrawals == 15000
    assert result.tax_free_withdrawals == 5000
    assert result.taxable_ordinary_income == 40900
    assert math.isclose(result.ordinary_tax, 4660.0)
    assert result.total_withdrawals == 20000
    assert math.isclose(result.effective_rate, 4660 / 20000 * 100)
    expected_with_state = (4660 + 40900 * 0.0455) / 20000 * 100
    assert math.isclose(result.effective_rate_with_state, expected_with_state)


def test_joint_filer_uses_joint_tables():
    info = PersonalInfo(filing_status=FilingStatus.JOINT, work_months=3, monthly_work_income=5000,
                        monthly_pension=3000, pension_start_month=4)
    result = _evaluate(Scenario(id=1, name="Joint"), info=info)
    assert result.standard_deduction == 32200
    assert result.taxable_ordinary_income == 9800
    assert math.isclose(result.ordinary_tax, 980.0)


def test_irmaa_surcharge_is_annualised():
    info = PersonalInfo(interest_income=150000)
    result = _evaluate(Scenario(id=1, name="High"), info=info)
    assert result.irmaa_tier.label == "Bracket 2"
    assert math.isclose(result.irmaa_annual_cost, (202.90 + 37.60) * 12)
    assert math.isclose(result.total_cost, result.total_tax_with_state + result.irmaa_annual_cost)


def test_evaluation_is_pure():
    s = Scenario(id=1, name="Sell", stock_sales=(SaleEntry("Stock 1", 40),),
                 withdrawals={"savings": 0, "traditional_ira": 25000, "roth_ira": 0,
                              "traditional_401k": 0, "roth_401k": 0})
    first = _evaluate(s)
    second = _evaluate(s)
    assert first == second
    assert s.withdrawals["traditional_ira"] == 25000
    assert HOLDINGS.stocks[0].quantity == 100


@pytest.mark.parametrize("start, months", [(1, 12), (4, 9), (12, 1), (13, 0), (0, 12)])
def test_pension_months(start, months):
    assert evaluator.pension_months(start) == months


def test_evaluate_all_keeps_order_and_independence():
    a = Scenario(id=1, name="A")
    b = Scenario(id=2, name="B", stock_sales=(SaleEntry("Stock 1", 100),))
    pairs = evaluator.evaluate_all([a, b], BASE_INFO, BALANCES, HOLDINGS)
    assert [s.name for s, _ in pairs] == ["A", "B"]
    assert pairs[0][1] == _evaluate(a)
    assert pairs[1][1].stock_gains == 2500
