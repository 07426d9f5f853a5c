from typing import Dict, Tuple

import pandas as pd
import streamlit as st

from ..holdings import lots_from_rows
from ..models import (
    ACCOUNT_KEYS,
    AccountBalances,
    AssetClass,
    FilingStatus,
    Holding,
    PersonalInfo,
    Scenario,
)

# Stable widget keys; the app clears these after a load/import/reset so the
# widgets pick up the new values.
WIDGET_KEYS = {
    "age": "in_age",
    "filing_status": "in_filing_status",
    "work_months": "in_work_months",
    "monthly_work_income": "in_monthly_work_income",
    "monthly_pension": "in_monthly_pension",
    "pension_start_month": "in_pension_start_month",
    "interest_income": "in_interest_income",
    "qualified_dividends": "in_qualified_dividends",
    "ordinary_dividends": "in_ordinary_dividends",
    "api_key": "in_api_key",
    **{f"balance_{k}": f"in_balance_{k}" for k in ACCOUNT_KEYS},
}

ACCOUNT_LABELS = {
    "savings": "Savings / taxable cash",
    "traditional_ira": "Traditional IRA",
    "roth_ira": "Roth IRA",
    "traditional_401k": "Traditional 401(k)",
    "roth_401k": "Roth 401(k)",
}

ASSET_LABELS = {
    AssetClass.STOCK: ("Stocks", "Shares"),
    AssetClass.CRYPTO: ("Crypto", "Units"),
    AssetClass.METAL: ("Precious Metals", "Units"),
}

# editor column -> lots_from_rows field; the quantity column is named per class
_EDITOR_FIELDS = {"Name": "name", "Cost basis": "cost_basis", "Current price": "current_price"}


def personal_info_form(info: PersonalInfo) -> PersonalInfo:
    st.sidebar.header("Personal Information")
    age = st.sidebar.number_input(
        "Age", min_value=0, max_value=120, value=int(info.age), key=WIDGET_KEYS["age"],
    )
    statuses = [s.value for s in FilingStatus]
    filing = st.sidebar.selectbox(
        "Filing status", statuses, index=statuses.index(info.filing_status.value),
        format_func=lambda s: "Married filing jointly" if s == "joint" else "Single",
        key=WIDGET_KEYS["filing_status"],
    )

    with st.sidebar.expander("Work & pension", expanded=True):
        work_months = st.number_input(
            "Months employed", min_value=0, max_value=12, value=int(info.work_months),
            key=WIDGET_KEYS["work_months"],
        )
        monthly_work = st.number_input(
            "Monthly work income", min_value=0.0, value=float(info.monthly_work_income), step=500.0,
            key=WIDGET_KEYS["monthly_work_income"],
        )
        monthly_pension = st.number_input(
            "Monthly pension", min_value=0.0, value=float(info.monthly_pension), step=100.0,
            key=WIDGET_KEYS["monthly_pension"],
        )
        pension_start = st.number_input(
            "Pension start month", min_value=1, max_value=13, value=int(min(max(info.pension_start_month, 1), 13)),
            key=WIDGET_KEYS["pension_start_month"],
            help="1 = January. Use 13 for no pension this year.",
        )

    with st.sidebar.expander("Investment income", expanded=False):
        interest = st.number_input(
            "Interest income", min_value=0.0, value=float(info.interest_income),
            key=WIDGET_KEYS["interest_income"],
        )
        qualified = st.number_input(
            "Qualified dividends", min_value=0.0, value=float(info.qualified_dividends),
            key=WIDGET_KEYS["qualified_dividends"],
        )
        ordinary = st.number_input(
            "Ordinary dividends", min_value=0.0, value=float(info.ordinary_dividends),
            key=WIDGET_KEYS["ordinary_dividends"],
        )

    return PersonalInfo.from_dict({
        "age": age,
        "filing_status": filing,
        "work_months": work_months,
        "monthly_work_income": monthly_work,
        "monthly_pension": monthly_pension,
        "pension_start_month": pension_start,
        "interest_income": interest,
        "qualified_dividends": qualified,
        "ordinary_dividends": ordinary,
    })


def balances_form(balances: AccountBalances) -> AccountBalances:
    st.sidebar.header("Account Balances")
    values = {}
    for k in ACCOUNT_KEYS:
        values[k] = st.sidebar.number_input(
            ACCOUNT_LABELS[k], min_value=0.0, value=float(getattr(balances, k)), step=1000.0,
            key=WIDGET_KEYS[f"balance_{k}"],
        )
    return AccountBalances.from_dict(values)


def withdrawals_form(scenario: Scenario, balances: AccountBalances) -> Dict[str, float]:
    """Withdrawal inputs for the active scenario, each capped at its balance."""
    values = {}
    cols = st.columns(len(ACCOUNT_KEYS))
    for col, k in zip(cols, ACCOUNT_KEYS):
        ceiling = float(getattr(balances, k))
        values[k] = col.number_input(
            ACCOUNT_LABELS[k], min_value=0.0, max_value=ceiling,
            value=min(scenario.withdrawal(k), ceiling), step=1000.0,
            key=f"wd_{scenario.id}_{k}",
        )
    return values


def holdings_editor(lots: Tuple[Holding, ...], asset_class: AssetClass) -> Tuple[Holding, ...]:
    """Editable table of lots for one asset class."""
    title, qty_label = ASSET_LABELS[asset_class]
    df = pd.DataFrame(
        [[lot.name, lot.quantity, lot.cost_basis, lot.current_price] for lot in lots],
        columns=["Name", qty_label, "Cost basis", "Current price"],
    )
    edited = st.data_editor(
        df, num_rows="dynamic", use_container_width=True, key=f"holdings_{asset_class.value}",
        column_config={
            "Cost basis": st.column_config.NumberColumn(format="$%.2f", min_value=0.0),
            "Current price": st.column_config.NumberColumn(format="$%.2f", min_value=0.0),
        },
    )
    rows = edited.rename(columns={**_EDITOR_FIELDS, qty_label: "quantity"}).to_dict("records")
    lots, problems = lots_from_rows(rows, asset_class)
    for message in problems:
        st.warning(f"{title}: {message}")
    return lots


def sales_form(scenario: Scenario, lots: Tuple[Holding, ...], asset_class: AssetClass) -> Dict[str, float]:
    """Quantity to sell per lot in the active scenario, capped at the quantity owned."""
    _, qty_label = ASSET_LABELS[asset_class]
    current = {e.name: e.quantity for e in scenario.sales(asset_class)}
    values = {}
    for lot in lots:
        values[lot.name] = st.number_input(
            f"{lot.name}: {qty_label.lower()} to sell (own {lot.quantity:,.4g})",
            min_value=0.0, max_value=float(lot.quantity),
            value=min(current.get(lot.name, 0.0), float(lot.quantity)),
            key=f"sale_{scenario.id}_{asset_class.value}_{lot.name}",
        )
    return values
