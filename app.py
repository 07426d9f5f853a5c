# app.py
import logging

import streamlit as st

from withdrawal_planner import holdings as holding_ops
from withdrawal_planner import prices, storage
from withdrawal_planner.calculators import compare, scenario as evaluator, taxes
from withdrawal_planner.components.charts import (
    bracket_chart,
    comparison_chart,
    income_stack_chart,
    irmaa_chart,
)
from withdrawal_planner.components.forms import (
    ASSET_LABELS,
    WIDGET_KEYS,
    balances_form,
    holdings_editor,
    personal_info_form,
    sales_form,
    withdrawals_form,
)
from withdrawal_planner.components.insights import generate_insights
from withdrawal_planner.models import AssetClass, Holdings
from withdrawal_planner.scenarios import MAX_SCENARIOS, ScenarioError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# ---------- Page config ----------
st.set_page_config(
    page_title="Retirement Withdrawal Tax Planner",
    layout="wide",
    initial_sidebar_state="auto",
)

st.markdown(
    """
<style>
.block-container { padding: 1.5rem 2rem; max-width: 1400px; margin: auto; }
div[data-testid="stMetric"] {
    background: #FFFFFF; border-radius: 12px; padding: 1rem;
    box-shadow: 0 2px 8px rgba(0,0,0,0.05); border: 1px solid #E5E7EB;
}
div.stPlotlyChart {
    background: #FFFFFF; border-radius: 12px; padding: 0.75rem; border: 1px solid #E5E7EB;
}
</style>
""",
    unsafe_allow_html=True,
)

STORE = storage.JsonFileStore()
TABLES = taxes.tax_year()

# ---------- Session boot ----------
if "planner" not in st.session_state:
    st.session_state["planner"] = storage.load_state(STORE) or storage.default_state()
st.session_state.setdefault("status", "")
st.session_state.setdefault("export_json", None)

state: storage.PlannerState = st.session_state["planner"]
book = state.book


def _reset_widgets():
    """Drop widget values so the forms re-read the freshly loaded state."""
    for key in list(st.session_state.keys()):
        if key in WIDGET_KEYS.values() or key.startswith(("wd_", "sale_", "holdings_")):
            del st.session_state[key]


def _replace_state(new_state: storage.PlannerState, message: str):
    st.session_state["planner"] = new_state
    st.session_state["status"] = message
    _reset_widgets()
    st.rerun()


# ---------- Header bar ----------
st.markdown(
    f"""
    ### **{TABLES.year} Retirement Withdrawal Tax Planner**
    _Plan withdrawals to manage federal and {TABLES.state} tax, capital gains and Medicare IRMAA.
    For educational purposes only; consult a tax professional for personalised advice._
    """
)
if st.session_state["status"]:
    st.success(st.session_state["status"])
    st.session_state["status"] = ""

# ====== SIDEBAR: INPUTS ======
state.personal_info = personal_info_form(state.personal_info)
state.balances = balances_form(state.balances)

st.sidebar.divider()
st.sidebar.header("Save / Load")
c1, c2 = st.sidebar.columns(2)
with c1:
    if st.button("Save data"):
        if storage.save_state(STORE, state):
            st.sidebar.success("Saved successfully!")
        else:
            st.sidebar.error("Error saving data")
with c2:
    if st.button("Reset"):
        storage.clear_state(STORE)
        _replace_state(storage.default_state(), "Reset to default values!")

include_key = st.sidebar.checkbox(
    "Include API key in export", value=False,
    help="Exports leave your Alpha Vantage key out unless this is ticked.",
)
if st.sidebar.button("Export JSON"):
    st.session_state["export_json"] = storage.export_state(state, include_api_key=include_key)
if st.session_state.get("export_json"):
    st.sidebar.download_button(
        "⬇️ Download JSON",
        data=st.session_state["export_json"],
        file_name=storage.export_filename(),
        mime="application/json",
    )

uploaded = st.sidebar.file_uploader("Import plan JSON", type="json")
if uploaded and st.session_state.get("imported_name") != uploaded.name:
    try:
        imported = storage.import_state(uploaded.getvalue())
    except storage.StorageError as e:
        st.sidebar.error(f"Error importing data: {e}")
    else:
        st.session_state["imported_name"] = uploaded.name
        _replace_state(imported, "Data imported successfully!")

st.sidebar.divider()
st.sidebar.header("Price Lookup")
state.api_key = st.sidebar.text_input(
    "Alpha Vantage API key (optional)", value=state.api_key, type="password",
    key=WIDGET_KEYS["api_key"],
    help="Used only as the last price source. Saved locally with your data.",
)

# ====== SCENARIOS ======
st.header("Withdrawal Scenarios")
ids = [s.id for s in book]
sc1, sc2, sc3, sc4 = st.columns([3, 3, 1, 1])
with sc1:
    chosen = st.selectbox(
        "Active scenario", ids, index=ids.index(book.active_id),
        format_func=lambda i: book.get(i).name,
    )
    if chosen != book.active_id:
        book.switch(chosen)
        st.rerun()
with sc2:
    new_name = st.text_input("Scenario name", value=book.active.name, key=f"name_{book.active_id}")
    if new_name.strip() and new_name != book.active.name:
        book.rename(book.active_id, new_name.strip())
with sc3:
    st.write("")
    if st.button("➕ Add", disabled=book.is_full, help=f"Up to {MAX_SCENARIOS} scenarios"):
        book.add()
        st.rerun()
with sc4:
    st.write("")
    if st.button("✖ Delete", disabled=len(book) == 1):
        try:
            book.remove(book.active_id)
        except ScenarioError as e:
            st.error(str(e))
        st.rerun()

active = book.active
st.subheader("Account withdrawals")
for account, amount in withdrawals_form(active, state.balances).items():
    book.set_withdrawal(active.id, account, amount)

# ====== HOLDINGS & SALES ======
tabs = st.tabs([ASSET_LABELS[c][0] for c in AssetClass])
new_lots = {}
for tab, asset_class in zip(tabs, AssetClass):
    with tab:
        before = state.holdings.lots(asset_class)
        lots = holdings_editor(before, asset_class)
        if len(lots) == len(before):
            for old, new in zip(before, lots):
                if old.name != new.name:
                    book.rename_sales(asset_class, old.name, new.name)
        # sale entries for lots that disappeared would never resolve again
        kept = {lot.name for lot in lots}
        for lot in before:
            if lot.name not in kept:
                book.drop_sales(asset_class, lot.name)
        new_lots[asset_class] = lots

        if asset_class is AssetClass.STOCK and lots and st.button("Refresh stock prices"):
            with st.spinner("Fetching current prices..."):
                refreshed = prices.refresh_prices(lots, prices.default_providers(state.api_key))
            new_lots[asset_class] = refreshed.lots
            st.session_state.pop("holdings_stock", None)
            st.info(refreshed.summary())

        if lots:
            st.caption(
                f"Value ${holding_ops.portfolio_value(lots):,.0f} · "
                f"unrealized gain ${holding_ops.unrealized_gain(lots):,.0f}"
            )
            for name, qty in sales_form(book.active, new_lots[asset_class], asset_class).items():
                book.set_sale(book.active_id, asset_class, name, qty)

state.holdings = Holdings(
    stocks=new_lots[AssetClass.STOCK],
    crypto=new_lots[AssetClass.CRYPTO],
    metals=new_lots[AssetClass.METAL],
)

# ====== RESULTS ======
result = evaluator.evaluate(book.active, state.personal_info, state.balances, state.holdings, TABLES)

st.divider()
st.header(f"Results: {book.active.name}")
m1, m2, m3, m4 = st.columns(4)
m1.metric("Federal tax", f"${result.total_tax:,.0f}", f"{result.effective_rate:.2f}% effective", delta_color="off")
m2.metric(f"{TABLES.state} state tax", f"${result.state_total_tax:,.0f}")
m3.metric("IRMAA (annual)", f"${result.irmaa_annual_cost:,.0f}", result.irmaa_tier.label, delta_color="off")
m4.metric("Total cost", f"${result.total_cost:,.0f}",
          f"{result.effective_rate_with_state:.2f}% with state", delta_color="off")

d1, d2 = st.columns(2)
with d1:
    st.markdown("**Income**")
    st.table({
        "Item": ["Employment", "Pension", "Traditional withdrawals", "Ordinary income",
                 "Standard deduction", "Taxable ordinary income", "Capital gains & qualified dividends",
                 "Tax-free withdrawals"],
        "Amount": [f"${v:,.0f}" for v in (
            result.employment_income, result.pension_income,
            result.traditional_withdrawals,
            result.ordinary_income, result.standard_deduction, result.taxable_ordinary_income,
            result.preferential_income, result.tax_free_withdrawals,
        )],
    })
with d2:
    st.markdown("**Tax**")
    st.table({
        "Item": ["Ordinary income tax", f"Capital gains tax ({TABLES.preferential_rate:.0%})",
                 "State tax on ordinary income", "State tax on gains", "Total with state"],
        "Amount": [f"${v:,.0f}" for v in (
            result.ordinary_tax, result.preferential_tax, result.state_ordinary_tax,
            result.state_preferential_tax, result.total_tax_with_state,
        )],
    })

c1, c2 = st.columns(2)
with c1:
    st.plotly_chart(income_stack_chart(result), use_container_width=True)
with c2:
    st.plotly_chart(
        bracket_chart(result.taxable_ordinary_income, TABLES.brackets(state.personal_info.filing_status)),
        use_container_width=True,
    )
    st.caption(f"{result.current_bracket.rate:.0%} bracket, ${result.room_in_bracket:,.0f} of room left.")

st.plotly_chart(
    irmaa_chart(result.magi, TABLES.irmaa(state.personal_info.filing_status)),
    use_container_width=True,
)

st.subheader("Planning Notes")
for note in generate_insights(result):
    st.info(note)

# ====== COMPARISON ======
if len(book) > 1:
    st.divider()
    st.header("Scenario Comparison")
    pairs = evaluator.evaluate_all(book, state.personal_info, state.balances, state.holdings, TABLES)
    table = compare.comparison_table(pairs)
    st.dataframe(table.style.format("{:,.2f}"), use_container_width=True)
    st.plotly_chart(comparison_chart(pairs), use_container_width=True)
    best = compare.cheapest_scenario(pairs)
    st.caption(f"Lowest total cost: **{best.name}**.")
