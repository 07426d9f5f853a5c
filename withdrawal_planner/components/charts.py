# components/charts.py
# Plotly chart helpers used across the app.
# All functions return a Plotly Figure that Streamlit can display with st.plotly_chart(...).

from typing import Iterable, List, Sequence, Tuple

import numpy as np
import plotly.graph_objects as go
import plotly.io as pio

from ..models import Scenario, ScenarioResult

pio.templates.default = "plotly_white"

_LAYOUT = dict(template="plotly_white", margin=dict(l=10, r=10, t=40, b=10))


def tier_fill(amount: float, tiers: Sequence) -> np.ndarray:
    """Dollars of ``amount`` that land in each tier."""
    lowers = np.array([t.lower for t in tiers], dtype=float)
    uppers = np.array([t.upper for t in tiers], dtype=float)
    return np.clip(amount - lowers, 0.0, uppers - lowers)


# ---------- Income stacking (waterfall) ----------
def income_stack_chart(result: ScenarioResult, title: str = "How Your Income Stacks") -> go.Figure:
    """Gross ordinary income, less the deduction, with preferential income on top."""
    deduction_used = result.ordinary_income - result.taxable_ordinary_income
    gains = result.preferential_income
    fig = go.Figure(go.Waterfall(
        x=["Ordinary income", "Standard deduction", "Taxable ordinary", "Capital gains & QD", "Total taxable"],
        measure=["absolute", "relative", "total", "relative", "total"],
        y=[result.ordinary_income, -deduction_used, 0, gains, 0],
        connector={"line": {"color": "#9ca3af"}},
        decreasing={"marker": {"color": "#f87171"}},
        increasing={"marker": {"color": "#34d399"}},
        totals={"marker": {"color": "#3b82f6"}},
        hovertemplate="%{x}<br>$%{y:,.0f}<extra></extra>",
    ))
    fig.update_layout(title=title, height=380, yaxis_title="Dollars", showlegend=False, **_LAYOUT)
    return fig


# ---------- Bracket fill ----------
def bracket_chart(amount: float, tiers: Sequence, title: str = "Ordinary Income Brackets") -> go.Figure:
    """Horizontal bars: how much of each bracket the taxable amount uses."""
    filled = tier_fill(amount, tiers)
    labels = [f"{t.rate * 100:.0f}%" for t in tiers]
    # the unbounded top bracket is drawn as wide as whatever sits in it
    widths = [t.upper - t.lower if np.isfinite(t.upper) else f for t, f in zip(tiers, filled)]
    remaining = np.maximum(np.array(widths, dtype=float) - filled, 0.0)

    fig = go.Figure()
    fig.add_bar(y=labels, x=filled, orientation="h", name="Used",
                hovertemplate="%{y}<br>$%{x:,.0f} used<extra></extra>")
    fig.add_bar(y=labels, x=remaining, orientation="h", name="Room left",
                marker_color="#e5e7eb",
                hovertemplate="%{y}<br>$%{x:,.0f} left<extra></extra>")
    fig.update_layout(
        barmode="stack", title=title, height=320, xaxis_title="Dollars",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        **_LAYOUT,
    )
    return fig


# ---------- IRMAA tiers ----------
def irmaa_chart(magi: float, tiers: Sequence, title: str = "IRMAA Tiers") -> go.Figure:
    """Annual surcharge per tier, with the tier containing ``magi`` highlighted."""
    labels = [t.label for t in tiers]
    annual = [t.annual_cost for t in tiers]
    colors = ["#f59e0b" if t.lower <= magi < t.upper else "#cbd5e1" for t in tiers]
    if magi >= tiers[-1].upper:
        colors[-1] = "#f59e0b"
    fig = go.Figure(go.Bar(
        x=labels, y=annual, marker_color=colors,
        hovertemplate="%{x}<br>$%{y:,.0f} per year<extra></extra>",
    ))
    fig.update_layout(title=title, height=300, yaxis_title="Annual surcharge", **_LAYOUT)
    return fig


# ---------- Scenario comparison (stacked bars) ----------
def comparison_chart(pairs: Iterable[Tuple[Scenario, ScenarioResult]],
                     title: str = "Total Cost by Scenario") -> go.Figure:
    """Federal, state and IRMAA cost stacked per scenario."""
    pairs = list(pairs)
    names: List[str] = [s.name for s, _ in pairs]
    fig = go.Figure()
    fig.add_bar(x=names, y=[r.total_tax for _, r in pairs], name="Federal")
    fig.add_bar(x=names, y=[r.state_total_tax for _, r in pairs], name="State")
    fig.add_bar(x=names, y=[r.irmaa_annual_cost for _, r in pairs], name="IRMAA")
    fig.update_layout(
        barmode="stack", title=title, height=380, yaxis_title="Dollars",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        **_LAYOUT,
    )
    return fig
