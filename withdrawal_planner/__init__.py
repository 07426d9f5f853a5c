"""Retirement withdrawal tax planner.

Estimates one tax year's federal and state tax, capital-gains treatment and
Medicare IRMAA tier for up to five withdrawal scenarios.

* ``models`` – immutable inputs and results.
* ``calculators`` – the pure bracket engine and scenario evaluator.
* ``scenarios`` – the scenario book (add, remove, rename, switch, edit).
* ``holdings`` – editing helpers for stock, crypto and metal lots.
* ``storage`` – local persistence plus JSON export and import.
* ``prices`` – optional current-price lookup across quote providers.
* ``components`` – Streamlit forms, Plotly charts and planning notes.
"""

__version__ = "0.1.0"
