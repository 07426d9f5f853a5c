"""Pure tax calculators.

The `calculators` package holds the parts of the planner that do arithmetic
and nothing else:

* ``brackets`` – progressive tax accumulation and tier lookup.
* ``taxes`` – loading the versioned bracket, deduction and IRMAA tables.
* ``scenario`` – evaluating one withdrawal scenario into a full tax breakdown.
* ``compare`` – side-by-side comparison of evaluated scenarios.

None of these modules perform I/O beyond reading the bundled tax tables.
"""

from . import brackets, taxes, scenario, compare  # noqa: F401

__all__ = ["brackets", "taxes", "scenario", "compare"]
