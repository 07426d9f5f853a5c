"""Expose component submodules for convenience."""

from .charts import bracket_chart, comparison_chart, income_stack_chart, irmaa_chart
from .insights import generate_insights

__all__ = [
    "bracket_chart",
    "comparison_chart",
    "income_stack_chart",
    "irmaa_chart",
    "generate_insights",
]
