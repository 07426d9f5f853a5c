from typing import List

from ..models import ScenarioResult

# MAGI within this distance of the next IRMAA tier gets a warning
IRMAA_WARNING_MARGIN = 10000.0


def generate_insights(result: ScenarioResult) -> List[str]:
    """Return short planning notes for one evaluated scenario.

    Rule-based: bracket headroom, IRMAA proximity, and how capital losses and
    tax-free withdrawals are being used.
    """
    notes: List[str] = []

    bracket = result.current_bracket
    rate_pct = bracket.rate * 100
    if result.room_in_bracket > 0 and result.room_in_bracket != float("inf"):
        notes.append(
            f"You are in the {rate_pct:.0f}% bracket with ${result.room_in_bracket:,.0f} "
            "of room before the next bracket; traditional withdrawals up to that amount "
            "are taxed at the same rate."
        )
    else:
        notes.append(f"You are in the top {rate_pct:.0f}% bracket.")

    tier = result.irmaa_tier
    if tier.annual_cost == 0 and result.room_to_next_irmaa_tier <= IRMAA_WARNING_MARGIN:
        notes.append(
            f"IRMAA warning: only ${result.room_to_next_irmaa_tier:,.0f} of MAGI headroom "
            "before Medicare surcharges begin."
        )
    elif tier.annual_cost > 0:
        notes.append(
            f"IRMAA {tier.label} adds ${tier.annual_cost:,.0f} a year in Medicare premiums. "
            f"Lowering MAGI by more than ${result.room_below_irmaa_tier:,.0f} would drop a tier."
        )
        if result.room_to_next_irmaa_tier <= IRMAA_WARNING_MARGIN and result.room_to_next_irmaa_tier > 0:
            notes.append(
                f"IRMAA warning: ${result.room_to_next_irmaa_tier:,.0f} more MAGI reaches the next tier."
            )

    if result.preferential_income < 0:
        notes.append(
            f"Net capital losses of ${-result.preferential_income:,.0f} are not refunded; "
            "consider realizing gains elsewhere to use them."
        )

    if result.tax_free_withdrawals > 0:
        notes.append(
            f"${result.tax_free_withdrawals:,.0f} comes from Roth and savings accounts and "
            "adds nothing to taxable income or MAGI."
        )
    return notes
