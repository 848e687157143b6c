from __future__ import annotations

from konto_sim_lab.config.tax import (
    CAPITAL_GAINS_RATE,
    NOTIONAL_RATE_FLOOR,
    NOTIONAL_RATE_MARKUP,
    NOTIONAL_TAX_RATE,
)


def effective_annual_tax_rate(
    reference_rate: float,
    *,
    markup: float = NOTIONAL_RATE_MARKUP,
    floor: float = NOTIONAL_RATE_FLOOR,
    base_rate: float = NOTIONAL_TAX_RATE,
) -> float:
    """
    Avkastningsskatt as a fraction of the account value for one year.

    The notional return is the reference rate (percent) plus a markup, never
    below the floor; the tax is `base_rate` of that notional return:
        0.01 * max(reference_rate + 1.0, 1.25) * 0.30
    """
    return 0.01 * max(reference_rate + markup, floor) * base_rate


def capital_gains_after_tax(multiplier: float, rate: float = CAPITAL_GAINS_RATE) -> float:
    """
    Aktiekonto value after selling: tax `rate` on the net gain only.
    Ending_after_tax = m - max((m - 1) * rate, 0)
    A loss (m <= 1) is not taxed.
    """
    return multiplier - max((multiplier - 1.0) * rate, 0.0)
