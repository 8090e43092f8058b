"""Integer arithmetic utilities for 18-decimal fixed-point amounts.

All prices, quantities and collateral amounts are int WAD values
(1.0 == 10**18). No float anywhere in the engine.
"""

WAD = 10**18
BPS_DENOMINATOR = 10_000


def wad_to_display(amount: int, places: int = 4) -> str:
    """Convert WAD to display string: 1_500000000000000000 -> '1.5000'."""
    sign = "-" if amount < 0 else ""
    abs_amount = -amount if amount < 0 else amount
    whole, frac = divmod(abs_amount, WAD)
    frac_digits = str(frac).rjust(18, "0")[:places]
    if places == 0:
        return f"{sign}{whole:,}"
    return f"{sign}{whole:,}.{frac_digits}"


def calculate_fee(trade_value: int, fee_rate_bps: int) -> int:
    """Calculate fee with ceiling division (the pool never loses).

    fee = ceil(trade_value * fee_rate_bps / 10000)
    """
    if trade_value <= 0 or fee_rate_bps == 0:
        return 0
    return (trade_value * fee_rate_bps + BPS_DENOMINATOR - 1) // BPS_DENOMINATOR


def gap_bps(price_a: int, price_b: int) -> int:
    """Absolute difference between two WAD prices, in basis points (floored)."""
    return abs(price_a - price_b) * BPS_DENOMINATOR // WAD
