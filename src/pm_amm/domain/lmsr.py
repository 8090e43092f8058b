"""Binary Logarithmic Market Scoring Rule on WAD integers.

Key formulas:
    Cost function:  C(qYes, qNo) = m + b * ln(exp((qYes - m)/b) + exp((qNo - m)/b)),
                    m = max(qYes, qNo)
    Price:          p_s = 1 / (1 + exp((q_other - q_s) / b))
    Trade cost:     payment = C(q_after) - C(q_before)
"""

from collections.abc import Callable

from src.pm_amm.domain.fixed_point import div_wad, exp_wad, ln_wad, mul_wad
from src.pm_common.enums import Outcome
from src.pm_common.errors import ArithmeticOverflowError
from src.pm_common.wad import WAD


def _check_b(b: int) -> None:
    if b <= 0:
        raise ArithmeticOverflowError(f"Liquidity parameter b must be positive, got {b}")


def cost(q_yes: int, q_no: int, b: int) -> int:
    """LMSR cost function with the max factored out before exponentiating."""
    _check_b(b)
    m = max(q_yes, q_no)
    total = exp_wad(div_wad(q_yes - m, b)) + exp_wad(div_wad(q_no - m, b))
    return m + mul_wad(b, ln_wad(total))


def price(q_side: int, q_other: int, b: int) -> int:
    """Instantaneous price of one outcome, strictly inside (0, WAD)."""
    _check_b(b)
    return WAD * WAD // (WAD + exp_wad(div_wad(q_other - q_side, b)))


def prices(q_yes: int, q_no: int, b: int) -> tuple[int, int]:
    return price(q_yes, q_no, b), price(q_no, q_yes, b)


def shifted(q_yes: int, q_no: int, outcome: Outcome, delta: int) -> tuple[int, int]:
    """Outstanding quantities after moving ``outcome`` by ``delta``."""
    if outcome is Outcome.YES:
        return q_yes + delta, q_no
    return q_yes, q_no + delta


def trade_cost(q_yes: int, q_no: int, b: int, outcome: Outcome, delta: int) -> int:
    """C(after) - C(before); positive for buys, negative for sells."""
    new_yes, new_no = shifted(q_yes, q_no, outcome, delta)
    return cost(new_yes, new_no, b) - cost(q_yes, q_no, b)


def search_max_quantity(charge: Callable[[int], int], budget: int, upper: int) -> int:
    """Largest quantity in [0, upper] whose charge fits the budget.

    ``charge`` must be non-decreasing in quantity.
    """
    if upper <= 0 or charge(0) > budget:
        return 0
    if charge(upper) <= budget:
        return upper
    lo, hi = 0, upper
    while hi - lo > 1:
        mid = (lo + hi) // 2
        if charge(mid) <= budget:
            lo = mid
        else:
            hi = mid
    return lo
