"""18-decimal fixed-point exp/ln for the LMSR engine.

All inputs and outputs are WAD ints (1.0 == 10**18). Series are evaluated at
36 digits (``_EXT``) and rounded back to WAD, so the absolute error of both
``exp_wad`` and ``ln_wad`` is at most 2 WAD units across the supported range.

exp: Taylor series on |x|, reciprocal for negative x. Input clamped to
     [-20, 20]; above the range returns ``EXP_MAX_WAD`` (e^20), below it
     returns 1 (the smallest positive unit, never zero).
ln:  normalise y into [1, 2) by halving/doubling, counting powers of two,
     then ln(y) = k*ln2 + 2*atanh((y-1)/(y+1)).
"""

from src.pm_common.errors import ArithmeticOverflowError
from src.pm_common.wad import WAD

_EXT = 10**36
_RATIO = _EXT // WAD

EXP_INPUT_BOUND = 20 * WAD


def _atanh_ext(z: int) -> int:
    """atanh(z) for 0 <= z < 1 at 36 digits: z + z^3/3 + z^5/5 + ..."""
    z2 = z * z // _EXT
    total = z
    term = z
    n = 1
    while term:
        term = term * z2 // _EXT
        n += 2
        total += term // n
    return total


def _exp_ext(x: int) -> int:
    """e^x for 0 <= x (36-digit scale) by plain Taylor expansion."""
    total = _EXT
    term = _EXT
    k = 1
    while term:
        term = term * x // (k * _EXT)
        total += term
        k += 1
    return total


_LN2_EXT = 2 * _atanh_ext(_EXT // 3)

LN2_WAD = (_LN2_EXT + _RATIO // 2) // _RATIO
EXP_MAX_WAD = _exp_ext(EXP_INPUT_BOUND * _RATIO) // _RATIO


def exp_wad(x: int) -> int:
    """e^x in WAD. Never returns 0."""
    if x > EXP_INPUT_BOUND:
        return EXP_MAX_WAD
    if x < -EXP_INPUT_BOUND:
        return 1
    if x >= 0:
        return _exp_ext(x * _RATIO) // _RATIO
    positive = _exp_ext(-x * _RATIO)
    return max(1, (_EXT * _EXT // positive) // _RATIO)


def ln_wad(y: int) -> int:
    """ln(y) in WAD for y > 0."""
    if y <= 0:
        raise ArithmeticOverflowError(f"ln undefined for non-positive input {y}")
    value = y * _RATIO
    k = 0
    while value >= 2 * _EXT:
        value //= 2
        k += 1
    while value < _EXT:
        value *= 2
        k -= 1
    z = (value - _EXT) * _EXT // (value + _EXT)
    result = k * _LN2_EXT + 2 * _atanh_ext(z)
    # round half away from zero
    if result >= 0:
        return (result + _RATIO // 2) // _RATIO
    return -((-result + _RATIO // 2) // _RATIO)


def mul_wad(a: int, b: int) -> int:
    return a * b // WAD


def div_wad(a: int, b: int) -> int:
    if b == 0:
        raise ArithmeticOverflowError("division by zero in fixed-point math")
    return a * WAD // b
