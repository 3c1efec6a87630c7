"""Order statistics helpers: clamp, quantile, winsorization. Standard library only."""

from collections.abc import Sequence


def clamp(value: float, min_value: float, max_value: float) -> float:
    if value < min_value:
        return min_value
    if value > max_value:
        return max_value
    return value


def quantile(sorted_values: Sequence[float], q: float) -> float:
    """
    Quantile of an ascending sequence by linear interpolation between closest ranks.

    - position = (n - 1) * q, interpolated between floor and ceil positions.
    - Empty input returns 0; q <= 0 returns the first value, q >= 1 the last.
    - The input is not sorted here; callers pass sorted data.

    quantile([1, 2, 3, 4], 0.5) == 2.5
    """
    n = len(sorted_values)
    if n == 0:
        return 0
    if q <= 0:
        return sorted_values[0]
    if q >= 1:
        return sorted_values[n - 1]

    position = (n - 1) * q
    lower_index = int(position)
    upper_index = lower_index if position == lower_index else lower_index + 1
    weight = position - lower_index
    lower = sorted_values[lower_index]
    upper = sorted_values[upper_index]
    return lower + (upper - lower) * weight


def winsorize(values: Sequence[float], lower_q: float, upper_q: float) -> list[float]:
    """
    Clamp every value into [quantile(lower_q), quantile(upper_q)] of the sample.

    Bounds come from a sorted copy; the result keeps the original order and length
    and the input sequence is left untouched.
    """
    ordered = sorted(values)
    lower_bound = quantile(ordered, lower_q)
    upper_bound = quantile(ordered, upper_q)
    return [clamp(v, lower_bound, upper_bound) for v in values]
