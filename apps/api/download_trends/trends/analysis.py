"""
Explainable trend analysis for download-count series.

Descriptive statistics, an outlier-robust linear fit and a qualitative reading
(volatility, trend) of one series. Pure functions; no I/O, no shared state.
"""

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Any, Literal

import numpy as np

from download_trends.trends.stats import winsorize

Volatility = Literal["very_stable", "moderate", "volatile", "undefined"]
Trend = Literal["strong", "weak", "none", "undefined"]

# Winsorized regression only kicks in for series with at least this many points;
# on short series the percentile bounds fall inside the true min/max and bend exact lines.
WINSORIZE_MIN_POINTS = 20
WINSORIZE_LOWER_Q = 0.05
WINSORIZE_UPPER_Q = 0.95

# Coefficient of variation bands.
VERY_STABLE_MAX_CV = 0.1
MODERATE_MAX_CV = 0.25

# r² bands for the base trend.
STRONG_MIN_R_SQUARED = 0.75
WEAK_MIN_R_SQUARED = 0.4

# |slope| / mean needed to upgrade none -> weak and weak -> strong.
WEAK_UPGRADE_RELATIVE_SLOPE = 0.03
STRONG_UPGRADE_RELATIVE_SLOPE = 0.06


@dataclass(frozen=True)
class Interpretation:
    volatility: Volatility
    trend: Trend


@dataclass(frozen=True)
class TrendAnalysis:
    """
    Statistics and interpretation of one series.

    - mean: arithmetic mean of the present values
    - standard_deviation: population standard deviation (divides by n)
    - coefficient_of_variation: standard_deviation / mean, None when mean is 0
    - slope: change per time step of the least-squares line
    - r_squared: consistency of the linear fit in [0, 1], None for flat series
    """

    mean: float
    standard_deviation: float
    coefficient_of_variation: float | None
    slope: float
    r_squared: float | None
    interpretation: Interpretation

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class LineFit:
    slope: float
    intercept: float
    r_squared: float | None


def indexed_values(series: Sequence[float | None]) -> list[tuple[int, float]]:
    """(original_index, value) for every present entry. Gaps keep their place on the time axis."""
    out: list[tuple[int, float]] = []
    for i, v in enumerate(series):
        if v is None or not math.isfinite(v):
            continue
        out.append((i, float(v)))
    return out


def _all_finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def _power_of_two_scale(values: np.ndarray) -> float:
    """Largest power of two not above max |v| (1 for an all-zero array). Dividing by it is exact."""
    peak = float(np.max(np.abs(values)))
    if peak == 0:
        return 1.0
    return math.ldexp(1.0, math.frexp(peak)[1] - 1)


def fit_line(xs: Sequence[float], ys: Sequence[float]) -> LineFit:
    """
    Ordinary least squares of y on x from the closed-form sums.

    slope = (nΣxy - ΣxΣy) / (nΣx² - (Σx)²). A zero denominator gives slope 0 and no r².
    r² is None when the total sum of squares is 0. Sums that overflow float64
    give the same degenerate fit as a zero denominator.
    """
    n = len(xs)
    if n == 0:
        return LineFit(slope=0.0, intercept=0.0, r_squared=None)

    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    with np.errstate(over="ignore", invalid="ignore"):
        sum_x = float(x.sum())
        sum_y = float(y.sum())
        sum_xy = float(np.dot(x, y))
        sum_xx = float(np.dot(x, x))
        denominator = n * sum_xx - sum_x * sum_x

        if not _all_finite(sum_x, sum_y, sum_xy, sum_xx, denominator):
            return LineFit(slope=0.0, intercept=0.0, r_squared=None)
        if denominator == 0:
            return LineFit(slope=0.0, intercept=sum_y / n, r_squared=None)

        slope = (n * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / n

        mean_y = sum_y / n
        deviations = y - mean_y
        ss_total = float(np.dot(deviations, deviations))
        residuals = y - (slope * x + intercept)
        ss_residual = float(np.dot(residuals, residuals))

    if not _all_finite(slope, intercept, ss_total, ss_residual):
        return LineFit(slope=0.0, intercept=0.0, r_squared=None)

    r_squared = None if ss_total == 0 else 1 - ss_residual / ss_total
    return LineFit(slope=slope, intercept=intercept, r_squared=r_squared)


def classify_volatility(coefficient_of_variation: float | None) -> Volatility:
    if coefficient_of_variation is None:
        return "undefined"
    if coefficient_of_variation < VERY_STABLE_MAX_CV:
        return "very_stable"
    if coefficient_of_variation < MODERATE_MAX_CV:
        return "moderate"
    return "volatile"


def classify_trend(
    standard_deviation: float,
    r_squared: float | None,
    relative_slope: float,
) -> Trend:
    """
    Base class from r², then at most one step up from the relative slope.

    none -> weak at >= 0.03, weak -> strong at >= 0.06; strong is never downgraded.
    """
    if standard_deviation == 0:
        return "none"
    if r_squared is None:
        return "undefined"

    if r_squared > STRONG_MIN_R_SQUARED:
        return "strong"
    if r_squared > WEAK_MIN_R_SQUARED:
        if relative_slope >= STRONG_UPGRADE_RELATIVE_SLOPE:
            return "strong"
        return "weak"
    if relative_slope >= WEAK_UPGRADE_RELATIVE_SLOPE:
        return "weak"
    return "none"


def _empty_analysis() -> TrendAnalysis:
    return TrendAnalysis(
        mean=0.0,
        standard_deviation=0.0,
        coefficient_of_variation=None,
        slope=0.0,
        r_squared=None,
        interpretation=Interpretation(volatility="undefined", trend="undefined"),
    )


def compute_trend_analysis(series: Sequence[float | None]) -> TrendAnalysis:
    """
    Compute statistics and a qualitative reading of a time-ordered series.

    - series: values per time step; None marks a step with no data (not zero).
    - Regression x is the original position, so gaps do not shift time.
    - With >= 20 present values the regression runs on values winsorized to the
      5th-95th percentile; shorter series use raw values.

    Never raises: empty, all-None, all-zero and single-value inputs all produce a
    complete TrendAnalysis.
    """
    points = indexed_values(series)
    n = len(points)

    if n == 0:
        return _empty_analysis()

    if n == 1:
        return TrendAnalysis(
            mean=points[0][1],
            standard_deviation=0.0,
            coefficient_of_variation=None,
            slope=0.0,
            r_squared=None,
            interpretation=Interpretation(volatility="very_stable", trend="none"),
        )

    xs = [float(i) for i, _ in points]
    y = np.asarray([v for _, v in points], dtype=np.float64)

    # Work on y / 2^k with every |value| in [0, 2): sums cannot overflow and the
    # results scale back exactly. cv, r² and the relative slope are scale-free.
    scale = _power_of_two_scale(y)
    scaled = y / scale
    scaled_mean = float(scaled.mean())
    deviations = scaled - scaled_mean
    scaled_sd = math.sqrt(float(np.dot(deviations, deviations)) / n)

    mean = scaled_mean * scale
    standard_deviation = scaled_sd * scale
    coefficient_of_variation = None if scaled_mean == 0 else scaled_sd / scaled_mean
    if coefficient_of_variation is not None and not math.isfinite(coefficient_of_variation):
        coefficient_of_variation = None

    if n >= WINSORIZE_MIN_POINTS:
        fit_ys = np.asarray(winsorize(scaled.tolist(), WINSORIZE_LOWER_Q, WINSORIZE_UPPER_Q))
    else:
        fit_ys = scaled
    fit = fit_line(xs, fit_ys)

    robust_mean = float(fit_ys.mean())
    relative_slope = 0.0 if robust_mean == 0 else abs(fit.slope) / robust_mean
    if not math.isfinite(relative_slope):
        relative_slope = 0.0

    slope = fit.slope * scale
    r_squared = fit.r_squared
    if not math.isfinite(slope):
        slope, r_squared = 0.0, None

    return TrendAnalysis(
        mean=mean,
        standard_deviation=standard_deviation,
        coefficient_of_variation=coefficient_of_variation,
        slope=slope,
        r_squared=r_squared,
        interpretation=Interpretation(
            volatility=classify_volatility(coefficient_of_variation),
            trend=classify_trend(standard_deviation, r_squared, relative_slope),
        ),
    )
