"""
Kernel density estimation for display curves.

Turns raw scalar samples into a smooth (x, density) curve whose support is
extended outward until the density fades, and inserts exact threshold
crossings into a curve for partial-fill rendering.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

DensityCurve = List[Tuple[float, float]]

DEFAULT_RESOLUTION = 50
DEFAULT_THRESHOLD = 0.001


def silverman_bandwidth(samples: Sequence[float]) -> float:
    """Silverman's rule of thumb: 0.9 * sd * n^(-1/5).

    Returns 0.0 when fewer than two samples are available.
    """
    values = np.asarray(samples, dtype="float64")
    if values.size < 2:
        return 0.0
    return float(0.9 * values.std(ddof=1) * values.size ** (-1 / 5))


def _kernel(values: np.ndarray, bandwidth: float):
    n = values.size

    def density(x: float) -> float:
        return float(stats.norm.pdf((x - values) / bandwidth).sum() / (n * bandwidth))

    return density


def estimate(
    samples: Sequence[float],
    resolution: int = DEFAULT_RESOLUTION,
    threshold: float = DEFAULT_THRESHOLD,
) -> DensityCurve:
    """
    Gaussian KDE evaluated on a grid that grows outward from the sample extent.

    Args:
        samples: Raw scalar values; non-finite entries are ignored
        resolution: Number of grid steps spanning the sample extent
        threshold: Density below which a tail stops growing

    Returns:
        Points sorted by x; empty for fewer than two samples or zero variance
    """
    if resolution <= 0:
        raise ValueError("resolution must be positive")

    values = np.asarray(samples, dtype="float64")
    values = values[np.isfinite(values)]
    bandwidth = silverman_bandwidth(values)
    if bandwidth <= 0 or not np.isfinite(bandwidth):
        return []

    low, high = float(values.min()), float(values.max())
    step = (high - low) / resolution
    density = _kernel(values, bandwidth)

    # Interior of the extent, inclusive of both ends
    points = [(low + step * i, density(low + step * i)) for i in range(resolution + 1)]

    # Each tail grows independently and keeps the first point under the threshold
    left: DensityCurve = []
    for i in range(1, resolution + 1):
        x = low - step * i
        value = density(x)
        left.append((x, value))
        if value < threshold:
            break

    right: DensityCurve = []
    for i in range(1, resolution + 1):
        x = high + step * i
        value = density(x)
        right.append((x, value))
        if value < threshold:
            break

    return left[::-1] + points + right


def interpolate(curve: DensityCurve, xs: Sequence[float]) -> DensityCurve:
    """
    Insert linearly interpolated points at each query x.

    Queries outside the curve's domain get a NaN density instead of being
    extrapolated. The result holds the original and inserted points sorted by x.
    """
    result = list(curve)
    for x in xs:
        if x is None:
            continue
        result.append((x, _interpolate_one(curve, x)))
    return sorted(result, key=lambda point: point[0])


def _interpolate_one(curve: DensityCurve, x: float) -> float:
    if not curve or x < curve[0][0] or x > curve[-1][0]:
        return float("nan")

    i = 1
    while i < len(curve) and curve[i][0] < x:
        i += 1
    if i == len(curve):
        # x equals the last point
        return curve[-1][1]

    x0, y0 = curve[i - 1]
    x1, y1 = curve[i]
    if x1 == x:
        return y1
    return y0 + (x - x0) * (y1 - y0) / (x1 - x0)


def scale_curve(curve: DensityCurve, factor: float) -> DensityCurve:
    """Multiply every x by ``factor``; a negative factor mirrors the curve."""
    return sorted(((x * factor, y) for x, y in curve), key=lambda point: point[0])


def curve_extent(curve: DensityCurve) -> Optional[Tuple[float, float]]:
    if not curve:
        return None
    xs = [x for x, _ in curve]
    return min(xs), max(xs)


def split_at_cutoffs(
    curve: DensityCurve, lower: float, upper: float
) -> Tuple[DensityCurve, DensityCurve, DensityCurve]:
    """
    Insert both cutoffs into ``curve`` and cut out the two tails.

    Returns:
        (full curve with crossings, points at or below the lower cutoff,
        points at or above the upper cutoff)
    """
    low, high = sorted((lower, upper))
    full = interpolate(curve, [low, high])
    below = [p for p in full if p[0] <= low and not np.isnan(p[1])]
    above = [p for p in full if p[0] >= high and not np.isnan(p[1])]
    return full, below, above
