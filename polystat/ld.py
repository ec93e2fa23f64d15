#
# Copyright (C) 2023-2024 polystat developers
#
# This file is part of polystat.
#
# polystat is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# polystat is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with polystat.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Linkage disequilibrium between pairs of biallelic sites.

The statistics are computed on an :class:`.LDView` of an alignment, which
keeps the biallelic sites and recodes their major allele as 1 and their
minor allele as 0. Pairwise results are returned as numpy arrays ordered by
site pair, ``(0, 1), (0, 2), ..., (1, 2), ...``.
"""
from __future__ import annotations

import dataclasses
import logging
import math

import numpy as np

from . import core
from . import diversity
from . import exceptions

logger = logging.getLogger(__name__)

MISSING = -1


@dataclasses.dataclass(frozen=True)
class LDView:
    """
    The biallelic sites of an alignment.

    :ivar numpy.ndarray data: The ``(num_sequences, num_sites)`` array of
        recoded alleles: 1 for the major allele, 0 for the minor allele and
        -1 for an unresolved call or a gap.
    :ivar numpy.ndarray positions: The positions of the kept sites.
    :ivar numpy.ndarray sites: The indexes of the kept sites in the source
        alignment.
    :ivar numpy.ndarray gaps: The gap mask of the source alignment.
    """

    data: np.ndarray
    positions: np.ndarray
    sites: np.ndarray
    gaps: np.ndarray

    @property
    def num_sequences(self):
        return self.data.shape[0]

    @property
    def num_sites(self):
        return self.data.shape[1]

    def pairs(self):
        return np.triu_indices(self.num_sites, k=1)


def ld_view(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> LDView:
    """
    Returns the :class:`.LDView` of the specified alignment. A site is kept
    if it carries exactly two resolved states, is complete when ``gapflag``
    is True, has no singleton when ``keepsingleton`` is False, and has a
    minor allele frequency of at least ``freqmin``. When both alleles are
    equally frequent the one seen first is the major allele.

    :raises DimensionError: If the alignment holds fewer than 2 sequences.
    """
    gapflag = core._parse_flag(gapflag, default=True)
    keepsingleton = core._parse_flag(keepsingleton, default=True)
    freqmin = core._parse_frequency(freqmin, "freqmin")
    diversity._check_sequences(aln)
    columns = []
    kept = []
    for j in aln.site_indexes(gapflag):
        counts = aln.allele_counts(j, resolved_only=True)
        if len(counts) != 2:
            continue
        (major, _), (minor, num_minor) = counts.most_common(2)
        if not keepsingleton and num_minor == 1:
            continue
        if num_minor / sum(counts.values()) < freqmin:
            continue
        site = aln.site(j)
        column = np.full(aln.num_sequences, MISSING, dtype=np.int8)
        column[site == major] = 1
        column[site == minor] = 0
        columns.append(column)
        kept.append(j)
    logger.debug("Kept %d of %d sites for LD", len(kept), aln.num_sites)
    kept = np.array(kept, dtype=int)
    if len(columns) > 0:
        data = np.stack(columns, axis=1)
    else:
        data = np.zeros((aln.num_sequences, 0), dtype=np.int8)
    return LDView(
        data=data,
        positions=aln.positions[kept].copy(),
        sites=kept,
        gaps=aln.gaps.copy(),
    )


def _view(aln, gapflag, keepsingleton, freqmin):
    view = ld_view(
        aln, gapflag=gapflag, keepsingleton=keepsingleton, freqmin=freqmin
    )
    if view.num_sites < 2:
        raise exceptions.DimensionError("Too few LD sites", view.num_sites, 2)
    return view


def _pair_statistics(view):
    """
    Returns the arrays of D, D' and R^2 over all site pairs, with NaN where
    a statistic is undefined.
    """
    left, right = view.pairs()
    D = np.full(len(left), np.nan)
    D_prime = np.full(len(left), np.nan)
    r2 = np.full(len(left), np.nan)
    for k, (a, b) in enumerate(zip(left, right)):
        x = view.data[:, a]
        y = view.data[:, b]
        both = (x != MISSING) & (y != MISSING)
        if not np.any(both):
            continue
        x = x[both]
        y = y[both]
        p1 = np.mean(x == 1)
        p2 = np.mean(y == 1)
        d = np.mean((x == 1) & (y == 1)) - p1 * p2
        D[k] = d
        if d > 0:
            d_max = min(p1 * (1 - p2), (1 - p1) * p2)
        else:
            d_max = min(p1 * p2, (1 - p1) * (1 - p2))
        if d_max > 0:
            D_prime[k] = d / d_max
        denominator = p1 * (1 - p1) * p2 * (1 - p2)
        if denominator > 0:
            r2[k] = d ** 2 / denominator
    return D, D_prime, r2


def pairwise_d(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns the signed disequilibrium ``D = p11 - p1 * p2`` of every pair of
    sites, computed over the sequences resolved at both sites.
    """
    return _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))[0]


def pairwise_d_prime(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns Lewontin's ``D' = D / Dmax`` for every pair of sites.
    """
    return _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))[1]


def pairwise_r2(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns ``R^2 = D^2 / (p1 (1 - p1) p2 (1 - p2))`` for every pair of
    sites.
    """
    return _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))[2]


def _distances1(view):
    left, right = view.pairs()
    return view.positions[right] - view.positions[left]


def _distances2(view):
    left, right = view.pairs()
    distances = np.zeros(len(left))
    cumulative = np.concatenate(
        [np.zeros((view.num_sequences, 1), dtype=int), np.cumsum(view.gaps, axis=1)],
        axis=1,
    )
    for k, (a, b) in enumerate(zip(left, right)):
        start = view.sites[a]
        end = view.sites[b]
        num_gaps = cumulative[:, end + 1] - cumulative[:, start]
        distances[k] = np.mean(view.positions[b] - view.positions[a] - num_gaps)
    return distances


def pairwise_distances1(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns the distance between the sites of every pair, as the
    difference of their positions.
    """
    return _distances1(_view(aln, gapflag, keepsingleton, freqmin))


def pairwise_distances2(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns the distance between the sites of every pair, not counting the
    gaps each sequence carries between the two sites, averaged over
    sequences.
    """
    return _distances2(_view(aln, gapflag, keepsingleton, freqmin))


def _mean(values):
    values = values[~np.isnan(values)]
    if len(values) == 0:
        return math.nan
    return float(np.mean(values))


def mean_d(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> float:
    """
    Returns the mean of ``|D|`` over all pairs of sites.
    """
    D, _, _ = _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))
    return _mean(np.abs(D))


def mean_d_prime(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> float:
    _, D_prime, _ = _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))
    return _mean(np.abs(D_prime))


def mean_r2(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> float:
    _, _, r2 = _pair_statistics(_view(aln, gapflag, keepsingleton, freqmin))
    return _mean(r2)


def mean_distance1(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> float:
    return _mean(_distances1(_view(aln, gapflag, keepsingleton, freqmin)))


def mean_distance2(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0) -> float:
    return _mean(_distances2(_view(aln, gapflag, keepsingleton, freqmin)))


def _regression_inputs(aln, statistic, distance1, gapflag, keepsingleton, freqmin):
    distance1 = core._parse_flag(distance1, default=False)
    view = _view(aln, gapflag, keepsingleton, freqmin)
    values = _pair_statistics(view)[statistic]
    distances = _distances1(view) if distance1 else _distances2(view)
    defined = ~np.isnan(values)
    # Distances are expressed in kilobases.
    return np.abs(values[defined]), distances[defined] / 1000


def _origin_slope(y, x):
    denominator = np.sum(x ** 2)
    if denominator == 0:
        return math.nan
    return float(np.sum((y - 1) * x) / denominator)


def _linear_fit(y, x):
    if len(x) < 2 or np.all(x == x[0]):
        return math.nan, math.nan
    slope, intercept = np.polyfit(x, y, 1)
    return float(slope), float(intercept)


def origin_regression_d(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
) -> float:
    """
    Returns the slope ``a`` of the least squares fit of ``|D| = 1 + a * d``,
    where ``d`` is the distance between sites in kilobases. The distances
    are those of :func:`pairwise_distances1` if ``distance1`` is True and of
    :func:`pairwise_distances2` otherwise.
    """
    return _origin_slope(
        *_regression_inputs(aln, 0, distance1, gapflag, keepsingleton, freqmin)
    )


def origin_regression_d_prime(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
) -> float:
    """
    As :func:`origin_regression_d` for ``|D'|``.
    """
    return _origin_slope(
        *_regression_inputs(aln, 1, distance1, gapflag, keepsingleton, freqmin)
    )


def origin_regression_r2(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
) -> float:
    """
    As :func:`origin_regression_d` for ``R^2``.
    """
    return _origin_slope(
        *_regression_inputs(aln, 2, distance1, gapflag, keepsingleton, freqmin)
    )


def linear_regression_d(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
):
    """
    Returns the ``(slope, intercept)`` of the least squares fit of ``|D|``
    against the distance between sites in kilobases. See
    :func:`origin_regression_d` for ``distance1``.
    """
    return _linear_fit(
        *_regression_inputs(aln, 0, distance1, gapflag, keepsingleton, freqmin)
    )


def linear_regression_d_prime(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
):
    return _linear_fit(
        *_regression_inputs(aln, 1, distance1, gapflag, keepsingleton, freqmin)
    )


def linear_regression_r2(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
):
    return _linear_fit(
        *_regression_inputs(aln, 2, distance1, gapflag, keepsingleton, freqmin)
    )


def inverse_regression_r2(
    aln, *, distance1=False, gapflag=True, keepsingleton=True, freqmin=0.0
) -> float:
    """
    Returns the parameter ``a`` of the Hill and Robertson (1968) model
    ``R^2 = 1 / (1 + a * d)``, fitted by least squares through the origin
    on its linear form ``1 / R^2 - 1 = a * d``, with ``d`` in kilobases.
    Pairs with ``R^2 = 0`` are skipped.
    """
    r2, x = _regression_inputs(aln, 2, distance1, gapflag, keepsingleton, freqmin)
    nonzero = r2 > 0
    r2 = r2[nonzero]
    x = x[nonzero]
    denominator = np.sum(x ** 2)
    if denominator == 0:
        return math.nan
    return float(np.sum((1 / r2 - 1) * x) / denominator)


# Hudson's (1987) estimator of the population recombination parameter
# C = 4Nr. The normalised covariance of the number of differences at two
# sites is integrated over a uniform distribution of C between 0 and its
# value for the whole region; D(x) = x^2 + 13x + 18 is the denominator of
# the two-site covariances. The expected variance is then
#
#   integral over u in [0, 1] of 2 (1 - u) (a x + b) / D(x), with x = c u,
#
# where a and b depend only on the sample size.

_SQRT97 = math.sqrt(97)
_ROOT1 = (-13 + _SQRT97) / 2
_ROOT2 = (-13 - _SQRT97) / 2

# Below this value the closed form loses precision to cancellation and the
# power series of the integrand is used instead.
_SERIES_CUTOFF = 1e-2
_SERIES_TERMS = 12


def _hudson_weights(n):
    num_pairs = n * (n - 1) / 2
    a = 1 - 1 / num_pairs
    b = 18 * a - 12 * (n - 2) / num_pairs - 2 * (n - 2) * (n - 3) / num_pairs
    return a, b


def _hudson_integrals(c):
    j0 = math.log((c - _ROOT1) * _ROOT2 / ((c - _ROOT2) * _ROOT1)) / _SQRT97
    j1 = 0.5 * math.log((c ** 2 + 13 * c + 18) / 18) - 6.5 * j0
    j2 = c - 13 * j1 - 18 * j0
    return j0, j1, j2


def _right_hand_closed(c, n):
    a, b = _hudson_weights(n)
    j0, j1, j2 = _hudson_integrals(c)
    # (2 / c^2) * integral over [0, c] of (c - x) (a x + b) / D(x)
    return 2 / c ** 2 * (a * (c * j1 - j2) + b * (c * j0 - j1))


def _right_hand_series(c, n):
    a, b = _hudson_weights(n)
    # 1 / D(x) = sum of q_k x^k / 18
    q_prev, q = 0.0, 1.0
    total = 0.0
    for k in range(_SERIES_TERMS):
        coefficient = (b * q + a * q_prev) / 18
        total += coefficient * c ** k * 2 / ((k + 1) * (k + 2))
        q_prev, q = q, -(13 * q + q_prev) / 18
    return total


def right_hand_hudson(c: float, n: int) -> float:
    """
    Returns the expected normalised variance of the number of pairwise
    differences for a sample of ``n`` sequences and a region-wide
    recombination parameter ``c``. The function decreases with ``c``;
    at ``c = 0`` it equals ``1 - 2 (n^2 + n + 3) / (9 n (n - 1))``.
    """
    if n < 2:
        raise exceptions.DimensionError("Too few sequences", n, 2)
    if c < _SERIES_CUTOFF:
        return _right_hand_series(c, n)
    return _right_hand_closed(c, n)


def _left_hand_hudson(view):
    n = view.num_sequences
    differences = []
    for i in range(n - 1):
        x = view.data[i]
        for j in range(i + 1, n):
            y = view.data[j]
            both = (x != MISSING) & (y != MISSING)
            differences.append(np.sum(x[both] != y[both]))
    differences = np.array(differences, dtype=float)
    Sk = np.mean(differences ** 2) - np.mean(differences) ** 2
    h = []
    for column in view.data.T:
        called = column[column != MISSING]
        m = len(called)
        if m < 2:
            continue
        k = np.sum(called)
        h.append(1 - (k * (k - 1) + (m - k) * (m - k - 1)) / (m * (m - 1)))
    h = np.array(h)
    H = np.sum(h)
    H2 = np.sum(h ** 2)
    if H == 0:
        return math.nan
    return float((Sk - H + H2) / H ** 2)


def left_hand_hudson(aln, *, gapflag=True, keepsingleton=True, freqmin=0.0):
    """
    Returns the observed normalised variance of the number of pairwise
    differences, ``(Sk - H + H2) / H^2``, where ``Sk`` is the variance of
    the number of differences between pairs of sequences, ``H`` the summed
    per-site heterozygosity and ``H2`` the summed squared heterozygosity,
    all over the sites of the :class:`.LDView`.
    """
    return _left_hand_hudson(_view(aln, gapflag, keepsingleton, freqmin))


def solve_hudson(left, n, *, precision=1e-6, cinf=0.001, csup=10000.0, max_iter=1000):
    """
    Returns the value of ``c`` between ``cinf`` and ``csup`` at which
    :func:`right_hand_hudson` equals ``left``, found by bisection to within
    ``precision``. The bounds are returned when ``left`` lies outside the
    range of the right hand side over the bracket.
    """
    if not precision > 0:
        raise ValueError("precision must be positive")
    if not 0 <= cinf < csup:
        raise ValueError("Must have 0 <= cinf < csup")
    if right_hand_hudson(cinf, n) < left:
        return cinf
    if right_hand_hudson(csup, n) > left:
        return csup
    low = cinf
    high = csup
    num_iter = 0
    while high - low > precision:
        if num_iter == max_iter:
            logger.warning(
                "Hudson bisection stopped after %d iterations in [%g, %g]",
                max_iter,
                low,
                high,
            )
            break
        mid = (low + high) / 2
        if right_hand_hudson(mid, n) > left:
            low = mid
        else:
            high = mid
        num_iter += 1
    logger.debug(
        "Hudson bisection converged to [%g, %g] in %d steps", low, high, num_iter
    )
    return (low + high) / 2


def hudson87(
    aln,
    *,
    precision=1e-6,
    cinf=0.001,
    csup=10000.0,
    gapflag=True,
    keepsingleton=True,
    freqmin=0.0,
    max_iter=1000,
) -> float:
    """
    Returns Hudson's (1987) estimate of the population recombination
    parameter ``C = 4Nr`` for the region covered by the alignment.

    :raises DimensionError: If fewer than 2 sites are kept in the
        :class:`.LDView`.
    """
    view = _view(aln, gapflag, keepsingleton, freqmin)
    left = _left_hand_hudson(view)
    if math.isnan(left):
        return math.nan
    return solve_hudson(
        left,
        view.num_sequences,
        precision=precision,
        cinf=cinf,
        csup=csup,
        max_iter=max_iter,
    )
