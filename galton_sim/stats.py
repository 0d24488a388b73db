from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np
import scipy.stats as stats

from .models import Statistics

MIN_EXPECTED = 5.0


def expected_distribution(biases: Sequence[float]) -> np.ndarray:
    """Poisson-binomial pmf of the terminal bin for the given per-row biases."""
    pmf = np.array([1.0])
    for p in biases:
        pmf = np.convolve(pmf, [1.0 - p, p])
    return pmf


def summarize(counts: Sequence[int], biases: Sequence[float]) -> Statistics:
    c = np.asarray(counts, dtype=np.float64)
    p = np.asarray(list(biases), dtype=np.float64)
    total = int(c.sum())
    if total > 0:
        idx = np.arange(c.size)
        mean = float((idx * c).sum() / total)
        variance = float((((idx - mean) ** 2) * c).sum() / total)
    else:
        mean = variance = 0.0
    return Statistics(
        total=total,
        mean=mean,
        variance=variance,
        expected_mean=float(p.sum()),
        expected_variance=float((p * (1.0 - p)).sum()),
    )


def _pool_small(observed: np.ndarray, expected: np.ndarray) -> Tuple[List[float], List[float]]:
    """Merge adjacent bins until each pooled bin expects at least MIN_EXPECTED beads."""
    obs_out: List[float] = []
    exp_out: List[float] = []
    o_acc = e_acc = 0.0
    for o, e in zip(observed, expected):
        o_acc += o
        e_acc += e
        if e_acc >= MIN_EXPECTED:
            obs_out.append(o_acc)
            exp_out.append(e_acc)
            o_acc = e_acc = 0.0
    if e_acc > 0 or o_acc > 0:
        if exp_out:
            obs_out[-1] += o_acc
            exp_out[-1] += e_acc
        else:
            obs_out.append(o_acc)
            exp_out.append(e_acc)
    return obs_out, exp_out


def chi_square(counts: Sequence[int], biases: Sequence[float]) -> Tuple[float, float]:
    """Goodness of fit of observed bin counts against the expected distribution.

    Returns (statistic, p_value). With fewer than two pooled bins there is
    nothing to test and (0.0, 1.0) is returned.
    """
    observed = np.asarray(counts, dtype=np.float64)
    pmf = expected_distribution(biases)
    if pmf.size != observed.size:
        raise ValueError(f"{observed.size} bin counts for {pmf.size} bins")
    expected = pmf * observed.sum()
    obs, exp = _pool_small(observed, expected)
    if len(obs) < 2:
        return 0.0, 1.0
    # rescale so sums agree exactly; scipy rejects tiny float mismatches
    exp_arr = np.asarray(exp) * (sum(obs) / sum(exp))
    result = stats.chisquare(np.asarray(obs), exp_arr)
    return float(result.statistic), float(result.pvalue)
