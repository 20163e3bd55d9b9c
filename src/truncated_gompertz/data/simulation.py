"""Synthetic age-at-death data from a truncated Gompertz distribution."""
from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from truncated_gompertz.constants.metadata import COLUMNS


def simulate_deaths(
    mode: float,
    beta: float,
    size: int,
    lower: float = 0.0,
    upper: float = np.inf,
    covariate: np.ndarray | float | None = None,
    coefficient: float = 0.0,
    floor: bool = True,
    rng: np.random.Generator | None = None,
) -> np.ndarray:
    """Draw ages at death restricted to ``[lower, upper]``.

    Uses inverse transform sampling on the survival function
    ``S(x) = exp(-(alpha / beta) * (exp(beta * x) - 1))`` with the uniform
    draw confined to ``[S(upper), S(lower)]``. With ``floor`` the ages are
    rounded down to whole years, as in interval-censored records.
    """
    if beta <= 0:
        raise ValueError("beta must be positive.")
    if not lower < upper:
        raise ValueError("Truncation window requires lower < upper.")
    rng = np.random.default_rng() if rng is None else rng

    log_alpha = np.log(beta) - mode * beta
    if covariate is not None:
        log_alpha = log_alpha + np.asarray(covariate, dtype=float) * coefficient
    alpha = np.broadcast_to(np.exp(log_alpha), (size,))

    with np.errstate(over="ignore"):
        hazard_lower = alpha / beta * np.expm1(beta * max(lower, 0.0))
        hazard_upper = alpha / beta * np.expm1(beta * upper)
    survival_lower = np.exp(-hazard_lower)
    survival_upper = np.exp(-hazard_upper)

    u = rng.uniform(size=size)
    survival = survival_upper + u * (survival_lower - survival_upper)
    hazard = -np.log(survival)
    ages = np.log1p(beta * hazard / alpha) / beta
    ages = np.clip(ages, max(lower, 0.0), upper)
    if floor:
        ages = np.floor(ages)
    return ages


def simulate_cohorts(
    modes: Sequence[float],
    beta: float,
    sizes: Sequence[int],
    lower: float,
    upper: float,
    rng: np.random.Generator | None = None,
) -> pd.DataFrame:
    """Interval-censored, truncated deaths for several cohorts.

    Returns one row per death with 1-based cohort ids and the window
    columns expected by :func:`truncated_gompertz.data.loader.load_observations`.
    """
    if len(modes) != len(sizes):
        raise ValueError("Provide one sample size per cohort mode.")
    rng = np.random.default_rng() if rng is None else rng

    frames = []
    for cohort, (mode, size) in enumerate(zip(modes, sizes), start=1):
        ages = simulate_deaths(mode, beta, size, lower, upper, rng=rng)
        frames.append(
            pd.DataFrame(
                {
                    COLUMNS.AGE: ages,
                    COLUMNS.COHORT: cohort,
                    COLUMNS.LOWER: lower,
                    COLUMNS.UPPER: upper,
                }
            )
        )
    return pd.concat(frames, ignore_index=True)
