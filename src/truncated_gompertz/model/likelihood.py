"""Censored and doubly truncated Gompertz likelihood.

An observed integer age ``x`` stands for a death somewhere in ``[x, x + 1)``
and is only present in the sample because it fell in the observation window
``[L, U]``. Its contribution is the log-probability of the one-year bin,
renormalized by the log-probability of the window::

    log P(x <= X < x + 1) - log P(L <= X <= U)

Records outside their window have probability zero, so the contribution is
``-inf``; the value propagates through the cohort sums rather than raising
so a sampler or optimizer simply rejects the parameter point.
"""
from __future__ import annotations

from typing import Mapping

import jax
import jax.numpy as jnp

from truncated_gompertz.constants.metadata import CENSORING_BIN_WIDTH, PARAMETERS
from truncated_gompertz.constants.models import ModelVariant
from truncated_gompertz.data.loader import GompertzData
from truncated_gompertz.model.hazard import log_ccdf, log_pdf
from truncated_gompertz.utilities import logdiffexp


def log_interval_mass(
    start, end, mode, beta, covariate=None, coefficient=None
) -> jnp.ndarray:
    """Log-probability that death falls in ``[start, end]``.

    Equal to ``logdiffexp(log_cdf(end), log_cdf(start))``. It is evaluated
    as ``S(start) - S(end)`` in log space because the log survival function
    is exact in both tails, where the log CDF saturates at 0 for old ages.
    """
    return logdiffexp(
        log_ccdf(start, mode, beta, covariate, coefficient),
        log_ccdf(end, mode, beta, covariate, coefficient),
    )


def _truncated(
    log_numerator, age, lower, upper, mode, beta, covariate, coefficient
) -> jnp.ndarray:
    log_denominator = log_interval_mass(lower, upper, mode, beta, covariate, coefficient)
    valid = (age >= lower) & (age <= upper) & jnp.isfinite(log_denominator)
    safe_denominator = jnp.where(valid, log_denominator, 0.0)
    return jnp.where(valid, log_numerator - safe_denominator, -jnp.inf)


def observation_log_likelihood(
    age,
    lower,
    upper,
    mode,
    beta,
    covariate=None,
    coefficient=None,
    bin_width: float = CENSORING_BIN_WIDTH,
) -> jnp.ndarray:
    """Interval-censored, truncated log-likelihood of each observation.

    All arguments broadcast against each other, so windows, modes and betas
    may be global scalars or one value per record. ``beta <= 0`` yields
    ``-inf``.
    """
    age = jnp.asarray(age, dtype=float)
    valid_beta = beta > 0
    beta = jnp.where(valid_beta, beta, 1.0)
    log_numerator = log_interval_mass(
        age, age + bin_width, mode, beta, covariate, coefficient
    )
    value = _truncated(
        log_numerator, age, lower, upper, mode, beta, covariate, coefficient
    )
    return jnp.where(valid_beta, value, -jnp.inf)


def continuous_log_likelihood(
    age, lower, upper, mode, beta, covariate=None, coefficient=None
) -> jnp.ndarray:
    """Truncated log-density of exactly observed (uncensored) ages."""
    age = jnp.asarray(age, dtype=float)
    valid_beta = beta > 0
    beta = jnp.where(valid_beta, beta, 1.0)
    log_numerator = log_pdf(age, mode, beta, covariate, coefficient)
    value = _truncated(
        log_numerator, age, lower, upper, mode, beta, covariate, coefficient
    )
    return jnp.where(valid_beta, value, -jnp.inf)


def cohort_index(data: GompertzData, variant: ModelVariant) -> tuple[jnp.ndarray, int]:
    """Position of each record's mode parameter and the number of modes."""
    if variant.single_population:
        return jnp.zeros_like(data.cohort), 1
    return data.cohort, data.num_cohorts


def observation_parameters(
    params: Mapping[str, jnp.ndarray], data: GompertzData, variant: ModelVariant
) -> dict[str, jnp.ndarray | None]:
    """Gather the parameters that apply to each record."""
    index, _ = cohort_index(data, variant)
    mode = jnp.atleast_1d(params[PARAMETERS.MODE])[index]
    beta = params[PARAMETERS.BETA]
    if variant.cohort_beta:
        beta = jnp.atleast_1d(beta)[index]

    covariate, coefficient = None, None
    if variant.covariate:
        if data.covariate is None:
            raise ValueError(
                f"Model variant {variant.name} requires a covariate column in the data."
            )
        covariate = data.covariate
        coefficient = params[PARAMETERS.COEFFICIENT]

    return {
        "mode": mode,
        "beta": beta,
        "covariate": covariate,
        "coefficient": coefficient,
    }


def pointwise_log_likelihood(
    params: Mapping[str, jnp.ndarray], data: GompertzData, variant: ModelVariant
) -> jnp.ndarray:
    """One log-likelihood contribution per record."""
    return observation_log_likelihood(
        data.age,
        data.lower,
        data.upper,
        **observation_parameters(params, data, variant),
    )


def cohort_log_likelihood(
    params: Mapping[str, jnp.ndarray], data: GompertzData, variant: ModelVariant
) -> jnp.ndarray:
    """Sum of the contributions of each cohort's members."""
    index, num_segments = cohort_index(data, variant)
    return jax.ops.segment_sum(
        pointwise_log_likelihood(params, data, variant),
        index,
        num_segments=num_segments,
    )


def total_log_likelihood(
    params: Mapping[str, jnp.ndarray], data: GompertzData, variant: ModelVariant
) -> jnp.ndarray:
    return jnp.sum(cohort_log_likelihood(params, data, variant))
