"""Gompertz hazard parameterized by its modal age.

The hazard is ``h(x) = alpha * exp(beta * x)`` with the scale ``alpha``
derived from the mode of the age-at-death density and the rate ``beta``:

    alpha = beta / exp(mode * beta)

so that the density ``f(x) = h(x) * S(x)`` peaks at ``mode``. A
proportional-hazards covariate ``C`` with coefficient ``b`` scales
``alpha`` by ``exp(C * b)``. The support of the distribution starts at
age 0.

Every function is a pure jax.numpy expression of (age, parameters) so it
can be traced by ``jax.jit``, ``jax.grad`` and numpyro.
"""
from __future__ import annotations

import jax.numpy as jnp

from truncated_gompertz.utilities import log1mexp


def alpha(mode: jnp.ndarray, beta: jnp.ndarray) -> jnp.ndarray:
    """Hazard-scale constant implied by ``mode`` and ``beta`` (``beta > 0``)."""
    return beta / jnp.exp(mode * beta)


def log_alpha(
    mode: jnp.ndarray,
    beta: jnp.ndarray,
    covariate: jnp.ndarray | None = None,
    coefficient: jnp.ndarray | None = None,
) -> jnp.ndarray:
    """Log of ``alpha``, including the covariate shift when one is given."""
    value = jnp.log(beta) - mode * beta
    if covariate is not None and coefficient is not None:
        value = value + covariate * coefficient
    return value


def cumulative_hazard(
    x: jnp.ndarray,
    mode: jnp.ndarray,
    beta: jnp.ndarray,
    covariate: jnp.ndarray | None = None,
    coefficient: jnp.ndarray | None = None,
) -> jnp.ndarray:
    """``H(x) = (alpha / beta) * (exp(beta * x) - 1)``, zero below age 0."""
    x = jnp.maximum(jnp.asarray(x, dtype=float), 0.0)
    scale = jnp.exp(log_alpha(mode, beta, covariate, coefficient)) / beta
    return scale * jnp.expm1(beta * x)


def log_pdf(x, mode, beta, covariate=None, coefficient=None) -> jnp.ndarray:
    x = jnp.asarray(x, dtype=float)
    value = (
        log_alpha(mode, beta, covariate, coefficient)
        + beta * x
        - cumulative_hazard(x, mode, beta, covariate, coefficient)
    )
    return jnp.where(x >= 0, value, -jnp.inf)


def log_cdf(x, mode, beta, covariate=None, coefficient=None) -> jnp.ndarray:
    """``log(1 - exp(-H(x)))``, ``-inf`` at and below age 0."""
    return log1mexp(-cumulative_hazard(x, mode, beta, covariate, coefficient))


def log_ccdf(x, mode, beta, covariate=None, coefficient=None) -> jnp.ndarray:
    """Log survival function, ``-H(x)``."""
    return -cumulative_hazard(x, mode, beta, covariate, coefficient)
