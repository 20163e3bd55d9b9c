"""Prior structure of each model variant.

The same distributions back the numpyro sample sites used during MCMC and
the pure prior log-density used by :func:`log_posterior`, so both give the
same joint density inside the prior support. Outside the support the pure
log-density is ``-inf``.
"""
from __future__ import annotations

from typing import Mapping

import jax.numpy as jnp
import numpyro
from numpyro import distributions as dist

from truncated_gompertz.constants.data_values import PriorConfig
from truncated_gompertz.constants.metadata import PARAMETERS
from truncated_gompertz.constants.models import ModelVariant


def population_mean_prior(priors: PriorConfig) -> dist.Distribution:
    return dist.Uniform(priors.mode_low, priors.mode_high)


def population_spread_prior(priors: PriorConfig) -> dist.Distribution:
    return dist.HalfNormal(priors.population_spread_scale)


def mode_prior(
    variant: ModelVariant,
    priors: PriorConfig,
    population_mean: jnp.ndarray | None = None,
    population_spread: jnp.ndarray | None = None,
) -> dist.Distribution:
    """Cohort modes: independent uniforms, or draws around the population mean."""
    if not variant.partial_pooling:
        return dist.Uniform(priors.mode_low, priors.mode_high)
    # an invalid spread is already -inf in its own prior term
    spread = jnp.where(population_spread > 0, population_spread, 1.0)
    return dist.Normal(population_mean, spread)


def beta_prior(priors: PriorConfig) -> dist.Distribution:
    return dist.Uniform(priors.beta_low, priors.beta_high)


def coefficient_prior(priors: PriorConfig) -> dist.Distribution:
    return dist.Normal(priors.coefficient_loc, priors.coefficient_scale)


def sample_priors(
    num_modes: int, variant: ModelVariant, priors: PriorConfig
) -> dict[str, jnp.ndarray]:
    """Declare the numpyro sample sites of ``variant`` and return their values."""
    params = {}
    hyper = {}
    if variant.partial_pooling:
        population_mean = numpyro.sample(
            PARAMETERS.POPULATION_MEAN, population_mean_prior(priors)
        )
        population_spread = numpyro.sample(
            PARAMETERS.POPULATION_SPREAD, population_spread_prior(priors)
        )
        params[PARAMETERS.POPULATION_MEAN] = population_mean
        params[PARAMETERS.POPULATION_SPREAD] = population_spread
        hyper = dict(population_mean=population_mean, population_spread=population_spread)

    params[PARAMETERS.MODE] = numpyro.sample(
        PARAMETERS.MODE, mode_prior(variant, priors, **hyper).expand([num_modes])
    )

    beta = beta_prior(priors)
    if variant.cohort_beta:
        beta = beta.expand([num_modes])
    params[PARAMETERS.BETA] = numpyro.sample(PARAMETERS.BETA, beta)

    if variant.covariate:
        params[PARAMETERS.COEFFICIENT] = numpyro.sample(
            PARAMETERS.COEFFICIENT, coefficient_prior(priors)
        )
    return params


def _log_prob(distribution: dist.Distribution, value) -> jnp.ndarray:
    value = jnp.asarray(value, dtype=float)
    in_support = distribution.support(value)
    safe_value = jnp.where(in_support, value, distribution.mean)
    return jnp.sum(
        jnp.where(in_support, distribution.log_prob(safe_value), -jnp.inf)
    )


def prior_log_density(
    params: Mapping[str, jnp.ndarray], variant: ModelVariant, priors: PriorConfig
) -> jnp.ndarray:
    """Sum of the prior log-densities of every parameter of ``variant``."""
    total = 0.0
    hyper = {}
    if variant.partial_pooling:
        hyper["population_mean"] = params[PARAMETERS.POPULATION_MEAN]
        hyper["population_spread"] = params[PARAMETERS.POPULATION_SPREAD]
        total += _log_prob(population_mean_prior(priors), hyper["population_mean"])
        total += _log_prob(population_spread_prior(priors), hyper["population_spread"])

    total += _log_prob(mode_prior(variant, priors, **hyper), params[PARAMETERS.MODE])
    total += _log_prob(beta_prior(priors), params[PARAMETERS.BETA])
    if variant.covariate:
        total += _log_prob(coefficient_prior(priors), params[PARAMETERS.COEFFICIENT])
    return total
