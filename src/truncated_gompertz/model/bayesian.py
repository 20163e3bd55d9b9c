"""NumPyro/JAX fit of the censored, doubly truncated Gompertz model.

:func:`log_posterior` is the pure scalar interface for any external
sampler; :class:`GompertzModel` runs numpyro's NUTS on the equivalent
numpyro model and summarizes the draws.
"""
from __future__ import annotations

from typing import Mapping

import jax
import jax.numpy as jnp
import numpy as np
import numpyro
import pandas as pd
from loguru import logger
from numpyro import infer

from truncated_gompertz.constants.data_values import (
    INITIAL_BETA,
    INITIAL_COEFFICIENT,
    INITIAL_POPULATION_SPREAD,
    PRIORS,
    SAMPLER,
    PriorConfig,
    SamplerConfig,
)
from truncated_gompertz.constants.metadata import PARAMETERS, SUMMARY_COLUMNS
from truncated_gompertz.constants.models import MODEL_VARIANTS, ModelVariant
from truncated_gompertz.data.loader import GompertzData
from truncated_gompertz.model.hazard import alpha
from truncated_gompertz.model.likelihood import cohort_index, total_log_likelihood
from truncated_gompertz.model.priors import prior_log_density, sample_priors


def log_posterior(
    params: Mapping[str, jnp.ndarray],
    data: GompertzData,
    variant: ModelVariant = MODEL_VARIANTS.FIXED_EFFECTS,
    priors: PriorConfig = PRIORS,
) -> jnp.ndarray:
    """Unnormalized log-posterior density at ``params``.

    Parameters
    ----------
    params
        Mapping of parameter name (``mode``, ``beta`` and, depending on the
        variant, ``coefficient``, ``population_mean``, ``population_spread``)
        to its value. ``mode`` has one entry per cohort.
    data
        The observations.
    variant
        Prior structure to evaluate.
    priors
        Prior hyperparameters.

    Returns
    -------
        The sum of the per-observation log-likelihood contributions and the
        prior log-densities; ``-inf`` for parameters outside the prior
        support, never NaN.

    """
    log_prior = prior_log_density(params, variant, priors)
    log_likelihood = total_log_likelihood(params, data, variant)
    return jnp.where(jnp.isfinite(log_prior), log_prior + log_likelihood, -jnp.inf)


def numpyro_model(data: GompertzData, variant: ModelVariant, priors: PriorConfig) -> None:
    _, num_modes = cohort_index(data, variant)
    params = sample_priors(num_modes, variant, priors)
    numpyro.deterministic(
        "alpha", alpha(params[PARAMETERS.MODE], params[PARAMETERS.BETA])
    )
    numpyro.factor("log_likelihood", total_log_likelihood(params, data, variant))


class GompertzModel:
    """Class to create and fit a truncated Gompertz model using MCMC with Numpyro"""

    def __init__(
        self,
        variant: ModelVariant = MODEL_VARIANTS.FIXED_EFFECTS,
        priors: PriorConfig = PRIORS,
        sampler: SamplerConfig = SAMPLER,
        init_values: Mapping[str, float] | None = None,
    ):
        self.variant = variant
        self.priors = priors
        self.sampler = sampler
        self.init_values = dict(init_values or {})

    def initial_values(self, num_modes: int) -> dict[str, jnp.ndarray]:
        """Starting point strictly inside every prior's support."""
        priors = self.priors
        mode = 0.5 * (priors.mode_low + priors.mode_high)
        beta = INITIAL_BETA
        if not priors.beta_low < beta < priors.beta_high:
            beta = 0.5 * (priors.beta_low + priors.beta_high)

        values = {
            PARAMETERS.MODE: jnp.ones(num_modes) * mode,
            PARAMETERS.BETA: jnp.ones(num_modes) * beta if self.variant.cohort_beta else beta,
        }
        if self.variant.partial_pooling:
            values[PARAMETERS.POPULATION_MEAN] = mode
            values[PARAMETERS.POPULATION_SPREAD] = INITIAL_POPULATION_SPREAD
        if self.variant.covariate:
            values[PARAMETERS.COEFFICIENT] = INITIAL_COEFFICIENT

        for name, value in self.init_values.items():
            if name not in values:
                raise ValueError(f"{name} is not a parameter of the {self.variant.name} model.")
            values[name] = jnp.broadcast_to(
                jnp.asarray(value, dtype=float), jnp.shape(values[name])
            )
        return values

    def fit(self, data: GompertzData) -> "GompertzModel":
        variant, priors = self.variant, self.priors
        _, num_modes = cohort_index(data, variant)

        def model():
            numpyro_model(data, variant, priors)

        logger.info(
            f"Fitting {variant.name} model to {data.num_observations} observations "
            f"({num_modes} mode parameter(s)): {self.sampler.num_chains} chain(s), "
            f"{self.sampler.num_warmup} warmup and {self.sampler.num_samples} samples."
        )
        mcmc = infer.MCMC(
            infer.NUTS(
                model,
                init_strategy=infer.init_to_value(values=self.initial_values(num_modes)),
            ),
            num_warmup=self.sampler.num_warmup,
            num_samples=self.sampler.num_samples,
            num_chains=self.sampler.num_chains,
            progress_bar=self.sampler.progress_bar,
        )
        mcmc.run(jax.random.PRNGKey(self.sampler.seed), extra_fields=("diverging",))

        divergences = int(np.sum(mcmc.get_extra_fields()["diverging"]))
        if divergences:
            logger.warning(f"{divergences} divergent transitions after warmup.")
        self.samples = mcmc.get_samples()
        self.cohort_labels = list(data.cohort_labels) or list(range(1, num_modes + 1))
        if variant.single_population:
            self.cohort_labels = ["all"]
        logger.info(f"Finished fitting {variant.name} model.")
        return self

    def get_draws(self, param: str) -> pd.DataFrame:
        """Posterior draws of ``param``, one row per cohort and one column per draw."""
        assert hasattr(self, "samples"), "Must run fit() first"
        if param not in self.samples:
            raise ValueError(f"Unrecognized parameter {param}")

        draws = np.asarray(self.samples[param])
        per_cohort = draws.ndim == 2
        labels = self.cohort_labels if per_cohort else ["all"]
        draws = draws.T if per_cohort else draws[np.newaxis, :]

        table = []
        for label, values in zip(labels, draws):
            row = dict(parameter=param, cohort=label)
            for k, value in enumerate(values):
                row[f"draw_{k}"] = float(value)
            table.append(row)
        return pd.DataFrame(table).set_index(["parameter", "cohort"])

    def summarize(self) -> pd.DataFrame:
        """Posterior mean, standard deviation and central 95% interval."""
        assert hasattr(self, "samples"), "Must run fit() first"
        draws = pd.concat([self.get_draws(param) for param in self.samples])
        summary = pd.DataFrame(
            {
                "mean": draws.mean(axis=1),
                "sd": draws.std(axis=1),
                "lower_95": draws.quantile(0.025, axis=1),
                "upper_95": draws.quantile(0.975, axis=1),
            }
        )
        return summary[SUMMARY_COLUMNS]


if __name__ == "__main__":
    from truncated_gompertz.data.loader import load_observations
    from truncated_gompertz.data.simulation import simulate_cohorts
    from truncated_gompertz.model.mle import fit_mle

    rng = np.random.default_rng(0)
    df = simulate_cohorts([82.0, 85.0, 88.0], 1 / 12, [2_000, 500, 100], 65, 100, rng)
    data = load_observations(df)
    for variant in [MODEL_VARIANTS.FIXED_EFFECTS, MODEL_VARIANTS.PARTIAL_POOLING]:
        print(variant.name)
        print(GompertzModel(variant).fit(data).summarize())
    print(fit_mle(df["age"] + 0.5, 65, 100).to_frame())
