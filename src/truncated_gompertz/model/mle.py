"""Maximum-likelihood point estimator for a single truncated population.

A self-contained implementation of the truncated Gompertz density for
exactly observed ages, used to cross-check the Bayesian fits. The objective
is expressed in ``theta = (log mode, log beta)`` so that any unconstrained
optimizer keeps both parameters positive. Standard errors come from the
inverse Hessian of the negative log-likelihood at the optimum, giving a
symmetric 95% interval in log space that is exponentiated back.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence

import jax
import jax.numpy as jnp
import numpy as np
import pandas as pd
from loguru import logger
from scipy.optimize import minimize

from truncated_gompertz.constants.data_values import (
    CONFIDENCE_Z,
    MAX_HESSIAN_CONDITION,
    MLE_INITIAL_BETA,
    MLE_INITIAL_MODE,
    MLE_METHOD,
)
from truncated_gompertz.utilities import logdiffexp


class EstimationError(RuntimeError):
    """Raised when the point estimator cannot produce estimates or standard errors."""


class MLEResult(NamedTuple):
    mode: float
    beta: float
    mode_interval: tuple[float, float]
    beta_interval: tuple[float, float]
    theta: np.ndarray
    theta_se: np.ndarray
    covariance: np.ndarray
    negative_log_likelihood: float

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "estimate": [self.mode, self.beta],
                "lower_95": [self.mode_interval[0], self.beta_interval[0]],
                "upper_95": [self.mode_interval[1], self.beta_interval[1]],
                "log_se": list(self.theta_se),
            },
            index=pd.Index(["mode", "beta"], name="parameter"),
        )


def _log_density(x, mode, beta):
    log_scale = jnp.log(beta) - mode * beta
    return log_scale + beta * x - jnp.exp(log_scale) / beta * jnp.expm1(beta * x)


def _log_survival(x, mode, beta):
    log_scale = jnp.log(beta) - mode * beta
    return -jnp.exp(log_scale) / beta * jnp.expm1(beta * jnp.maximum(x, 0.0))


def negative_log_likelihood(theta, ages, lower, upper) -> jnp.ndarray:
    """Negative truncated log-likelihood of exactly observed ages.

    Parameters
    ----------
    theta
        ``(log mode, log beta)``.
    ages
        Ages at death.
    lower, upper
        Truncation window, scalars or one per age.

    Returns
    -------
        ``-sum(log f(x) - log(F(upper) - F(lower)))``; ``inf`` when an age
        lies outside its window or the window has no mass.

    """
    mode, beta = jnp.exp(theta[0]), jnp.exp(theta[1])
    ages = jnp.asarray(ages, dtype=float)
    log_window = logdiffexp(
        _log_survival(lower, mode, beta), _log_survival(upper, mode, beta)
    )
    valid = (ages >= lower) & (ages <= upper) & jnp.isfinite(log_window)
    contributions = _log_density(ages, mode, beta) - jnp.where(valid, log_window, 0.0)
    return -jnp.sum(jnp.where(valid, contributions, -jnp.inf))


def fit_mle(
    ages: Sequence[float],
    lower: float,
    upper: float,
    initial: tuple[float, float] = (MLE_INITIAL_MODE, MLE_INITIAL_BETA),
    method: str = MLE_METHOD,
) -> MLEResult:
    """Estimate ``(mode, beta)`` by maximum likelihood.

    Raises
    ------
    EstimationError
        If the optimizer does not converge or the Hessian at the optimum
        cannot be inverted into a valid covariance matrix.
    """
    ages = jnp.asarray(np.asarray(ages, dtype=float))
    n = ages.shape[0]
    if n == 0:
        raise ValueError("No ages to fit.")

    def objective(theta):
        return negative_log_likelihood(theta, ages, lower, upper)

    # optimize the per-observation mean so tolerances do not depend on n
    mean_objective = jax.jit(lambda theta: objective(theta) / n)
    mean_gradient = jax.jit(jax.grad(lambda theta: objective(theta) / n))

    result = minimize(
        lambda theta: float(mean_objective(theta)),
        np.log(np.asarray(initial, dtype=float)),
        jac=lambda theta: np.asarray(mean_gradient(theta)),
        method=method,
    )
    if not result.success:
        logger.error(f"MLE did not converge: {result.message}")
        raise EstimationError(f"Optimizer failed to converge: {result.message}")
    logger.debug(f"MLE converged after {result.nit} iterations.")

    theta = np.asarray(result.x, dtype=float)
    hessian = np.asarray(jax.hessian(objective)(jnp.asarray(theta)))
    covariance = _covariance_from_hessian(hessian)
    theta_se = np.sqrt(np.diag(covariance))

    lower_theta = theta - CONFIDENCE_Z * theta_se
    upper_theta = theta + CONFIDENCE_Z * theta_se
    mode, beta = np.exp(theta)
    return MLEResult(
        mode=float(mode),
        beta=float(beta),
        mode_interval=(float(np.exp(lower_theta[0])), float(np.exp(upper_theta[0]))),
        beta_interval=(float(np.exp(lower_theta[1])), float(np.exp(upper_theta[1]))),
        theta=theta,
        theta_se=theta_se,
        covariance=covariance,
        negative_log_likelihood=float(objective(jnp.asarray(theta))),
    )


def _covariance_from_hessian(hessian: np.ndarray) -> np.ndarray:
    if not np.isfinite(hessian).all():
        raise EstimationError("Hessian at the optimum is not finite.")
    condition = np.linalg.cond(hessian)
    if not np.isfinite(condition) or condition > MAX_HESSIAN_CONDITION:
        raise EstimationError(
            f"Hessian at the optimum is singular or ill-conditioned (condition {condition:.3g})."
        )
    try:
        covariance = np.linalg.inv(hessian)
    except np.linalg.LinAlgError as exc:
        raise EstimationError("Hessian at the optimum is not invertible.") from exc
    if not (np.diag(covariance) > 0).all():
        raise EstimationError("Hessian at the optimum is not positive definite.")
    return covariance
