import jax
import jax.numpy as jnp
import numpy as np
import pytest
from jax.scipy.special import logsumexp

from truncated_gompertz.constants.models import MODEL_VARIANTS
from truncated_gompertz.model.hazard import log_cdf, log_pdf
from truncated_gompertz.model.likelihood import (
    cohort_log_likelihood,
    continuous_log_likelihood,
    log_interval_mass,
    observation_log_likelihood,
    pointwise_log_likelihood,
    total_log_likelihood,
)
from truncated_gompertz.utilities import logdiffexp


@pytest.mark.parametrize("age", [10.0, 64.0, 101.0, 150.0])
def test_observation_outside_window_is_negative_infinity(age):
    value = observation_log_likelihood(age, 65.0, 100.0, 85.0, 1 / 12)
    assert float(value) == -np.inf


def test_window_boundaries_are_inclusive():
    values = observation_log_likelihood(jnp.array([65.0, 100.0]), 65.0, 100.0, 85.0, 1 / 12)
    assert np.isfinite(values).all()


def test_continuous_form_reduces_to_log_density_over_wide_window():
    value = continuous_log_likelihood(85.0, 0.0, 200.0, 85.0, 1 / 12)
    assert float(value) == pytest.approx(float(log_pdf(85.0, 85.0, 1 / 12)), abs=1e-6)


def test_censored_form_is_log_of_bin_mass_over_wide_window():
    value = observation_log_likelihood(85.0, 0.0, 200.0, 85.0, 1 / 12)
    bin_mass = logdiffexp(log_cdf(86.0, 85.0, 1 / 12), log_cdf(85.0, 85.0, 1 / 12))
    assert float(value) == pytest.approx(float(bin_mass), abs=1e-9)
    # the one-year bin around the mode carries roughly the peak density
    assert float(value) == pytest.approx(float(log_pdf(85.5, 85.0, 1 / 12)), abs=1e-3)


@pytest.mark.parametrize("start, end", [(0.0, 1.0), (40.0, 41.0), (65.0, 100.0), (85.0, 86.0)])
def test_interval_mass_matches_cdf_difference(start, end):
    from_cdf = logdiffexp(log_cdf(end, 85.0, 1 / 12), log_cdf(start, 85.0, 1 / 12))
    assert float(log_interval_mass(start, end, 85.0, 1 / 12)) == pytest.approx(
        float(from_cdf), rel=1e-10
    )


def test_interval_mass_stays_finite_in_upper_tail():
    # the CDF has saturated to 1 in double precision here
    assert float(log_cdf(170.0, 85.0, 1 / 12)) == 0.0
    value = log_interval_mass(170.0, 171.0, 85.0, 1 / 12)
    assert np.isfinite(value)


def test_bin_probabilities_sum_to_one_within_window():
    ages = jnp.arange(65.0, 100.0)
    values = observation_log_likelihood(ages, 65.0, 100.0, 83.0, 0.09)
    assert float(logsumexp(values)) == pytest.approx(0.0, abs=1e-10)


@pytest.mark.parametrize("beta", [0.0, -0.1])
def test_non_positive_beta_is_negative_infinity(beta):
    value = observation_log_likelihood(80.0, 65.0, 100.0, 85.0, beta)
    assert not np.isnan(value)
    assert float(value) == -np.inf
    assert float(continuous_log_likelihood(80.0, 65.0, 100.0, 85.0, beta)) == -np.inf


def test_per_observation_windows():
    ages = jnp.array([70.0, 70.0])
    lower = jnp.array([65.0, 70.0])
    upper = jnp.array([100.0, 90.0])
    values = observation_log_likelihood(ages, lower, upper, 85.0, 1 / 12)
    # a narrower window renormalizes by less mass
    assert float(values[1]) > float(values[0])


def test_covariate_changes_contribution():
    base = observation_log_likelihood(80.0, 65.0, 100.0, 85.0, 0.1)
    shifted = observation_log_likelihood(
        80.0, 65.0, 100.0, 85.0, 0.1, covariate=1.0, coefficient=0.5
    )
    zero = observation_log_likelihood(
        80.0, 65.0, 100.0, 85.0, 0.1, covariate=1.0, coefficient=0.0
    )
    assert float(shifted) != pytest.approx(float(base))
    assert float(zero) == pytest.approx(float(base))


class TestCohortAggregation:
    params = {"mode": jnp.array([80.0, 86.0, 84.0]), "beta": 1 / 12}

    def test_total_is_sum_of_cohort_members(self, cohort_data):
        pointwise = np.asarray(
            pointwise_log_likelihood(self.params, cohort_data, MODEL_VARIANTS.FIXED_EFFECTS)
        )
        cohorts = np.asarray(
            cohort_log_likelihood(self.params, cohort_data, MODEL_VARIANTS.FIXED_EFFECTS)
        )
        index = np.asarray(cohort_data.cohort)
        for k in range(cohort_data.num_cohorts):
            assert cohorts[k] == pytest.approx(pointwise[index == k].sum(), rel=1e-12)
        total = total_log_likelihood(self.params, cohort_data, MODEL_VARIANTS.FIXED_EFFECTS)
        assert float(total) == pytest.approx(pointwise.sum(), rel=1e-12)

    def test_total_is_independent_of_record_order(self, cohort_data, rng):
        order = rng.permutation(cohort_data.num_observations)
        shuffled = cohort_data._replace(
            age=cohort_data.age[order],
            lower=cohort_data.lower[order],
            upper=cohort_data.upper[order],
            cohort=cohort_data.cohort[order],
        )
        variant = MODEL_VARIANTS.FIXED_EFFECTS
        assert float(total_log_likelihood(self.params, shuffled, variant)) == pytest.approx(
            float(total_log_likelihood(self.params, cohort_data, variant)), rel=1e-12
        )

    def test_out_of_window_record_makes_cohort_impossible(self, cohort_data):
        data = cohort_data._replace(age=cohort_data.age.at[0].set(30.0))
        cohorts = cohort_log_likelihood(self.params, data, MODEL_VARIANTS.FIXED_EFFECTS)
        first = int(data.cohort[0])
        assert float(cohorts[first]) == -np.inf
        others = [k for k in range(data.num_cohorts) if k != first]
        assert np.isfinite(np.asarray(cohorts)[others]).all()
        total = total_log_likelihood(self.params, data, MODEL_VARIANTS.FIXED_EFFECTS)
        assert float(total) == -np.inf

    def test_single_population_ignores_cohorts(self, cohort_data):
        params = {"mode": 84.0, "beta": 1 / 12}
        variant = MODEL_VARIANTS.SINGLE_POPULATION
        cohorts = cohort_log_likelihood(params, cohort_data, variant)
        assert cohorts.shape == (1,)
        expected = observation_log_likelihood(
            cohort_data.age, cohort_data.lower, cohort_data.upper, 84.0, 1 / 12
        ).sum()
        assert float(cohorts[0]) == pytest.approx(float(expected), rel=1e-12)

    def test_cohort_beta_uses_each_cohort_beta(self, cohort_data):
        variant = MODEL_VARIANTS.FIXED_EFFECTS.with_cohort_beta()
        shared = {"mode": self.params["mode"], "beta": jnp.full(3, 1 / 12)}
        assert float(total_log_likelihood(shared, cohort_data, variant)) == pytest.approx(
            float(total_log_likelihood(self.params, cohort_data, MODEL_VARIANTS.FIXED_EFFECTS)),
            rel=1e-12,
        )
        varied = {"mode": self.params["mode"], "beta": jnp.array([1 / 12, 0.2, 1 / 12])}
        shared_cohorts = cohort_log_likelihood(shared, cohort_data, variant)
        varied_cohorts = cohort_log_likelihood(varied, cohort_data, variant)
        assert float(varied_cohorts[0]) == pytest.approx(float(shared_cohorts[0]))
        assert float(varied_cohorts[1]) != pytest.approx(float(shared_cohorts[1]))

    def test_covariate_variant_requires_covariate(self, cohort_data):
        variant = MODEL_VARIANTS.FIXED_EFFECTS_COVARIATE
        with pytest.raises(ValueError, match="covariate"):
            total_log_likelihood({**self.params, "coefficient": 0.1}, cohort_data, variant)

    def test_gradient_is_finite(self, cohort_data):
        variant = MODEL_VARIANTS.FIXED_EFFECTS

        def objective(mode, beta):
            return total_log_likelihood({"mode": mode, "beta": beta}, cohort_data, variant)

        grad_mode, grad_beta = jax.grad(objective, argnums=(0, 1))(
            self.params["mode"], 1 / 12
        )
        assert np.isfinite(grad_mode).all()
        assert np.isfinite(grad_beta)
