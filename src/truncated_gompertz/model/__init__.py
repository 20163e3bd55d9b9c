from .bayesian import GompertzModel, log_posterior, numpyro_model
from .hazard import alpha, log_ccdf, log_cdf, log_pdf
from .likelihood import (
    cohort_log_likelihood,
    continuous_log_likelihood,
    observation_log_likelihood,
    total_log_likelihood,
)
from .mle import EstimationError, MLEResult, fit_mle, negative_log_likelihood
