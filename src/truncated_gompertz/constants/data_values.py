from typing import NamedTuple

##########
# Priors #
##########


class PriorConfig(NamedTuple):
    """Hyperparameters of the prior distributions.

    The same bounds serve the cohort modes (fixed effects) and the
    population mean (partial pooling).
    """

    mode_low: float = 60.0
    mode_high: float = 90.0
    beta_low: float = 0.0
    beta_high: float = 1.0
    population_spread_scale: float = 10.0
    coefficient_loc: float = 0.0
    coefficient_scale: float = 1.0


PRIORS = PriorConfig()


###########################
# Sampler (NUTS) settings #
###########################


class SamplerConfig(NamedTuple):
    num_warmup: int = 500
    num_samples: int = 500
    num_chains: int = 1
    seed: int = 0
    progress_bar: bool = False


SAMPLER = SamplerConfig()


##################
# Initial values #
##################

# NUTS must start strictly inside every prior's support; cohort modes start
# at the middle of their prior range
INITIAL_BETA = 0.1
INITIAL_POPULATION_SPREAD = 5.0
INITIAL_COEFFICIENT = 0.0


#########################
# Point estimator (MLE) #
#########################

MLE_INITIAL_MODE = 80.0
MLE_INITIAL_BETA = 0.1
MLE_METHOD = "L-BFGS-B"
CONFIDENCE_Z = 1.959963984540054  # two-sided 95%
MAX_HESSIAN_CONDITION = 1e12
