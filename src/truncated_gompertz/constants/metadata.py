from typing import NamedTuple

####################
# Project metadata #
####################

PROJECT_NAME = "truncated_gompertz"

# Observation window used when none is supplied with the data
DEFAULT_LOWER_BOUND = 65.0
DEFAULT_UPPER_BOUND = 100.0

# Width of the interval-censoring bin in years
CENSORING_BIN_WIDTH = 1.0


class __Columns(NamedTuple):
    AGE: str = "age"
    COHORT: str = "cohort"
    LOWER: str = "lower"
    UPPER: str = "upper"
    COVARIATE: str = "covariate"


COLUMNS = __Columns()


class __Parameters(NamedTuple):
    MODE: str = "mode"
    BETA: str = "beta"
    COEFFICIENT: str = "coefficient"
    POPULATION_MEAN: str = "population_mean"
    POPULATION_SPREAD: str = "population_spread"

    def __iter__(self):
        """Allow iteration over the named tuple field values."""
        for field in self._fields:
            yield getattr(self, field)


PARAMETERS = __Parameters()

SUMMARY_COLUMNS = ["mean", "sd", "lower_95", "upper_95"]
