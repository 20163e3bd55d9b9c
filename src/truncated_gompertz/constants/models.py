from typing import NamedTuple

##################
# Model variants #
##################

SINGLE_POPULATION = "single"
FIXED_EFFECTS = "fixed"
PARTIAL_POOLING = "partial"
POOLING_TYPES = (SINGLE_POPULATION, FIXED_EFFECTS, PARTIAL_POOLING)


class ModelVariant:
    """Tagged configuration selecting the prior structure of a fit.

    The cohort hierarchy (``pooling``) and the covariate are independent
    decorations over the same censored-truncated likelihood. A single
    population shares one mode across every record, whatever its cohort.
    ``cohort_beta`` gives every cohort its own beta, used in both the
    censoring and the truncation terms.
    """

    def __init__(
        self,
        name: str,
        pooling: str = FIXED_EFFECTS,
        covariate: bool = False,
        cohort_beta: bool = False,
    ):
        if pooling not in POOLING_TYPES:
            raise ValueError(
                f"Unrecognized pooling {pooling}. Expected one of {POOLING_TYPES}."
            )
        self.name = name
        self.pooling = pooling
        self.covariate = covariate
        self.cohort_beta = cohort_beta

    @property
    def single_population(self) -> bool:
        return self.pooling == SINGLE_POPULATION

    @property
    def partial_pooling(self) -> bool:
        return self.pooling == PARTIAL_POOLING

    def with_covariate(self) -> "ModelVariant":
        return ModelVariant(
            f"{self.name}_covariate",
            pooling=self.pooling,
            covariate=True,
            cohort_beta=self.cohort_beta,
        )

    def with_cohort_beta(self) -> "ModelVariant":
        return ModelVariant(
            f"{self.name}_cohort_beta",
            pooling=self.pooling,
            covariate=self.covariate,
            cohort_beta=True,
        )

    def __repr__(self) -> str:
        return (
            f"ModelVariant(name={self.name!r}, pooling={self.pooling!r}, "
            f"covariate={self.covariate}, cohort_beta={self.cohort_beta})"
        )


class __ModelVariants(NamedTuple):
    SINGLE_POPULATION: ModelVariant = ModelVariant(
        "single_population", pooling=SINGLE_POPULATION
    )
    FIXED_EFFECTS: ModelVariant = ModelVariant("fixed_effects")
    PARTIAL_POOLING: ModelVariant = ModelVariant(
        "partial_pooling", pooling=PARTIAL_POOLING
    )
    FIXED_EFFECTS_COVARIATE: ModelVariant = ModelVariant(
        "fixed_effects_covariate", covariate=True
    )

    def __getitem__(self, item) -> ModelVariant:
        if isinstance(item, int):
            return tuple.__getitem__(self, item)
        for variant in self:
            if variant.name == item:
                return variant
        raise KeyError(item)


MODEL_VARIANTS = __ModelVariants()
