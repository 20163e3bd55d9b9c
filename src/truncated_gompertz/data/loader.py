"""Loads and validates age-at-death records for the likelihood.

Turns a table of records into a :class:`GompertzData` of arrays, the
read-only input of every fit. Records outside their truncation window are
kept (they contribute probability zero) but reported in the log.
"""
from __future__ import annotations

from typing import NamedTuple

import jax.numpy as jnp
import numpy as np
import pandas as pd
from loguru import logger

from truncated_gompertz.constants.metadata import (
    COLUMNS,
    DEFAULT_LOWER_BOUND,
    DEFAULT_UPPER_BOUND,
)


class GompertzData(NamedTuple):
    age: jnp.ndarray
    lower: jnp.ndarray
    upper: jnp.ndarray
    # 0-based position of each record's cohort
    cohort: jnp.ndarray
    num_cohorts: int
    covariate: jnp.ndarray | None = None
    cohort_labels: tuple = ()

    @property
    def num_observations(self) -> int:
        return int(self.age.shape[0])


def load_observations(
    df: pd.DataFrame,
    lower: float | None = None,
    upper: float | None = None,
    num_cohorts: int | None = None,
    covariate_column: str | None = None,
    encode_cohorts: bool = False,
) -> GompertzData:
    """Convert a table of deaths into arrays for the likelihood.

    Parameters
    ----------
    df
        One row per death with an ``age`` column and, optionally, ``cohort``
        (1-based contiguous ids), per-record ``lower`` / ``upper`` window
        columns and a covariate column.
    lower, upper
        Global truncation window. Used when the table has no window columns;
        when both are missing the default window applies.
    num_cohorts
        Number of cohorts. Defaults to the largest cohort id.
    covariate_column
        Name of the proportional-hazards covariate column, if any.
    encode_cohorts
        Map arbitrary cohort labels (e.g. birth years) to ids ``1..K`` in
        sorted label order instead of requiring integer ids.

    Returns
    -------
        The validated observations.

    """
    if COLUMNS.AGE not in df:
        raise ValueError(f"Observations require an '{COLUMNS.AGE}' column.")

    age = df[COLUMNS.AGE].to_numpy(dtype=float)
    if np.isnan(age).any() or (age < 0).any():
        raise ValueError("Ages must be non-negative numbers.")

    lower_values, upper_values = _load_window(df, lower, upper)
    cohort, num_cohorts, labels = _load_cohorts(df, num_cohorts, encode_cohorts)

    covariate = None
    if covariate_column is not None:
        if covariate_column not in df:
            raise ValueError(f"Covariate column '{covariate_column}' not found.")
        covariate = df[covariate_column].to_numpy(dtype=float)
        if not np.isfinite(covariate).all():
            raise ValueError("Covariate values must be finite.")
        covariate = jnp.asarray(covariate)

    outside = (age < lower_values) | (age > upper_values)
    if outside.any():
        logger.warning(
            f"{int(outside.sum())} of {len(age)} observations lie outside their "
            "truncation window and contribute zero probability."
        )
    logger.info(f"Loaded {len(age)} observations in {num_cohorts} cohort(s).")

    return GompertzData(
        age=jnp.asarray(age),
        lower=jnp.asarray(lower_values),
        upper=jnp.asarray(upper_values),
        cohort=jnp.asarray(cohort),
        num_cohorts=num_cohorts,
        covariate=covariate,
        cohort_labels=labels,
    )


def _load_window(
    df: pd.DataFrame, lower: float | None, upper: float | None
) -> tuple[np.ndarray, np.ndarray]:
    n = len(df)
    if lower is None and COLUMNS.LOWER in df:
        lower_values = df[COLUMNS.LOWER].to_numpy(dtype=float)
    else:
        lower_values = np.full(n, DEFAULT_LOWER_BOUND if lower is None else lower, float)
    if upper is None and COLUMNS.UPPER in df:
        upper_values = df[COLUMNS.UPPER].to_numpy(dtype=float)
    else:
        upper_values = np.full(n, DEFAULT_UPPER_BOUND if upper is None else upper, float)

    if np.isnan(lower_values).any() or np.isnan(upper_values).any():
        raise ValueError("Truncation bounds must not be missing.")
    if not (lower_values < upper_values).all():
        raise ValueError("Every truncation window requires lower < upper.")
    return lower_values, upper_values


def _load_cohorts(
    df: pd.DataFrame, num_cohorts: int | None, encode_cohorts: bool
) -> tuple[np.ndarray, int, tuple]:
    if COLUMNS.COHORT not in df:
        if num_cohorts not in (None, 1):
            raise ValueError(
                f"{num_cohorts} cohorts requested but there is no '{COLUMNS.COHORT}' column."
            )
        return np.zeros(len(df), dtype=int), 1, ()

    if encode_cohorts:
        codes, uniques = pd.factorize(df[COLUMNS.COHORT], sort=True)
        if (codes < 0).any():
            raise ValueError("Cohort labels must not be missing.")
        ids = codes + 1
        labels = tuple(uniques.tolist())
    else:
        raw = df[COLUMNS.COHORT].to_numpy()
        ids = raw.astype(int)
        if not np.array_equal(ids, raw):
            raise ValueError("Cohort ids must be integers; use encode_cohorts for labels.")
        labels = ()

    if len(ids) == 0:
        raise ValueError("No observations to load.")
    if num_cohorts is None:
        num_cohorts = int(ids.max())
    if ids.min() < 1 or ids.max() > num_cohorts:
        raise ValueError(f"Cohort ids must lie in 1..{num_cohorts}.")
    missing = set(range(1, num_cohorts + 1)) - set(np.unique(ids).tolist())
    if missing:
        raise ValueError(f"Cohort ids must be contiguous; no records for {sorted(missing)}.")

    if not labels:
        labels = tuple(range(1, num_cohorts + 1))
    return ids - 1, num_cohorts, labels
