#!/usr/bin/env python3
"""
Population Change per 10,000 Residents

Computes, for a pair of selected years, the signed net population change of each
census division relative to its population in the starting year:

    change_per_10k = round((pop[end] - pop[start]) / pop[start] * 10000)

The starting year is the denominator, so swapping the two years does not simply
negate the result. A division whose starting population is missing or zero, or
whose ending population is missing, gets pd.NA instead of a number.

Functions here are pure: they never modify the wide population table they are
given and hold no state between calls.
"""

from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from processing.errors import ConfigurationError

CHANGE_BASE = 10_000


def validate_year_selection(population: pd.DataFrame, *years: Any) -> Tuple[int, ...]:
    """
    Check each selected year against the years present in the wide table.

    Args:
        population: Wide population table (one column per year)
        *years: Selected years, as ints, whole-number floats or integer strings

    Returns:
        The selected years as ints, in the order given

    Raises:
        ConfigurationError: If a year is not an integer or not in the table
    """
    available = [int(year) for year in population.columns]
    validated = []

    for year in years:
        try:
            year_number = float(str(year).strip())
        except (TypeError, ValueError):
            raise ConfigurationError(year, available) from None

        if not year_number.is_integer():
            raise ConfigurationError(year, available)
        year_int = int(year_number)

        if year_int not in available:
            raise ConfigurationError(year, available)
        validated.append(year_int)

    return tuple(validated)


def round_half_away_from_zero(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, ties away from zero; NaN stays NaN."""
    return np.sign(values) * np.floor(np.abs(values) + 0.5)


def compute_change_per_10k(
    population: pd.DataFrame, start_year: Any, end_year: Any
) -> pd.DataFrame:
    """
    Compute net population change per 10,000 residents between two years.

    Args:
        population: Wide population table indexed by district_id
        start_year: Year whose population is the denominator
        end_year: Year compared against the start

    Returns:
        DataFrame with district_id and change_per_10k (Int64, pd.NA where undefined);
        the selected years are kept in ``attrs``

    Raises:
        ConfigurationError: If either year is not in the table
    """
    start_year, end_year = validate_year_selection(population, start_year, end_year)
    logger.info(f"📈 Computing population change per 10k: {start_year} → {end_year}")

    start = population[start_year].to_numpy(dtype="float64", na_value=np.nan)
    end = population[end_year].to_numpy(dtype="float64", na_value=np.nan)

    # Zero or missing starting population leaves the ratio undefined
    denominator = np.where(start > 0, start, np.nan)
    change = round_half_away_from_zero((end - start) * CHANGE_BASE / denominator)

    metric = pd.DataFrame(
        {
            "district_id": population.index.astype(str).to_numpy(),
            "change_per_10k": pd.array(change, dtype="Int64"),
        }
    )
    metric.attrs["start_year"] = start_year
    metric.attrs["end_year"] = end_year

    undefined = int(metric["change_per_10k"].isna().sum())
    logger.success(f"  ✅ Computed change for {len(metric) - undefined:,} districts")
    if undefined:
        logger.debug(f"     ⚪ {undefined:,} districts have no usable population (no data)")

    return metric


def summarize_population_change(metric: pd.DataFrame) -> Dict[str, Any]:
    """Counts and extremes of a change metric, skipping districts with no data."""
    values = metric["change_per_10k"].dropna()

    return {
        "districts": len(metric),
        "with_data": len(values),
        "no_data": len(metric) - len(values),
        "gained": int((values > 0).sum()),
        "lost": int((values < 0).sum()),
        "unchanged": int((values == 0).sum()),
        "min": int(values.min()) if len(values) else None,
        "max": int(values.max()) if len(values) else None,
        "median": float(values.median()) if len(values) else None,
    }
