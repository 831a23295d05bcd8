"""
Loaded-once, read-only inputs for the population change pipeline.
"""

from dataclasses import dataclass
from typing import List

import geopandas as gpd
import pandas as pd
from loguru import logger

from ops import Config

from .load_population import load_district_geometries, load_population_records
from .pivot_population import pivot_population_by_year


@dataclass(frozen=True)
class PopulationDatasets:
    """
    The wide population table and the district boundaries.

    Built once at startup and passed explicitly to every pipeline call. Nothing
    downstream mutates either frame, so one instance can back any number of
    concurrent year selections.
    """

    population: pd.DataFrame
    geometries: gpd.GeoDataFrame

    @property
    def years(self) -> List[int]:
        return [int(year) for year in self.population.columns]


def load_population_datasets(config: Config) -> PopulationDatasets:
    """
    Load both inputs named in config and pivot the population table.

    Raises:
        LoadError: If either input is missing or malformed
    """
    records = load_population_records(config.get_input_path("population_csv"), config)
    geometries = load_district_geometries(config.get_input_path("districts_geojson"), config)
    population = pivot_population_by_year(records)

    logger.debug(f"   📅 Years available: {list(population.columns)}")
    return PopulationDatasets(population=population, geometries=geometries)
