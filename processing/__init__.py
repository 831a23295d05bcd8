"""
Processing package for the Population Change Maps pipeline

Loading, validation and reshaping of the population table and the census
division boundaries.
"""

__version__ = "0.1.0"

from .data_utils import (
    clean_numeric,
    ensure_output_directory,
    normalize_blank_strings,
    repair_invalid_geometries,
    validate_and_reproject_to_wgs84,
    validate_required_columns,
)
from .datasets import PopulationDatasets, load_population_datasets
from .errors import ConfigurationError, LoadError, PopulationMapsError
from .load_population import load_district_geometries, load_population_records
from .pivot_population import pivot_population_by_year

__all__ = [
    "clean_numeric",
    "ensure_output_directory",
    "normalize_blank_strings",
    "repair_invalid_geometries",
    "validate_and_reproject_to_wgs84",
    "validate_required_columns",
    "PopulationDatasets",
    "load_population_datasets",
    "ConfigurationError",
    "LoadError",
    "PopulationMapsError",
    "load_district_geometries",
    "load_population_records",
    "pivot_population_by_year",
]
