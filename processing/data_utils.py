#!/usr/bin/env python3
"""
data_utils.py - Shared Data Processing Utilities

Column validation, blank/numeric cleaning and geometry standardization shared by
the population and boundary loaders.
"""

from pathlib import Path
from typing import Dict, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from loguru import logger

from .errors import LoadError


def validate_required_columns(
    df: pd.DataFrame, required_columns: Dict[str, str], source: Union[str, Path]
) -> None:
    """Validate that required columns exist in a DataFrame.

    Args:
        df: DataFrame to validate
        required_columns: Dict of {description: column name} that must be present
        source: File the DataFrame was read from (for error messages)

    Raises:
        LoadError: If any required column is absent
    """
    missing_columns = [
        f"{description} ({column})"
        for description, column in required_columns.items()
        if column not in df.columns
    ]

    if missing_columns:
        logger.error(f"❌ Missing required columns: {missing_columns}")
        logger.debug(f"   Available columns: {list(df.columns)}")
        raise LoadError(source, f"missing required columns: {', '.join(missing_columns)}")


def normalize_blank_strings(series: pd.Series) -> pd.Series:
    """Turn empty or whitespace-only strings into NaN, stripping the rest."""
    return series.map(lambda v: np.nan if pd.isna(v) or not str(v).strip() else str(v).strip())


def clean_numeric(series: pd.Series) -> pd.Series:
    """
    Cleans a Series to numeric type, handling thousands separators.

    Blank cells become missing values rather than zero. Cells that still cannot
    be parsed also come back missing; compare against normalize_blank_strings()
    to tell the two apart.

    Args:
        series: The pandas Series to clean.

    Returns:
        A float Series with NaN for missing values.
    """
    s = normalize_blank_strings(series)
    s = s.map(lambda v: v.replace(",", "") if isinstance(v, str) else v)
    return pd.to_numeric(s, errors="coerce").astype("float64")


def ensure_output_directory(output_path: Union[str, Path]) -> Path:
    """Ensure output directory exists and return Path object.

    Args:
        output_path: Output file path (string or Path)

    Returns:
        Path object with directory created
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    return output_path


def validate_and_reproject_to_wgs84(
    gdf: gpd.GeoDataFrame,
    output_crs: str = "EPSG:4326",
    source_description: str = "GeoDataFrame",
) -> gpd.GeoDataFrame:
    """
    Validates and reprojects a GeoDataFrame to WGS84 (or the configured output CRS).

    Args:
        gdf: Input GeoDataFrame
        output_crs: Target CRS for web output
        source_description: Description for logging

    Returns:
        GeoDataFrame in the output coordinate system
    """
    logger.debug(f"🗺️ Validating CRS for {source_description}")

    if gdf.crs is None:
        logger.warning(f"  ⚠️ No CRS specified in {source_description}, assuming {output_crs}")
        return gdf.set_crs(output_crs)

    if gdf.crs.to_epsg() != int(output_crs.split(":")[1]):
        logger.info(f"  🔄 Reprojecting {source_description} from {gdf.crs} to {output_crs}")
        return gdf.to_crs(output_crs)

    logger.debug(f"  ✓ Already in {output_crs}")
    return gdf


def repair_invalid_geometries(gdf: gpd.GeoDataFrame, data_type: str = "geodata") -> gpd.GeoDataFrame:
    """Fix topology errors in place of dropping features.

    Args:
        gdf: GeoDataFrame to check
        data_type: Type of data for log context

    Returns:
        GeoDataFrame whose geometries are all valid
    """
    invalid_geom = gdf.geometry.notna() & ~gdf.geometry.is_valid
    invalid_count = int(invalid_geom.sum())

    if invalid_count > 0:
        logger.warning(f"  ⚠️ Found {invalid_count} invalid {data_type} geometries, fixing...")
        gdf = gdf.copy()
        gdf.loc[invalid_geom, "geometry"] = gdf.loc[invalid_geom, "geometry"].buffer(0)
        logger.debug("  🔧 Fixed invalid geometries")

    return gdf
