#!/usr/bin/env python3
"""
load_population.py - Population and Boundary Loaders

Reads the two inputs the pipeline needs before anything can be computed:

1. The tall population table, one row per (census division, year), with the
   source columns renamed to ``district_id``, ``geo_label``, ``year`` and
   ``population``. Empty population cells become ``pd.NA``, never zero.
2. The census division boundary file, renamed to ``district_id``,
   ``district_name``, ``province`` and ``geometry`` and standardized to WGS84.

Both loaders raise LoadError on any missing, unreadable or malformed input; there
is no partial load.
"""

from pathlib import Path
from typing import Dict, Optional, Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from ops import Config

from .data_utils import (
    clean_numeric,
    normalize_blank_strings,
    repair_invalid_geometries,
    validate_and_reproject_to_wgs84,
    validate_required_columns,
)
from .errors import LoadError

BOUNDARY_GEOMETRY_TYPES = ("Polygon", "MultiPolygon")


def _column_names(config: Optional[Config], keys: Dict[str, str]) -> Dict[str, str]:
    """Map canonical names to source column names from config (or the defaults)."""
    if config is not None:
        return {canonical: config.get_column_name(key) for canonical, key in keys.items()}
    return {canonical: Config.DEFAULTS["columns"][key] for canonical, key in keys.items()}


def _identifier_text(value):
    """Whole-number float identifiers (3501.0) as their integer text (3501)."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def load_population_records(
    path: Union[str, Path], config: Optional[Config] = None
) -> pd.DataFrame:
    """
    Load the tall per-year population table.

    Args:
        path: CSV file with geography label, district identifier, year and population
        config: Configuration instance (source column names)

    Returns:
        DataFrame with district_id (str), geo_label (str), year (int64) and
        population (Int64, pd.NA where the source cell was empty)

    Raises:
        LoadError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    logger.info(f"📊 Loading population records from {path}")

    if not path.exists():
        logger.critical(f"❌ Population file not found: {path}")
        raise LoadError(path, "file not found")

    try:
        raw = pd.read_csv(path, dtype=str, keep_default_na=False)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        logger.critical(f"❌ Could not read population file: {e}")
        raise LoadError(path, f"unreadable population file: {e}") from e

    columns = _column_names(
        config,
        {
            "geo_label": "population_geo",
            "district_id": "population_district_id",
            "year": "population_year",
            "population": "population_value",
        },
    )
    validate_required_columns(
        raw, {canonical.replace("_", " "): col for canonical, col in columns.items()}, path
    )

    district_ids = normalize_blank_strings(raw[columns["district_id"]])
    if district_ids.isna().any():
        raise LoadError(path, f"{int(district_ids.isna().sum())} rows have no district identifier")

    years = clean_numeric(raw[columns["year"]])
    bad_years = years.isna() | (years % 1 != 0)
    if bad_years.any():
        examples = raw.loc[bad_years, columns["year"]].head().tolist()
        raise LoadError(path, f"invalid year values: {examples}")

    # Blank cells are missing data; anything else that fails to parse is malformed
    logger.debug("  🔢 Converting population values to numeric...")
    blank = normalize_blank_strings(raw[columns["population"]]).isna()
    population = clean_numeric(raw[columns["population"]])
    unparseable = population.isna() & ~blank
    if unparseable.any():
        examples = raw.loc[unparseable, columns["population"]].head().tolist()
        raise LoadError(path, f"non-numeric population values: {examples}")
    if (population < 0).any() or (population.dropna() % 1 != 0).any():
        raise LoadError(path, "population values must be non-negative integers")

    records = pd.DataFrame(
        {
            "district_id": district_ids.astype(str),
            "geo_label": raw[columns["geo_label"]].str.strip(),
            "year": years.astype("int64"),
            "population": population.astype("Int64"),
        }
    )

    duplicated = records.duplicated(subset=["district_id", "year"], keep=False)
    if duplicated.any():
        examples = records.loc[duplicated, ["district_id", "year"]].head().values.tolist()
        raise LoadError(path, f"duplicate district/year rows: {examples}")

    logger.success(f"  ✅ Loaded {len(records):,} population records")
    logger.info(
        f"     📍 {records['district_id'].nunique():,} districts, "
        f"{records['year'].nunique()} years, "
        f"{int(records['population'].isna().sum()):,} missing values"
    )

    return records


def load_district_geometries(
    path: Union[str, Path], config: Optional[Config] = None
) -> gpd.GeoDataFrame:
    """
    Load and validate census division boundaries with CRS standardization.

    Args:
        path: Any boundary file geopandas can read (GeoJSON, shapefile, GeoPackage)
        config: Configuration instance (source column names, output CRS)

    Returns:
        GeoDataFrame with district_id, district_name, province and geometry

    Raises:
        LoadError: If the file is missing, unreadable or not a polygon boundary file
    """
    path = Path(path)
    logger.info(f"🗺️ Loading district boundaries from {path}")

    if not path.exists():
        logger.critical(f"❌ Boundary file not found: {path}")
        raise LoadError(path, "file not found")

    try:
        gdf = gpd.read_file(path)
    except Exception as e:
        logger.critical(f"❌ Could not read boundary file: {e}")
        raise LoadError(path, f"not a readable boundary file: {e}") from e

    if len(gdf) == 0 or "geometry" not in gdf.columns:
        raise LoadError(path, "boundary file contains no features")

    if gdf.geometry.isna().any() or not gdf.geom_type.isin(BOUNDARY_GEOMETRY_TYPES).all():
        found = sorted(str(t) for t in gdf.geom_type.dropna().unique())
        raise LoadError(path, f"expected polygon boundaries, found geometry types {found}")

    columns = _column_names(
        config,
        {
            "district_id": "geometry_district_id",
            "district_name": "geometry_district_name",
            "province": "geometry_province",
        },
    )
    validate_required_columns(
        gdf, {canonical.replace("_", " "): col for canonical, col in columns.items()}, path
    )

    gdf = gdf.rename(columns={source: canonical for canonical, source in columns.items()})
    gdf = gdf[["district_id", "district_name", "province", "geometry"]].copy()
    # Numeric identifiers come back as floats when any feature lacks one
    district_ids = normalize_blank_strings(gdf["district_id"].map(_identifier_text))
    if district_ids.isna().any():
        missing = int(district_ids.isna().sum())
        raise LoadError(path, f"{missing} features have no district identifier")
    gdf["district_id"] = district_ids.astype(str)

    duplicated = gdf["district_id"].duplicated(keep=False)
    if duplicated.any():
        examples = gdf.loc[duplicated, "district_id"].unique()[:5].tolist()
        raise LoadError(path, f"duplicate district identifiers: {examples}")

    output_crs = config.get_system_setting("output_crs") if config else "EPSG:4326"
    gdf = validate_and_reproject_to_wgs84(gdf, output_crs, "district boundaries")
    gdf = repair_invalid_geometries(gdf, "district boundary")

    logger.success(f"  ✅ Loaded {len(gdf):,} district boundaries")
    return gdf.reset_index(drop=True)
