"""
Sample data builders shared by the population change tests.
"""

from pathlib import Path

import geopandas as gpd
import matplotlib
import pandas as pd
import pytest
from shapely.geometry import Polygon

from processing.pivot_population import pivot_population_by_year

matplotlib.use("Agg")

POPULATION_HEADER = ["REF_DATE", "GEO", "DGUID", "VALUE"]


def square(x: float, y: float, size: float = 1.0) -> Polygon:
    return Polygon([(x, y), (x + size, y), (x + size, y + size), (x, y + size)])


def make_records(rows) -> pd.DataFrame:
    """Canonical tall records from (district_id, year, population) tuples."""
    return pd.DataFrame(
        {
            "district_id": [r[0] for r in rows],
            "geo_label": [f"Division {r[0]}" for r in rows],
            "year": pd.Series([r[1] for r in rows], dtype="int64"),
            "population": pd.array([r[2] for r in rows], dtype="Int64"),
        }
    )


def make_population(rows) -> pd.DataFrame:
    return pivot_population_by_year(make_records(rows))


def make_geometries(district_ids) -> gpd.GeoDataFrame:
    """Canonical boundaries, one unit square per district laid out in a row."""
    return gpd.GeoDataFrame(
        {
            "district_id": list(district_ids),
            "district_name": [f"Name {d}" for d in district_ids],
            "province": ["Ontario"] * len(district_ids),
        },
        geometry=[square(-80 + i, 45) for i, _ in enumerate(district_ids)],
        crs="EPSG:4326",
    )


def write_population_csv(path: Path, rows, header=POPULATION_HEADER) -> Path:
    """Write a raw population CSV; rows are lists of cell strings in header order."""
    lines = [",".join(header)] + [",".join(str(cell) for cell in row) for row in rows]
    path.write_text("\n".join(lines) + "\n")
    return path


def write_boundaries(path: Path, district_ids, crs="EPSG:4326") -> Path:
    """Write a raw boundary GeoJSON using the source column names."""
    gdf = gpd.GeoDataFrame(
        {
            "DGUID": list(district_ids),
            "CDNAME": [f"Name {d}" for d in district_ids],
            "PRNAME": ["Ontario"] * len(district_ids),
        },
        geometry=[square(-80 + i, 45) for i, _ in enumerate(district_ids)],
        crs="EPSG:4326",
    )
    if crs != "EPSG:4326":
        gdf = gdf.to_crs(crs)
    gdf.to_file(path, driver="GeoJSON")
    return path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project root with a config file and both inputs for D1, D2 and D3."""
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    write_population_csv(
        data_dir / "population.csv",
        [
            [2019, "Alpha", "D1", 100],
            [2020, "Alpha", "D1", 110],
            [2019, "Beta", "D2", 50],
            [2020, "Beta", "D2", ""],
            [2019, "Gamma", "D3", 200],
            [2020, "Gamma", "D3", 150],
        ],
    )
    write_boundaries(data_dir / "divisions.geojson", ["D1", "D2", "D3"])
    (tmp_path / "config.yaml").write_text(
        """
project_name: "Test Population Change"
input_files:
  population_csv: "data/population.csv"
  districts_geojson: "data/divisions.geojson"
directories:
  output: "output"
metadata:
  data_source: "unit test"
"""
    )
    return tmp_path
