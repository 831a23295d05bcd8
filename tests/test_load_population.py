"""
Tests for the population table and boundary loaders.
"""

import pytest
from conftest import write_boundaries, write_population_csv

from ops import Config
from processing.errors import LoadError
from processing.load_population import load_district_geometries, load_population_records


def test_load_population_records_canonical_columns(tmp_path):
    path = write_population_csv(
        tmp_path / "population.csv",
        [
            [2019, "Alpha", "D1", 100],
            [2020, "Alpha", "D1", 110],
            [2019, "Beta", "D2", 50],
            [2020, "Beta", "D2", ""],
        ],
    )

    records = load_population_records(path)

    assert list(records.columns) == ["district_id", "geo_label", "year", "population"]
    assert str(records["population"].dtype) == "Int64"
    assert records["year"].tolist() == [2019, 2020, 2019, 2020]
    assert records["population"].tolist()[:3] == [100, 110, 50]
    assert records["population"].isna().tolist() == [False, False, False, True]


def test_blank_population_is_missing_not_zero(tmp_path):
    path = write_population_csv(tmp_path / "population.csv", [[2019, "Alpha", "D1", "  "]])

    records = load_population_records(path)

    assert records["population"].isna().all()


def test_thousands_separators_are_accepted(tmp_path):
    path = write_population_csv(tmp_path / "population.csv", [[2019, "Alpha", "D1", '"1,234"']])

    records = load_population_records(path)

    assert records.loc[0, "population"] == 1234


def test_missing_population_file_raises_load_error(tmp_path):
    missing = tmp_path / "nope.csv"

    with pytest.raises(LoadError) as excinfo:
        load_population_records(missing)

    assert excinfo.value.path == missing


def test_missing_required_column_raises_load_error(tmp_path):
    path = write_population_csv(
        tmp_path / "population.csv",
        [[2019, "Alpha", "D1"]],
        header=["REF_DATE", "GEO", "DGUID"],
    )

    with pytest.raises(LoadError, match="VALUE"):
        load_population_records(path)


@pytest.mark.parametrize(
    "row",
    [
        ["twenty", "Alpha", "D1", 100],
        [2019.5, "Alpha", "D1", 100],
        [2019, "Alpha", "D1", "lots"],
        [2019, "Alpha", "D1", -5],
        [2019, "Alpha", "", 100],
    ],
)
def test_malformed_rows_raise_load_error(tmp_path, row):
    path = write_population_csv(tmp_path / "population.csv", [row])

    with pytest.raises(LoadError):
        load_population_records(path)


def test_duplicate_district_year_rows_raise_load_error(tmp_path):
    path = write_population_csv(
        tmp_path / "population.csv",
        [[2019, "Alpha", "D1", 100], [2019, "Alpha", "D1", 120]],
    )

    with pytest.raises(LoadError, match="duplicate"):
        load_population_records(path)


def test_column_names_come_from_config(tmp_path):
    path = write_population_csv(
        tmp_path / "population.csv",
        [[2019, "Alpha", "D1", 100]],
        header=["year", "name", "code", "people"],
    )
    config_file = tmp_path / "config.yaml"
    config_file.write_text("project_name: test\n")
    config = Config(
        config_file,
        overrides={
            "columns": {
                "population_year": "year",
                "population_geo": "name",
                "population_district_id": "code",
                "population_value": "people",
            }
        },
    )

    records = load_population_records(path, config)

    assert records.loc[0, "district_id"] == "D1"
    assert records.loc[0, "geo_label"] == "Alpha"


def test_load_district_geometries_canonical_columns(tmp_path):
    path = write_boundaries(tmp_path / "divisions.geojson", ["D1", "D2"])

    gdf = load_district_geometries(path)

    assert list(gdf.columns) == ["district_id", "district_name", "province", "geometry"]
    assert gdf["district_id"].tolist() == ["D1", "D2"]
    assert gdf["district_name"].tolist() == ["Name D1", "Name D2"]
    assert gdf.crs.to_epsg() == 4326


def test_boundaries_are_reprojected_to_wgs84(tmp_path):
    path = write_boundaries(tmp_path / "divisions.geojson", ["D1"], crs="EPSG:3857")

    gdf = load_district_geometries(path)

    assert gdf.crs.to_epsg() == 4326
    minx, miny, _, _ = gdf.total_bounds
    assert minx == pytest.approx(-80, abs=1e-6)
    assert miny == pytest.approx(45, abs=1e-6)


def test_missing_boundary_file_raises_load_error(tmp_path):
    with pytest.raises(LoadError):
        load_district_geometries(tmp_path / "nope.geojson")


def test_unreadable_boundary_file_raises_load_error(tmp_path):
    path = tmp_path / "divisions.geojson"
    path.write_text("this is not geojson")

    with pytest.raises(LoadError):
        load_district_geometries(path)


def test_point_features_raise_load_error(tmp_path):
    path = tmp_path / "points.geojson"
    path.write_text(
        '{"type": "FeatureCollection", "features": [{"type": "Feature", '
        '"properties": {"DGUID": "D1", "CDNAME": "A", "PRNAME": "B"}, '
        '"geometry": {"type": "Point", "coordinates": [-80, 45]}}]}'
    )

    with pytest.raises(LoadError, match="polygon"):
        load_district_geometries(path)


def test_duplicate_boundary_ids_raise_load_error(tmp_path):
    path = write_boundaries(tmp_path / "divisions.geojson", ["D1", "D1"])

    with pytest.raises(LoadError, match="duplicate"):
        load_district_geometries(path)



def test_numeric_boundary_ids_match_population_text(tmp_path):
    path = write_boundaries(tmp_path / "divisions.geojson", [3501.0, 3502.0])

    gdf = load_district_geometries(path)

    assert gdf["district_id"].tolist() == ["3501", "3502"]


def test_boundary_without_id_raises_load_error(tmp_path):
    path = tmp_path / "divisions.geojson"
    path.write_text(
        '{"type": "FeatureCollection", "features": ['
        '{"type": "Feature", "properties": {"DGUID": 3501, "CDNAME": "A", "PRNAME": "B"}, '
        '"geometry": {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}}, '
        '{"type": "Feature", "properties": {"DGUID": null, "CDNAME": "C", "PRNAME": "B"}, '
        '"geometry": {"type": "Polygon", "coordinates": [[[2, 0], [3, 0], [3, 1], [2, 0]]]}}]}'
    )

    with pytest.raises(LoadError, match="no district identifier"):
        load_district_geometries(path)
