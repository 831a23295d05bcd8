"""
Tests for the map, GeoJSON, table and report outputs.
"""

import json

import pandas as pd
import pytest
from conftest import make_geometries

from analysis.color_scale import build_color_scale
from analysis.map_population_change import (
    build_population_change_layer,
    create_interactive_choropleth_map,
    create_static_choropleth_map,
    export_all_years_table,
    export_layer_geojson,
    generate_population_change_outputs,
    generate_population_change_report,
)
from ops import Config
from processing.datasets import load_population_datasets
from processing.errors import ConfigurationError


@pytest.fixture
def config(project_dir):
    return Config(project_dir / "config.yaml")


@pytest.fixture
def datasets(config):
    return load_population_datasets(config)


def test_build_population_change_layer(datasets):
    layer, scale = build_population_change_layer(datasets, 2019, 2020)
    by_id = layer.set_index("district_id")

    assert by_id.loc["D1", "change_per_10k"] == 1000
    assert pd.isna(by_id.loc["D2", "change_per_10k"])
    assert by_id.loc["D3", "change_per_10k"] == -2500
    assert scale.domain == (-2500.0, 1000.0)
    assert scale(by_id.loc["D2", "change_per_10k"]) == scale.no_data_color


def test_build_layer_rejects_unknown_year(datasets):
    with pytest.raises(ConfigurationError):
        build_population_change_layer(datasets, 2019, 2031)


def test_build_layer_leaves_datasets_unchanged(datasets):
    population_before = datasets.population.copy()
    geometries_before = datasets.geometries.copy()

    build_population_change_layer(datasets, 2020, 2019)

    pd.testing.assert_frame_equal(datasets.population, population_before)
    assert datasets.geometries.equals(geometries_before)


def test_interactive_map_contains_labels(datasets, config, tmp_path):
    layer, scale = build_population_change_layer(datasets, 2019, 2020, config)
    output_path = tmp_path / "maps" / "change.html"

    assert create_interactive_choropleth_map(layer, scale, output_path, config)

    html = output_path.read_text()
    assert "Name D1, Ontario: 1000 net migration per 10k" in html
    assert "Name D2, Ontario: no data" in html
    assert "Population Change by Census Division (2019-2020)" in html


def test_interactive_map_handles_empty_layer(tmp_path):
    layer = make_geometries([]).assign(change_per_10k=pd.Series([], dtype="Int64"), label=[])
    scale = build_color_scale(layer["change_per_10k"])

    assert create_interactive_choropleth_map(layer, scale, tmp_path / "empty.html")


def test_static_map_writes_png(datasets, config, tmp_path):
    layer, scale = build_population_change_layer(datasets, 2019, 2020, config)
    output_path = tmp_path / "change.png"

    assert create_static_choropleth_map(layer, scale, output_path, config)
    assert output_path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_geojson_export_has_nulls_and_metadata(datasets, config, tmp_path):
    layer, scale = build_population_change_layer(datasets, 2019, 2020, config)

    path = export_layer_geojson(layer, scale, tmp_path / "change.geojson", config)

    data = json.loads(path.read_text())
    properties = {f["properties"]["district_id"]: f["properties"] for f in data["features"]}
    assert properties["D1"]["change_per_10k"] == 1000
    assert properties["D2"]["change_per_10k"] is None
    assert properties["D2"]["fill_color"] == scale.no_data_color
    assert data["metadata"]["start_year"] == 2019
    assert data["metadata"]["end_year"] == 2020
    assert data["metadata"]["features_count"] == 3
    assert data["metadata"]["source"] == "unit test"


def test_all_years_table_leaves_missing_cells_blank(datasets, tmp_path):
    path = export_all_years_table(datasets.population, tmp_path / "all_years.csv")

    lines = path.read_text().splitlines()
    assert lines[0] == "district_id,2019,2020"
    assert "D1,100,110" in lines
    assert "D2,50," in lines


def test_report_lists_summary_and_all_years(datasets, config, tmp_path):
    layer, _ = build_population_change_layer(datasets, 2019, 2020, config)
    output_path = tmp_path / "report.md"

    assert generate_population_change_report(layer, datasets.population, output_path, config)

    report = output_path.read_text()
    assert "## Top 10 Divisions by Change" in report
    assert "## All Years" in report
    assert "**Divisions with no data**: 1" in report
    assert "Name D3" in report


def test_generate_outputs_writes_every_product(datasets, config, project_dir):
    outputs = generate_population_change_outputs(datasets, config, "2019", "2020")

    assert set(outputs) == {"all_years_csv", "map_html", "map_png", "geojson", "report_md"}
    for path in outputs.values():
        assert path.exists()
        assert path.parent == (project_dir / "output").resolve()
    assert outputs["map_html"].name == "population_change_2019_2020.html"


def test_generate_outputs_can_skip_static_and_geojson(datasets, config):
    outputs = generate_population_change_outputs(
        datasets, config, 2019, 2020, static=False, geojson=False
    )

    assert "map_png" not in outputs
    assert "geojson" not in outputs
