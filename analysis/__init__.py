"""
Analysis package for the Population Change Maps pipeline

Change metric, geometry join, color scale and the map/report outputs built on them.
"""

from .color_scale import DivergingColorScale, build_color_scale
from .join_geometries import format_district_label, join_metric_with_geometries
from .map_population_change import (
    build_population_change_layer,
    create_interactive_choropleth_map,
    create_static_choropleth_map,
    export_all_years_table,
    export_layer_geojson,
    generate_population_change_outputs,
    generate_population_change_report,
)
from .population_change import (
    compute_change_per_10k,
    summarize_population_change,
    validate_year_selection,
)

__all__ = [
    "DivergingColorScale",
    "build_color_scale",
    "format_district_label",
    "join_metric_with_geometries",
    "build_population_change_layer",
    "create_interactive_choropleth_map",
    "create_static_choropleth_map",
    "export_all_years_table",
    "export_layer_geojson",
    "generate_population_change_outputs",
    "generate_population_change_report",
    "compute_change_per_10k",
    "summarize_population_change",
    "validate_year_selection",
]
