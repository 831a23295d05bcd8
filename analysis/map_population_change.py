#!/usr/bin/env python3
"""
Population Change Maps by Census Division

Turns a selected pair of years into the map products for one dashboard view:

- Interactive folium choropleth, colored with the diverging change scale and a
  hover label per division ("<name>, <province>: <change> net migration per 10k")
- Static PNG choropleth with the same colors
- Web GeoJSON of the joined layer with a metadata block
- The "All Years" population table as CSV
- A markdown report with summary statistics and top/bottom divisions

Methodology:
- Population per division and year is pivoted to one column per year
- Change is (end - start) / start * 10,000, rounded; zero or missing start
  population means "no data" for that division
- Divisions are joined to boundaries by exact identifier; unmatched
  divisions are left out of the map
- The color scale is anchored at zero, with the negative and positive halves
  sized by their own extreme

Each call works from the PopulationDatasets it is handed and keeps nothing
between calls, so the caller decides when to recompute (for example on every
year selection).
"""

import json
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

import folium
import geopandas as gpd
import matplotlib as mpl
import matplotlib.pyplot as plt
import pandas as pd
import shapely
from loguru import logger

from ops import Config
from processing.data_utils import ensure_output_directory
from processing.datasets import PopulationDatasets

from .color_scale import DivergingColorScale, build_color_scale
from .join_geometries import LABEL_UNITS, join_metric_with_geometries
from .population_change import compute_change_per_10k, summarize_population_change

DEFAULT_CENTER = [56.0, -96.0]


def build_population_change_layer(
    datasets: PopulationDatasets,
    start_year,
    end_year,
    config: Optional[Config] = None,
) -> Tuple[gpd.GeoDataFrame, DivergingColorScale]:
    """
    Run metric → join → color scale for one year selection.

    Args:
        datasets: Loaded population table and boundaries (not modified)
        start_year: Denominator year
        end_year: Comparison year
        config: Configuration instance (color settings)

    Returns:
        Joined map layer and the color scale for its change values

    Raises:
        ConfigurationError: If either year is not in the dataset
    """
    metric = compute_change_per_10k(datasets.population, start_year, end_year)
    layer = join_metric_with_geometries(metric, datasets.geometries)
    scale = build_color_scale(layer["change_per_10k"], config)
    return layer, scale


def _setting(config: Optional[Config], key: str):
    if config is not None:
        return config.get_visualization_setting(key)
    return Config.DEFAULTS["visualization"][key]


def _map_title(layer: gpd.GeoDataFrame) -> str:
    start_year = layer.attrs.get("start_year", "?")
    end_year = layer.attrs.get("end_year", "?")
    return f"Population Change by Census Division ({start_year}-{end_year})"


def _layer_with_plain_properties(
    layer: gpd.GeoDataFrame, scale: DivergingColorScale
) -> gpd.GeoDataFrame:
    """Copy of the layer with JSON-safe change values and a precomputed fill color."""
    export = layer.copy()
    export["fill_color"] = [scale(value) for value in layer["change_per_10k"]]
    export["change_per_10k"] = pd.Series(
        [None if pd.isna(value) else int(value) for value in layer["change_per_10k"]],
        index=layer.index,
        dtype=object,
    )
    return export


def create_interactive_choropleth_map(
    layer: gpd.GeoDataFrame,
    scale: DivergingColorScale,
    output_path: Path,
    config: Optional[Config] = None,
) -> bool:
    """
    Create interactive folium choropleth map with hover labels and a legend.

    Args:
        layer: Output of join_metric_with_geometries()
        scale: Color scale for the layer
        output_path: HTML file to write
        config: Configuration instance

    Returns:
        Success status
    """
    logger.info("🗺️ Creating interactive choropleth map...")

    try:
        if len(layer) > 0:
            bounds = layer.total_bounds
            center = [(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2]
        else:
            logger.warning("  ⚠️ Map layer is empty, rendering the base map only")
            center = DEFAULT_CENTER
        logger.debug(f"     Map center: {center[0]:.4f}, {center[1]:.4f}")

        m = folium.Map(
            location=center,
            zoom_start=_setting(config, "zoom_start"),
            tiles=_setting(config, "tiles"),
            prefer_canvas=True,
        )

        fill_opacity = _setting(config, "fill_opacity")
        line_opacity = _setting(config, "line_opacity")

        if len(layer) > 0:
            folium.GeoJson(
                data=_layer_with_plain_properties(layer, scale).__geo_interface__,
                name="Population change per 10k",
                style_function=lambda feature: {
                    "fillColor": feature["properties"]["fill_color"],
                    "color": "#666666",
                    "weight": 0.5,
                    "fillOpacity": fill_opacity,
                    "opacity": line_opacity,
                },
                tooltip=folium.GeoJsonTooltip(
                    fields=["label"],
                    aliases=[""],
                    labels=False,
                    sticky=False,
                    style="""
                        background-color: white;
                        border: 1px solid #333333;
                        border-radius: 4px;
                        padding: 6px;
                        font-family: Arial, sans-serif;
                        font-size: 12px;
                    """,
                ),
            ).add_to(m)

        m.add_child(scale.legend(caption=f"Population change ({LABEL_UNITS})"))
        folium.LayerControl(collapsed=True).add_to(m)

        title_html = f"""
        <h3 align="center" style="font-size:20px; color: #333333; margin-top:10px;">
        <b>{_map_title(layer)}</b><br>
        <span style="font-size:14px;">Net change per 10,000 residents of the starting year</span>
        </h3>
        """
        m.get_root().html.add_child(folium.Element(title_html))

        output_path = ensure_output_directory(output_path)
        m.save(str(output_path))
        logger.success(f"  ✅ Interactive choropleth map saved: {output_path}")
        return True

    except Exception as e:
        logger.critical(f"❌ Error creating choropleth map: {e}")
        logger.trace("Detailed choropleth map error:")
        import traceback

        logger.trace(traceback.format_exc())
        return False


def create_static_choropleth_map(
    layer: gpd.GeoDataFrame,
    scale: DivergingColorScale,
    output_path: Path,
    config: Optional[Config] = None,
) -> bool:
    """
    Render the layer to a minimalist PNG choropleth with a colorbar.

    Args:
        layer: Output of join_metric_with_geometries()
        scale: Color scale for the layer
        output_path: PNG file to write
        config: Configuration instance

    Returns:
        Success status
    """
    logger.info("🖼️ Creating static choropleth map...")

    if len(layer) == 0:
        logger.warning("  ⚠️ Map layer is empty, skipping static map")
        return False

    try:
        map_dpi = _setting(config, "map_dpi")
        figure_max_width = _setting(config, "figure_max_width")

        # Figure size follows the data aspect ratio (max from config)
        bounds = layer.total_bounds
        data_width = max(bounds[2] - bounds[0], 1e-9)
        data_height = max(bounds[3] - bounds[1], 1e-9)
        aspect_ratio = data_width / data_height
        if aspect_ratio > 1:
            fig_width = min(figure_max_width, 10 * aspect_ratio)
            fig_height = fig_width / aspect_ratio
        else:
            fig_height = min(figure_max_width, 10 / aspect_ratio)
            fig_width = fig_height * aspect_ratio

        fig, ax = plt.subplots(figsize=(fig_width, fig_height), dpi=map_dpi)
        layer.plot(
            ax=ax,
            color=[scale(value) for value in layer["change_per_10k"]],
            linewidth=0.25,
            edgecolor="#444444",
        )
        ax.set_aspect("equal")
        ax.set_axis_off()
        fig.suptitle(_map_title(layer), fontsize=16, fontweight="bold", x=0.02, ha="left")

        if not scale.is_single_color:
            low, high = scale.index[0], scale.index[-1]
            positions = [(value - low) / (high - low) for value in scale.index]
            cmap = mpl.colors.LinearSegmentedColormap.from_list(
                "population_change", list(zip(positions, scale.palette))
            )
            sm = mpl.cm.ScalarMappable(norm=mpl.colors.Normalize(vmin=low, vmax=high), cmap=cmap)
            cbar_ax = fig.add_axes((0.92, 0.15, 0.02, 0.7))
            cbar = fig.colorbar(sm, cax=cbar_ax)
            cbar.ax.tick_params(labelsize=10, colors="#333333")
            cbar.set_label(LABEL_UNITS, rotation=90, labelpad=12, fontsize=11, color="#333333")

        output_path = ensure_output_directory(output_path)
        plt.savefig(output_path, bbox_inches="tight", dpi=map_dpi, facecolor="white")
        plt.close(fig)
        logger.success(f"  ✅ Static map saved: {output_path}")
        return True

    except Exception as e:
        plt.close("all")
        logger.critical(f"❌ Error creating static map: {e}")
        logger.trace("Detailed static map error:")
        import traceback

        logger.trace(traceback.format_exc())
        return False


def export_layer_geojson(
    layer: gpd.GeoDataFrame,
    scale: DivergingColorScale,
    output_path: Path,
    config: Optional[Config] = None,
) -> Path:
    """
    Export the joined layer as compact GeoJSON with a metadata block.

    Args:
        layer: Output of join_metric_with_geometries()
        scale: Color scale for the layer (fill colors are exported per feature)
        output_path: GeoJSON file to write
        config: Configuration instance

    Returns:
        Path of the written file
    """
    logger.info(f"💾 Exporting GeoJSON: {output_path}")

    export = _layer_with_plain_properties(layer, scale)
    precision = config.get_system_setting("precision_decimals") if config else 6
    export["geometry"] = shapely.set_precision(export.geometry.to_numpy(), 10 ** -precision)
    logger.debug(f"  🔧 Coordinates snapped to {precision} decimal places")

    geojson_data = json.loads(export.to_json(na="null"))
    summary = summarize_population_change(layer)

    geojson_data["metadata"] = {
        "title": _map_title(layer),
        "source": config.get_metadata("data_source") if config else "",
        "created": time.strftime("%Y-%m-%d"),
        "crs": "EPSG:4326",
        "features_count": len(layer),
        "start_year": layer.attrs.get("start_year"),
        "end_year": layer.attrs.get("end_year"),
        "color_domain": list(scale.domain),
        "summary_statistics": summary,
        "field_descriptions": {
            "district_id": "Census division identifier",
            "district_name": "Census division name",
            "province": "Province or territory",
            "change_per_10k": "Net population change per 10,000 residents of the start year",
            "label": "Hover label",
            "fill_color": "Choropleth fill color",
        },
    }

    output_path = ensure_output_directory(output_path)
    with open(output_path, "w") as f:
        json.dump(geojson_data, f, separators=(",", ":"))

    file_size = output_path.stat().st_size / 1024
    logger.success(f"  ✅ Exported {len(layer):,} features ({file_size:.1f} KB)")
    return output_path


def export_all_years_table(population: pd.DataFrame, output_path: Path) -> Path:
    """Write the wide population table as CSV; missing values are empty cells."""
    logger.info(f"💾 Exporting All Years table: {output_path}")

    output_path = ensure_output_directory(output_path)
    population.reset_index().to_csv(output_path, index=False)

    logger.success(f"  ✅ Exported {len(population):,} districts × {len(population.columns)} years")
    return output_path


def _markdown_table(df: pd.DataFrame) -> str:
    return df.astype(object).where(df.notna(), "").to_markdown(index=False)


def generate_population_change_report(
    layer: gpd.GeoDataFrame,
    population: pd.DataFrame,
    output_path: Path,
    config: Optional[Config] = None,
) -> bool:
    """
    Generate markdown report with summary statistics and the All Years table.

    Args:
        layer: Output of join_metric_with_geometries()
        population: Wide population table
        output_path: Markdown file to write
        config: Configuration instance

    Returns:
        Success status
    """
    logger.info("📄 Generating population change report...")

    try:
        summary = summarize_population_change(layer)
        ranked = (
            layer[layer["change_per_10k"].notna()]
            .sort_values("change_per_10k", ascending=False)[
                ["district_id", "district_name", "province", "change_per_10k"]
            ]
            .rename(columns={"change_per_10k": "change per 10k"})
        )
        project_name = config.get("project_name", "") if config else ""

        markdown_content = f"""# {_map_title(layer)}

## Summary

- **Census divisions mapped**: {summary['districts']:,}
- **Divisions with data**: {summary['with_data']:,}
- **Divisions with no data**: {summary['no_data']:,}
- **Gained population**: {summary['gained']:,}
- **Lost population**: {summary['lost']:,}
- **Unchanged**: {summary['unchanged']:,}
- **Range**: {summary['min']} to {summary['max']} {LABEL_UNITS}

## Top 10 Divisions by Change

{_markdown_table(ranked.head(10))}

## Bottom 10 Divisions by Change

{_markdown_table(ranked.tail(10).iloc[::-1])}

## All Years

{_markdown_table(population.reset_index())}

---
*Report generated on {time.strftime("%Y-%m-%d %H:%M:%S")}*
*Project: {project_name}*
"""

        output_path = ensure_output_directory(output_path)
        with open(output_path, "w") as f:
            f.write(markdown_content)

        logger.success(f"  ✅ Report generated: {output_path}")
        return True

    except Exception as e:
        logger.critical(f"❌ Error generating report: {e}")
        logger.trace("Detailed report generation error:")
        import traceback

        logger.trace(traceback.format_exc())
        return False


def generate_population_change_outputs(
    datasets: PopulationDatasets,
    config: Config,
    start_year,
    end_year,
    static: bool = True,
    geojson: bool = True,
) -> Dict[str, Path]:
    """
    Build the layer for one year pair and write every map product.

    Returns:
        Dict of output kind → path for each file written

    Raises:
        ConfigurationError: If either year is not in the dataset
    """
    layer, scale = build_population_change_layer(datasets, start_year, end_year, config)
    start_year, end_year = layer.attrs["start_year"], layer.attrs["end_year"]
    outputs: Dict[str, Path] = {}

    table_path = config.get_output_path("all_years_csv", start_year, end_year)
    outputs["all_years_csv"] = export_all_years_table(datasets.population, table_path)

    map_path = config.get_output_path("map_html", start_year, end_year)
    if create_interactive_choropleth_map(layer, scale, map_path, config):
        outputs["map_html"] = map_path
    else:
        logger.warning("⚠️ Interactive map creation failed, continuing...")

    if static:
        png_path = config.get_output_path("map_png", start_year, end_year)
        if create_static_choropleth_map(layer, scale, png_path, config):
            outputs["map_png"] = png_path

    if geojson:
        geojson_path = config.get_output_path("geojson", start_year, end_year)
        outputs["geojson"] = export_layer_geojson(layer, scale, geojson_path, config)

    report_path = config.get_output_path("report_md", start_year, end_year)
    if generate_population_change_report(layer, datasets.population, report_path, config):
        outputs["report_md"] = report_path
    else:
        logger.warning("⚠️ Report generation failed, continuing...")

    return outputs
