#!/usr/bin/env python3
"""
Diverging Color Scale for Population Change

Builds the fill-color scale for the choropleth. The scale is made of two ramps
that meet at a neutral color placed exactly at zero change:

- a negative ramp from the low color (at the minimum) to neutral (at 0)
- a positive ramp from neutral (at 0) to the high color (at the maximum)

Each ramp gets one step per ``units_per_step`` of change at its own extreme
(ceil(|min| / 10) and ceil(max / 10) steps by default), so a color step covers
about the same amount of change on both sides however lopsided the data is. The
shared neutral color appears once in the combined palette.

Degenerate inputs still produce a working scale: with no losses (or no gains)
only one ramp is built, and when every value is equal the scale collapses to a
single color for that point.
"""

import math
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from branca.colormap import LinearColormap
from loguru import logger

from ops import Config


class DivergingColorScale:
    """Continuous value → hex color mapping over [vmin, vmax], neutral at zero."""

    def __init__(
        self,
        palette: Sequence[str],
        index: Sequence[float],
        domain: Tuple[float, float],
        negative_steps: int = 0,
        positive_steps: int = 0,
        no_data_color: str = "#d9d9d9",
    ):
        if len(palette) != len(index) or not palette:
            raise ValueError("palette and index must be non-empty and the same length")

        self.palette: List[str] = list(palette)
        self.index: List[float] = [float(v) for v in index]
        self.vmin, self.vmax = float(domain[0]), float(domain[1])
        self.negative_steps = negative_steps
        self.positive_steps = positive_steps
        self.no_data_color = no_data_color

        self._colormap: Optional[LinearColormap] = None
        if len(self.palette) > 1:
            self._colormap = LinearColormap(self.palette, index=self.index)

    @property
    def domain(self) -> Tuple[float, float]:
        return (self.vmin, self.vmax)

    @property
    def is_single_color(self) -> bool:
        return len(self.palette) == 1

    def __call__(self, value: Any) -> str:
        if value is None or pd.isna(value):
            return self.no_data_color
        if self._colormap is None:
            return self.palette[0]
        clamped = min(max(float(value), self.vmin), self.vmax)
        return self._colormap.rgb_hex_str(clamped)

    def legend(self, caption: str = "") -> LinearColormap:
        """Branca colormap suitable for ``folium.Map.add_child`` as a legend."""
        if self._colormap is None:
            color = self.palette[0]
            return LinearColormap(
                [color, color], vmin=self.vmin - 0.5, vmax=self.vmin + 0.5, caption=caption
            )
        return LinearColormap(self.palette, index=self.index, caption=caption)

    def __repr__(self) -> str:
        return (
            f"DivergingColorScale(domain={self.domain}, colors={len(self.palette)}, "
            f"negative_steps={self.negative_steps}, positive_steps={self.positive_steps})"
        )


def ramp_steps(extreme: float, units_per_step: float) -> int:
    """Number of color steps for one half of the scale (0 when the half is empty)."""
    if extreme == 0:
        return 0
    return max(1, math.ceil(abs(extreme) / units_per_step))


def interpolate_ramp(
    start_color: str, end_color: str, start_value: float, end_value: float, steps: int
) -> Tuple[List[str], List[float]]:
    """steps + 1 evenly spaced colors from start_color to end_color, both included."""
    ramp = LinearColormap([start_color, end_color], vmin=0, vmax=steps)
    colors = [ramp.rgb_hex_str(i) for i in range(steps + 1)]
    values = np.linspace(start_value, end_value, steps + 1).tolist()
    return colors, values


def build_color_scale(
    values: Any,
    config: Optional[Config] = None,
    units_per_step: Optional[float] = None,
) -> DivergingColorScale:
    """
    Build the diverging scale for a set of change values.

    Args:
        values: change_per_10k values (Series, array or a metric DataFrame); missing
            values are ignored
        config: Configuration instance (colors, units_per_step)
        units_per_step: Override the configured change covered by one color step

    Returns:
        DivergingColorScale with domain [min, max] of the non-missing values
    """
    if isinstance(values, pd.DataFrame):
        values = values["change_per_10k"]
    series = pd.Series(values, dtype="Float64").dropna()

    def setting(key: str) -> Any:
        if config is not None:
            return config.get_visualization_setting(key)
        return Config.DEFAULTS["visualization"][key]

    low_color = setting("negative_color")
    neutral_color = setting("neutral_color")
    high_color = setting("positive_color")
    no_data_color = setting("no_data_color")
    if units_per_step is None:
        units_per_step = float(setting("units_per_step"))
    if units_per_step <= 0:
        raise ValueError(f"units_per_step must be positive, got {units_per_step}")

    neutral_hex = LinearColormap([neutral_color, neutral_color]).rgb_hex_str(0)

    if series.empty:
        logger.warning("  ⚠️ No change values to scale, using a neutral single-color scale")
        return DivergingColorScale([neutral_hex], [0.0], (0.0, 0.0), no_data_color=no_data_color)

    min_val, max_val = float(series.min()), float(series.max())
    negative_steps = ramp_steps(min_val, units_per_step) if min_val < 0 else 0
    positive_steps = ramp_steps(max_val, units_per_step) if max_val > 0 else 0

    palette: List[str] = []
    index: List[float] = []
    if negative_steps:
        colors, stops = interpolate_ramp(low_color, neutral_color, min_val, 0.0, negative_steps)
        palette += colors
        index += stops
    if positive_steps:
        colors, stops = interpolate_ramp(neutral_color, high_color, 0.0, max_val, positive_steps)
        if palette:
            # Both ramps end on the neutral color at zero
            colors, stops = colors[1:], stops[1:]
        palette += colors
        index += stops
    if not palette:
        palette, index = [neutral_hex], [0.0]

    scale = DivergingColorScale(
        palette,
        index,
        (min_val, max_val),
        negative_steps=negative_steps,
        positive_steps=positive_steps,
        no_data_color=no_data_color,
    )

    if min_val == max_val:
        point_color = scale(min_val)
        scale = DivergingColorScale(
            [point_color],
            [min_val],
            (min_val, max_val),
            negative_steps=negative_steps,
            positive_steps=positive_steps,
            no_data_color=no_data_color,
        )

    logger.debug(
        f"  🎨 Color scale: domain [{min_val:g}, {max_val:g}], "
        f"{negative_steps} negative / {positive_steps} positive steps, "
        f"{len(scale.palette)} colors"
    )
    return scale
