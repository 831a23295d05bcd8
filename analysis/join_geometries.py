"""
Join the per-district change metric to census division boundaries.
"""

import geopandas as gpd
import pandas as pd
from loguru import logger

LABEL_UNITS = "net migration per 10k"


def format_district_label(name, province, change) -> str:
    """Hover text for one district, e.g. "Toronto, Ontario: 152 net migration per 10k"."""
    if change is None or pd.isna(change):
        return f"{name}, {province}: no data"
    return f"{name}, {province}: {int(change)} {LABEL_UNITS}"


def join_metric_with_geometries(
    metric: pd.DataFrame, geometries: gpd.GeoDataFrame
) -> gpd.GeoDataFrame:
    """
    Inner-join the change metric to district boundaries on district_id.

    Identifiers are matched exactly (case-sensitive, no name matching).
    Districts present on only one side are left out of the result without
    raising; districts whose metric is pd.NA stay in and are labelled "no data".

    Args:
        metric: Output of compute_change_per_10k()
        geometries: Output of load_district_geometries()

    Returns:
        GeoDataFrame with district_id, district_name, province, change_per_10k,
        label and geometry, one feature per matched district
    """
    logger.info("🔗 Joining population change with district boundaries...")

    metric_ids = set(metric["district_id"].astype(str))
    geometry_ids = set(geometries["district_id"].astype(str))
    common_ids = metric_ids & geometry_ids

    logger.debug(f"     Metric districts: {len(metric_ids):,}")
    logger.debug(f"     Boundary districts: {len(geometry_ids):,}")
    logger.debug(f"     Common districts: {len(common_ids):,}")
    # TODO: decide with the data owners whether unmatched districts should be reported
    if metric_ids - geometry_ids:
        logger.debug(f"     {len(metric_ids - geometry_ids):,} districts without boundaries dropped")
    if geometry_ids - metric_ids:
        logger.debug(f"     {len(geometry_ids - metric_ids):,} boundaries without population dropped")

    joined = geometries.merge(
        metric[["district_id", "change_per_10k"]].astype({"district_id": str}),
        on="district_id",
        how="inner",
    )
    joined["change_per_10k"] = joined["change_per_10k"].astype("Int64")
    joined["label"] = [
        format_district_label(name, province, change)
        for name, province, change in zip(
            joined["district_name"], joined["province"], joined["change_per_10k"]
        )
    ]
    joined = joined[
        ["district_id", "district_name", "province", "change_per_10k", "label", "geometry"]
    ]
    joined.attrs.update(metric.attrs)

    logger.success(f"  ✅ Joined {len(joined):,} districts to boundaries")
    return joined
