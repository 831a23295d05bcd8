"""
Reshape tall population records into the wide "All Years" table.
"""

import pandas as pd
from loguru import logger


def pivot_population_by_year(records: pd.DataFrame) -> pd.DataFrame:
    """
    Pivot per-(district, year) records into one row per district.

    Every year observed anywhere in the input becomes a column, so a district
    with no record for a year gets pd.NA there. The geography label is dropped;
    the district identifier is the only key the boundary join needs.

    Args:
        records: Output of load_population_records()

    Returns:
        DataFrame indexed by district_id with ascending integer year columns (Int64)
    """
    logger.info("🔄 Pivoting population records to one column per year...")

    wide = records.pivot(index="district_id", columns="year", values="population")
    wide = wide.reindex(columns=sorted(records["year"].unique())).astype("Int64")
    wide.columns = [int(year) for year in wide.columns]
    wide = wide.sort_index()

    missing = int(wide.isna().sum().sum())
    logger.success(
        f"  ✅ Wide table: {len(wide):,} districts × {len(wide.columns)} years "
        f"({missing:,} missing cells)"
    )
    return wide
