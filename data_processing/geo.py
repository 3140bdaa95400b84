# county_mortality/data_processing/geo.py
import geopandas as gpd
import pandas as pd

from data_processing.joins import join
from data_processing.schema import require_columns


def join_geometries(geo: gpd.GeoDataFrame, county_data: pd.DataFrame, on="fips", how="inner",
                    suffixes=None) -> gpd.GeoDataFrame:
    """
    Merge county attributes onto polygons. Several geometry shards may share
    one county key (multi-part counties), so the geometry side fans out.
    """
    if not isinstance(geo, gpd.GeoDataFrame):
        raise TypeError(f"geo must be a GeoDataFrame, got {type(geo).__name__}")
    out = join(geo, county_data, on=on, how=how, many_side="left",
               allow_duplicate_geometries=True, suffixes=suffixes)
    return gpd.GeoDataFrame(out, geometry=geo.geometry.name, crs=geo.crs)


def join_geometries_dropna(geo: gpd.GeoDataFrame, county_data: pd.DataFrame, column: str,
                           on="fips") -> gpd.GeoDataFrame:
    """Same as join_geometries, minus rows with no value in `column` (not rendered as zero)."""
    require_columns(county_data, [column], "county data")
    out = join_geometries(geo, county_data, on=on)
    return out[out[column].notna()].reset_index(drop=True)
