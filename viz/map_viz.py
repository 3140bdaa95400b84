# county_mortality/viz/map_viz.py
import folium
import geopandas as gpd

from config import MAP_OPACITY, MAP_PALETTE
from data_processing.schema import require_columns


def render_choropleth(geo: gpd.GeoDataFrame, fill_column, key="fips", palette=MAP_PALETTE,
                      opacity=MAP_OPACITY, legend_name=None) -> folium.Map:
    """County choropleth of `fill_column`; rows with no value get the nan fill, not zero."""
    require_columns(geo, [key, fill_column], "map table")
    gdf = geo[[key, fill_column, geo.geometry.name]].copy()
    if gdf.crs is not None and gdf.crs.to_epsg() != 4326:
        gdf = gdf.to_crs(epsg=4326)
    gdf[key] = gdf[key].astype(str)

    minx, miny, maxx, maxy = gdf.total_bounds
    fmap = folium.Map(location=[(miny + maxy) / 2, (minx + maxx) / 2], zoom_start=4, control_scale=True)
    folium.Choropleth(
        geo_data=gdf,
        data=gdf,
        columns=[key, fill_column],
        key_on=f"feature.properties.{key}",
        fill_color=palette,
        fill_opacity=opacity,
        line_opacity=0.2,
        nan_fill_color="lightgray",
        legend_name=legend_name or fill_column,
    ).add_to(fmap)
    fmap.fit_bounds([[miny, minx], [maxy, maxx]])
    return fmap
