import folium
import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import box

from data_processing.errors import JoinError
from data_processing.geo import join_geometries, join_geometries_dropna
from viz.map_viz import render_choropleth


@pytest.fixture
def shards():
    # 1001 is split into two polygons
    return gpd.GeoDataFrame(
        {"fips": [1001, 1001, 1003, 1005]},
        geometry=[box(0, 0, 1, 1), box(1, 0, 2, 1), box(0, 1, 1, 2), box(1, 1, 2, 2)],
        crs="EPSG:4326",
    )


@pytest.fixture
def county_data():
    return pd.DataFrame({"fips": [1001, 1003, 1007], "mortality_rate": [12.5, np.nan, 9.0]})


def test_fan_out_over_geometry_shards(shards, county_data):
    out = join_geometries(shards, county_data)

    assert isinstance(out, gpd.GeoDataFrame)
    assert out.crs == shards.crs
    assert out["fips"].tolist() == [1001, 1001, 1003]
    assert out["mortality_rate"].tolist()[:2] == [12.5, 12.5]


def test_left_keeps_unmatched_geometry(shards, county_data):
    out = join_geometries(shards, county_data, how="left")

    assert out["fips"].tolist() == [1001, 1001, 1003, 1005]
    assert out["mortality_rate"].isna().sum() == 2


def test_dropna_variant(shards, county_data):
    out = join_geometries_dropna(shards, county_data, "mortality_rate")

    assert out["fips"].tolist() == [1001, 1001]
    assert out.geometry.notna().all()


def test_key_type_mismatch(shards, county_data):
    with pytest.raises(JoinError):
        join_geometries(shards, county_data.assign(fips=county_data["fips"].astype(str)))


def test_requires_geodataframe(county_data):
    with pytest.raises(TypeError):
        join_geometries(pd.DataFrame({"fips": [1001]}), county_data)


def test_render_choropleth(shards, county_data):
    geo = join_geometries(shards, county_data, how="left")

    fmap = render_choropleth(geo, "mortality_rate")

    assert isinstance(fmap, folium.Map)
    assert any(isinstance(c, folium.Choropleth) for c in fmap._children.values())


def test_render_choropleth_reprojects(shards, county_data):
    geo = join_geometries(shards.to_crs(epsg=3857), county_data)

    fmap = render_choropleth(geo, "mortality_rate", legend_name="Deaths per 100k")

    assert isinstance(fmap, folium.Map)
