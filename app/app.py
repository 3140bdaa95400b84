# county_mortality/app/app.py
import sys
from pathlib import Path

import streamlit as st

# streamlit runs app.py as a top-level script
parent_dir = Path(__file__).parent.parent.absolute()
if str(parent_dir) not in sys.path:
    sys.path.insert(0, str(parent_dir))

import config
from data_processing import build_county_data, order_groups
from data_processing.geo import join_geometries_dropna
from data_processing.glm_training import run_model_training
from data_processing.io_readers import (
    read_corrections, read_county_geometries, read_mortality_data, read_opioid_data,
    read_poverty_data, read_state_codes
)
from modeling.effects import coefficient_table, group_intercepts, rate_ratio
from viz.map_viz import render_choropleth


@st.cache_data
def load_county_data():
    return build_county_data(
        read_poverty_data(config.POVERTY_CSV),
        read_mortality_data(config.MORTALITY_CSV),
        read_state_codes(config.STATE_CODES_CSV),
        opioid=read_opioid_data(config.OPIOID_CSV) if Path(config.OPIOID_CSV).exists() else None,
        corrections=read_corrections(config.CORRECTIONS_CSV) if Path(config.CORRECTIONS_CSV).exists() else None,
    )


@st.cache_resource
def fit_models(county_data, predictors):
    return run_model_training(county_data, predictors=list(predictors), write=False)


def main():
    st.set_page_config(page_title="County Mortality Explorer", layout="wide")
    st.title("County Mortality Explorer")
    st.markdown("Poisson GLM and state random-intercept GLMM of substance-related mortality.")

    with st.spinner("Loading and reconciling county tables..."):
        try:
            county_data = load_county_data()
        except Exception as e:
            st.error(f"Error building county data: {e}")
            st.stop()
    n_out = int(county_data["mortality_rate"].notna().sum())
    st.success(f"{len(county_data):,} counties joined | {n_out:,} with a reliable mortality rate")

    st.sidebar.header("Model")
    options = ["poverty_z"] + (["opioid_z"] if county_data["opioid_z"].notna().any() else [])
    predictors = st.sidebar.multiselect("Standardized predictors", options, default=["poverty_z"])
    if not predictors:
        st.warning("Pick at least one predictor.")
        st.stop()

    try:
        res = fit_models(county_data, tuple(predictors))
    except Exception as e:
        st.error(f"Model fit failed: {e}")
        st.stop()
    glm, glmm = res["glm"], res["glmm"]

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("GLM")
        st.dataframe(coefficient_table(glm))
        st.caption(f"deviance {glm.deviance:.1f} (null {glm.null_deviance:.1f}), dispersion {glm.dispersion:.2f}")
    with col2:
        st.subheader("GLMM (random intercept by state)")
        st.dataframe(coefficient_table(glmm))
        st.caption(f"tau² = {glmm.tau2:.4f} | rate ratio -1sd→+1sd: {rate_ratio(glmm, predictors[0]):.3f}")

    st.subheader(f"States with more than {config.MIN_GROUP_SIZE} counties, by correlation")
    st.dataframe(order_groups(res["groups"]), use_container_width=True)
    st.subheader("State intercepts")
    st.dataframe(group_intercepts(glmm).sort_values("intercept"), use_container_width=True)

    if Path(config.COUNTY_SHP).exists():
        from streamlit_folium import st_folium
        st.subheader("Mortality rate by county")
        geo = join_geometries_dropna(read_county_geometries(config.COUNTY_SHP), county_data, "mortality_rate")
        st_folium(render_choropleth(geo, "mortality_rate"), width=None)
    else:
        st.info(f"No county shapefile at {config.COUNTY_SHP}; map skipped.")


if __name__ == "__main__":
    main()
