# county_mortality/data_processing/pipeline.py
"""
Raw source tables -> one county_data table.

poverty (fips) + mortality (fips, label, rate) are joined on the numeric code,
the state comes from fips // 1000 through the state code table, and opioid
prescribing rates (bare county name + state) are joined on the composite label
key "<name>, <ST>".
"""
import numpy as np
import pandas as pd

from config import (MORTALITY_COLUMNS, OPIOID_COLUMNS, POVERTY_COLUMNS, SENTINELS,
                    STATE_CODE_COLUMNS)
from data_processing.errors import ReconciliationError
from data_processing.features import coerce_numeric, standardize
from data_processing.joins import join
from data_processing.keys import CorrectionTable, reconcile_codes, reconcile_labels
from data_processing.schema import normalize_schema
from utils.log import Step, stamp

CANONICAL_COLUMNS = ["fips", "poverty_rate", "county", "mortality_rate", "state_code", "state",
                     "county_key", "opioid_rate", "poverty_z", "opioid_z"]


def as_corrections(corrections):
    if corrections is None or isinstance(corrections, CorrectionTable):
        return corrections
    if isinstance(corrections, pd.DataFrame):
        return CorrectionTable.from_frame(corrections)
    return CorrectionTable(dict(corrections))


def build_county_data(poverty: pd.DataFrame, mortality: pd.DataFrame, state_codes: pd.DataFrame,
                      opioid: pd.DataFrame = None, corrections=None, how="inner",
                      poverty_columns=POVERTY_COLUMNS, mortality_columns=MORTALITY_COLUMNS,
                      opioid_columns=OPIOID_COLUMNS, state_code_columns=STATE_CODE_COLUMNS,
                      sentinels=SENTINELS) -> pd.DataFrame:
    corrections = as_corrections(corrections)

    with Step("Normalize source schemas"):
        pov    = normalize_schema(poverty, poverty_columns, source="poverty table")
        mort   = normalize_schema(mortality, mortality_columns, source="mortality table")
        states = normalize_schema(state_codes, state_code_columns, source="state code table")
        pov    = reconcile_codes(pov, "fips")
        mort   = reconcile_codes(mort, "fips")
        states = reconcile_codes(states, "state_code")

    with Step("Join poverty + mortality on fips"):
        df = join(pov, mort, on="fips", how=how)
        df = coerce_numeric(df, ["poverty_rate", "mortality_rate"], sentinels)
        stamp(f"county rows={len(df)}, missing mortality={int(df['mortality_rate'].isna().sum())}")

    with Step("Attach state from fips"):
        df["state_code"] = df["fips"] // 1000
        df = join(df, states, on="state_code", how="left", many_side="left")
        missing = df["state"].isna()
        if missing.any():
            code = int(df.loc[missing, "state_code"].iloc[0])
            raise ReconciliationError(f"State code {code} (fips {int(df.loc[missing, 'fips'].iloc[0])}) "
                                      f"is not in the state code table")
        df = reconcile_labels(df, "county", corrections, out="county_key", skip_missing=True)

    if opioid is not None:
        with Step("Join opioid prescribing rates on county label"):
            opi = normalize_schema(opioid, opioid_columns, source="opioid table")
            opi = reconcile_labels(opi, "opioid_county", corrections, state_column="state", out="county_key")
            opi = coerce_numeric(opi, ["opioid_rate"], sentinels)
            df = join(df, opi[["county_key", "opioid_rate"]], on="county_key", how="left")
            stamp(f"opioid matched={int(df['opioid_rate'].notna().sum())} of {len(df)} counties")
    else:
        df["opioid_rate"] = np.nan

    with Step("Standardize predictors"):
        df = standardize(df, ["poverty_rate"])
        df = standardize(df, ["opioid_rate"]) if opioid is not None else df.assign(opioid_z=np.nan)

    return df[CANONICAL_COLUMNS]
