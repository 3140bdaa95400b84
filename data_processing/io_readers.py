# county_mortality/data_processing/io_readers.py
from pathlib import Path

import geopandas as gpd
import pandas as pd

from config import CORRECTION_COLUMNS, MORTALITY_COLUMNS
from data_processing.keys import CorrectionTable, reconcile_codes
from data_processing.schema import normalize_schema, require_columns
from utils.log import stamp


def read_table(path, **kw):
    """CSV or Excel, every cell as text so the sanitizer sees the raw markers."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Missing file: {path}")
    if p.suffix.lower() in (".xlsx", ".xlsm", ".xls"):
        return pd.read_excel(p, dtype=str, **kw)
    return pd.read_csv(p, dtype=str, keep_default_na=False, na_values=[], low_memory=False, **kw)


def read_poverty_data(path):
    return read_table(path)


def read_mortality_data(path):
    df = read_table(path)
    code_col = next(raw for raw, canon in MORTALITY_COLUMNS.items() if canon == "fips")
    require_columns(df, [code_col], f"mortality file {path}")
    # WONDER exports append free-text "Notes" rows without a county code
    notes = df[code_col].str.strip() == ""
    if notes.any():
        stamp(f"Dropping {int(notes.sum())} note rows without '{code_col}' from {path}")
    return df[~notes].reset_index(drop=True)


def read_opioid_data(path):
    return read_table(path)


def read_state_codes(path):
    return read_table(path)


def read_corrections(path):
    df = normalize_schema(read_table(path), CORRECTION_COLUMNS, source=f"correction file {path}")
    return CorrectionTable.from_frame(df)


def read_county_geometries(path, id_col="GEOID"):
    gdf = gpd.read_file(path)
    require_columns(gdf, [id_col], f"geometry file {path}")
    return reconcile_codes(gdf, id_col, out="fips")
