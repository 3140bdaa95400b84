# county_mortality/data_processing/schema.py
from typing import Mapping, Sequence

import pandas as pd

from data_processing.errors import SchemaError


def require_columns(df: pd.DataFrame, columns, source="table"):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(f"{source} is missing column(s) {missing}; got {df.columns[:10].tolist()}")


def normalize_schema(df: pd.DataFrame, rename: Mapping[str, str], keep: Sequence[str] = (),
                     source="table") -> pd.DataFrame:
    """
    Select and rename columns of a raw table into the canonical schema.

    Output columns are the renamed ones (in mapping order) followed by `keep`,
    rows stay in their original order.
    """
    if df.columns.duplicated().any():
        dup = df.columns[df.columns.duplicated()].tolist()
        raise SchemaError(f"{source} has duplicate column name(s) {dup}")
    src = list(rename) + [c for c in keep if c not in rename]
    require_columns(df, src, source)

    out_names = [rename.get(c, c) for c in src]
    dup = sorted({n for n in out_names if out_names.count(n) > 1})
    if dup:
        raise SchemaError(f"{source}: rename produces duplicate column(s) {dup}")

    out = df[src].copy()
    out.columns = out_names
    return out
