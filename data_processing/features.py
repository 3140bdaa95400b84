# county_mortality/data_processing/features.py
import numpy as np
import pandas as pd

from config import SENTINELS
from data_processing.errors import StandardizationError, TypeCoercionError
from data_processing.schema import require_columns


def _parse(value, column, row, dtype):
    if isinstance(value, (bool, np.bool_)):
        raise TypeCoercionError(column, row, value)
    if isinstance(value, (int, float, np.number)):
        num = value
    else:
        try:
            num = float(str(value).strip())
        except ValueError:
            raise TypeCoercionError(column, row, value) from None
    if not np.isfinite(num):
        raise TypeCoercionError(column, row, value)
    if dtype == "int":
        if not float(num).is_integer():
            raise TypeCoercionError(column, row, value)
        return int(num)
    return float(num)


def coerce_series(s: pd.Series, sentinels=SENTINELS, dtype="float") -> pd.Series:
    """Sentinel markers and nulls -> missing, everything else parsed or rejected."""
    if dtype not in ("float", "int"):
        raise ValueError(f"dtype must be 'float' or 'int', got {dtype!r}")
    marks = {str(m).strip().lower() for m in sentinels}
    vals = []
    for row, v in s.items():
        if v is None or (not isinstance(v, str) and pd.isna(v)) or (isinstance(v, str) and v.strip().lower() in marks):
            vals.append(None)
        else:
            vals.append(_parse(v, s.name, row, dtype))
    return pd.Series(vals, index=s.index, name=s.name, dtype="Int64" if dtype == "int" else "float64")


def coerce_numeric(df: pd.DataFrame, columns, sentinels=SENTINELS, dtype="float") -> pd.DataFrame:
    require_columns(df, columns)
    df = df.copy()
    for c in columns:
        df[c] = coerce_series(df[c], sentinels, dtype)
    return df


def zscore(s: pd.Series):
    x = pd.to_numeric(s, errors="raise").astype(float)
    mean, sd = x.mean(), x.std(ddof=1)
    if not np.isfinite(sd) or sd == 0:
        raise StandardizationError(f"Column '{s.name}' has standard deviation {sd} (degenerate predictor)")
    return (x - mean) / sd, float(mean), float(sd)


def standardize(df: pd.DataFrame, columns, suffix="_z", return_params=False):
    require_columns(df, columns)
    df = df.copy()
    params = {}
    for c in columns:
        df[c + suffix], mean, sd = zscore(df[c])
        params[c] = (mean, sd)
    return (df, params) if return_params else df
