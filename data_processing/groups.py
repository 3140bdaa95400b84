# county_mortality/data_processing/groups.py
import numpy as np
import pandas as pd

from config import MIN_GROUP_SIZE
from data_processing.schema import require_columns


def _pearson(x: pd.Series, y: pd.Series):
    x, y = x.astype(float), y.astype(float)
    n_complete = int((x.notna() & y.notna()).sum())
    # Series.corr drops incomplete pairs; NaN when fewer than 2 or no variance
    return (x.corr(y) if n_complete >= 2 else np.nan), n_complete


def summarize_groups(df: pd.DataFrame, group: str, outcome: str, predictor: str,
                     min_size=MIN_GROUP_SIZE) -> pd.DataFrame:
    """
    Per-group member count and outcome/predictor Pearson correlation.

    Pairs with a missing value are dropped from the correlation only; `n`
    counts every member. Groups with n <= min_size are flagged excluded.
    """
    require_columns(df, [group, outcome, predictor])
    rows = []
    for g, sub in df.dropna(subset=[group]).groupby(group, sort=True):
        r, n_complete = _pearson(sub[predictor], sub[outcome])
        rows.append({group: g, "n": len(sub), "n_complete": n_complete, "correlation": r})
    out = pd.DataFrame(rows, columns=[group, "n", "n_complete", "correlation"])
    out["included"] = out["n"] > min_size
    return out


def order_groups(summary: pd.DataFrame, ascending=True) -> pd.DataFrame:
    """Included groups sorted by their correlation (the ordering key)."""
    inc = summary[summary["included"]]
    return inc.sort_values("correlation", ascending=ascending, kind="mergesort", na_position="last").reset_index(drop=True)
