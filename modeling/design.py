# county_mortality/modeling/design.py
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from data_processing.errors import DesignError
from data_processing.schema import require_columns

INTERCEPT = "Intercept"


@dataclass(frozen=True)
class DesignMatrix:
    """Intercept + predictor columns, outcome, log-exposure offset and optional group codes."""
    X: np.ndarray
    y: np.ndarray
    columns: Tuple[str, ...]
    index: pd.Index
    offset: np.ndarray
    groups: Optional[np.ndarray] = None
    group_labels: Tuple = ()
    group_name: Optional[str] = None
    n_dropped: int = 0

    @property
    def nobs(self): return len(self.y)

    @property
    def n_groups(self): return len(self.group_labels)


def build_design(df: pd.DataFrame, outcome: str, predictors: Sequence[str], group: str = None,
                 exposure: str = None) -> DesignMatrix:
    """
    Rows with a missing value in any used column are dropped before fitting;
    they stay in `df`, only the design skips them.
    """
    predictors = list(predictors)
    used = [outcome] + predictors + [c for c in (group, exposure) if c]
    require_columns(df, used, "model table")
    if len(set(used)) != len(used):
        raise DesignError(f"Columns used more than once in the design: {used}")

    complete = df[used].notna().all(axis=1)
    sub = df.loc[complete, used]
    if sub.empty:
        raise DesignError(f"No complete rows for outcome '{outcome}' and predictors {predictors}")

    y = sub[outcome].to_numpy(dtype=float)
    if (y < 0).any():
        raise DesignError(f"Outcome '{outcome}' has negative value at row {sub.index[y < 0][0]!r}")

    X = np.column_stack([np.ones(len(sub))] + [sub[c].to_numpy(dtype=float) for c in predictors])

    offset = np.zeros(len(sub))
    if exposure:
        e = sub[exposure].to_numpy(dtype=float)
        if (e <= 0).any():
            raise DesignError(f"Exposure '{exposure}' must be positive; row {sub.index[e <= 0][0]!r}")
        offset = np.log(e)

    codes, labels = None, ()
    if group:
        codes, uniq = pd.factorize(sub[group], sort=True)
        labels = tuple(uniq.tolist())

    return DesignMatrix(X=X, y=y, columns=tuple([INTERCEPT] + predictors), index=sub.index,
                        offset=offset, groups=codes, group_labels=labels, group_name=group,
                        n_dropped=int((~complete).sum()))
