# county_mortality/data_processing/joins.py
import numpy as np
import pandas as pd

from data_processing.errors import AmbiguityError, JoinError, SchemaError
from data_processing.schema import require_columns

_LPOS, _RPOS = "__left_pos", "__right_pos"


def _key_kind(s: pd.Series, side):
    if pd.api.types.is_bool_dtype(s):
        return "bool"
    if pd.api.types.is_numeric_dtype(s):
        return "numeric"
    vals = s.dropna()
    if vals.empty:
        return None
    kinds = {"numeric" if isinstance(v, (int, float, np.number)) and not isinstance(v, (bool, np.bool_)) else "text"
             for v in vals}
    if len(kinds) > 1:
        raise JoinError(f"Key column '{s.name}' in the {side} table mixes numeric and text values")
    return kinds.pop()


def _check_unique(df, on, side):
    keys = df[on].dropna()
    dup = keys[keys.duplicated()]
    if not dup.empty:
        raise AmbiguityError(
            f"Key {dup.iloc[0]!r} appears {int((keys == dup.iloc[0]).sum())} times in the {side} table; "
            f"name it as many_side or pass allow_duplicate_geometries=True")


def join(left: pd.DataFrame, right: pd.DataFrame, on: str, how="inner", many_side=None,
         allow_duplicate_geometries=False, suffixes=None) -> pd.DataFrame:
    """
    Equality join on one key column.

    how="inner" keeps matched rows only, how="left" also keeps unmatched left
    rows (right columns missing). Keys must be unique on every side other than
    `many_side` unless allow_duplicate_geometries fans the one side out.
    Rows come back matched-first in left order (fan-out in right order), then
    unmatched left rows in their original order. Missing keys never match.
    """
    if how not in ("inner", "left"):
        raise ValueError(f"how must be 'inner' or 'left', got {how!r}")
    if many_side not in (None, "left", "right"):
        raise ValueError(f"many_side must be None, 'left' or 'right', got {many_side!r}")
    require_columns(left, [on], "left table")
    require_columns(right, [on], "right table")

    lk, rk = _key_kind(left[on], "left"), _key_kind(right[on], "right")
    if lk and rk and lk != rk:
        raise JoinError(f"Key type mismatch on '{on}': left is {lk}, right is {rk}")

    if not allow_duplicate_geometries:
        if many_side != "left":
            _check_unique(left, on, "left")
        if many_side != "right":
            _check_unique(right, on, "right")

    overlap = [c for c in left.columns if c in right.columns and c != on]
    if overlap and suffixes is None:
        raise SchemaError(f"Columns {overlap} exist on both sides of the join on '{on}'; pass suffixes")

    lt = left.reset_index(drop=True).assign(**{_LPOS: np.arange(len(left))})
    rt = right.reset_index(drop=True).assign(**{_RPOS: np.arange(len(right))})

    matched = (lt[lt[on].notna()]
               .merge(rt[rt[on].notna()], on=on, how="inner", suffixes=suffixes or ("_x", "_y"))
               .sort_values([_LPOS, _RPOS], kind="mergesort"))
    cols = [c for c in matched.columns if c not in (_LPOS, _RPOS)]

    parts = [matched]
    if how == "left":
        unmatched = lt[~lt[_LPOS].isin(matched[_LPOS])]
        if suffixes is not None:
            unmatched = unmatched.rename(columns={c: c + suffixes[0] for c in overlap})
        parts.append(unmatched)
    parts = [p for p in parts if len(p)] or [matched]
    return pd.concat(parts, ignore_index=True, sort=False).reindex(columns=cols)
