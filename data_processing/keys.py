# county_mortality/data_processing/keys.py
"""
Join-key reconciliation.

Two key spaces are used: integer county codes (FIPS) and composite labels of
the form "<name>, <ST>" built from free-text county names. Known spelling
mismatches between sources go through an explicit CorrectionTable, never a
fuzzy matcher.
"""
import re

import numpy as np
import pandas as pd

from config import ADMIN_SUFFIXES
from data_processing.errors import ReconciliationError
from data_processing.schema import require_columns

_STATE_RE = re.compile(r"^[A-Za-z]{2}$")
_CODE_RE  = re.compile(r"^\d+(\.0+)?$")


# ---------- numeric codes ----------
def normalize_code(value):
    """Return a county/state code as int. '01001', 1001 and 1001.0 all give 1001."""
    if isinstance(value, (bool, np.bool_)):
        raise ReconciliationError(f"Not a numeric code: {value!r}")
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        if np.isfinite(value) and float(value).is_integer():
            return int(value)
        raise ReconciliationError(f"Not a numeric code: {value!r}")
    s = str(value).strip()
    if not _CODE_RE.match(s):
        raise ReconciliationError(f"Not a numeric code: {value!r}")
    return int(float(s)) if "." in s else int(s)


def reconcile_codes(df: pd.DataFrame, column: str, out: str = None) -> pd.DataFrame:
    require_columns(df, [column])
    df = df.copy()
    bad = df[column].isna()
    if bad.any():
        raise ReconciliationError(f"Column '{column}' has missing code at row {df.index[bad][0]!r}")
    df[out or column] = df[column].map(normalize_code).astype("int64")
    return df


# ---------- composite labels ----------
def _suffix_pattern(suffixes):
    alts = sorted((re.escape(s.lower()) for s in suffixes), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(alts) + r")\b")


_DEFAULT_SUFFIX_RE = _suffix_pattern(ADMIN_SUFFIXES)


def clean_county_name(name, suffixes=None):
    pat = _DEFAULT_SUFFIX_RE if suffixes is None else _suffix_pattern(suffixes)
    s = str(name).strip().lower()
    s = pat.sub(" ", s)
    s = re.sub(r"\s+", " ", s).strip()
    if not s:
        raise ReconciliationError(f"County name {name!r} is empty after removing suffixes")
    return s


def make_label(name, state, suffixes=None):
    if pd.isna(name) or pd.isna(state):
        raise ReconciliationError(f"Missing county name or state: {name!r}, {state!r}")
    st = str(state).strip()
    if not _STATE_RE.match(st):
        raise ReconciliationError(f"Unrecognized state abbreviation {state!r} for county {name!r}")
    return f"{clean_county_name(name, suffixes)}, {st.upper()}"


def normalize_label(label, suffixes=None):
    """'Autauga County, AL' -> 'autauga, AL'. Canonical labels come back unchanged."""
    if pd.isna(label):
        raise ReconciliationError("Missing county label")
    name, sep, state = str(label).rpartition(",")
    if not sep or not _STATE_RE.match(state.strip()):
        raise ReconciliationError(f"Label {label!r} has no recognizable state suffix")
    return make_label(name, state, suffixes)


def raw_label_key(label):
    """'Baltimore  City, md' -> 'baltimore city, MD': case and spacing only, suffixes kept."""
    if pd.isna(label):
        raise ReconciliationError("Missing county label")
    name, sep, state = str(label).rpartition(",")
    if not sep or not _STATE_RE.match(state.strip()):
        raise ReconciliationError(f"Label {label!r} has no recognizable state suffix")
    name = re.sub(r"\s+", " ", name).strip().lower()
    if not name:
        raise ReconciliationError(f"Label {label!r} has no county name")
    return f"{name}, {state.strip().upper()}"


class CorrectionTable:
    """
    Explicit raw-label -> canonical-label fixes (diacritics, renamed counties,
    independent cities sharing a name with a county).

    Sources are matched on the raw label before suffix removal, so
    "Baltimore city, MD" and "Baltimore County, MD" stay distinct. Targets are
    stored as normalized keys.
    """

    def __init__(self, mapping=None):
        self._map = {}
        self._targets = set()
        for raw, canon in (mapping or {}).items():
            self.add(raw, canon)

    @classmethod
    def from_frame(cls, df, raw="raw_label", canonical="canonical_label"):
        require_columns(df, [raw, canonical], "correction table")
        return cls(dict(zip(df[raw], df[canonical])))

    def add(self, raw, canonical):
        src, dst_raw = raw_label_key(raw), raw_label_key(canonical)
        dst = normalize_label(canonical)
        if src == dst_raw:
            return
        if dst_raw in self._map:
            raise ReconciliationError(f"Correction target {canonical!r} is itself corrected to {self._map[dst_raw]!r}")
        if src in self._targets:
            raise ReconciliationError(f"Correction source {raw!r} is already a correction target")
        if src in self._map and self._map[src] != dst:
            raise ReconciliationError(f"Conflicting corrections for {src!r}: {self._map[src]!r} vs {dst!r}")
        self._map[src] = dst
        self._targets.add(dst_raw)

    def get(self, label, default=None):
        return self._map.get(raw_label_key(label), default)

    def lookup(self, label):
        """Canonical key for a listed raw label, anything else unchanged."""
        return self.get(label, label)

    def to_frame(self):
        return pd.DataFrame(sorted(self._map.items()), columns=["raw_label", "canonical_label"])

    def __len__(self): return len(self._map)
    def __contains__(self, label): return raw_label_key(label) in self._map


def reconcile_labels(df: pd.DataFrame, column: str, corrections: CorrectionTable = None,
                     state_column: str = None, out: str = "county_key", suffixes=None,
                     skip_missing=False) -> pd.DataFrame:
    """
    Attach the canonical composite label key.

    With `state_column` the label is built from a bare county name plus a state
    abbreviation column, otherwise `column` must already read "<name>, <ST>".
    skip_missing leaves the key missing where the label is missing instead of
    raising (unmatched rows of a left join).
    """
    require_columns(df, [column] + ([state_column] if state_column else []))
    df = df.copy()
    states = df[state_column] if state_column else [None] * len(df)
    keys = []
    for name, st in zip(df[column], states):
        if skip_missing and pd.isna(name):
            keys.append(None)
            continue
        k = make_label(name, st, suffixes) if state_column else normalize_label(name, suffixes)
        if corrections is not None:
            k = corrections.get(f"{name}, {st}" if state_column else name, k)
        keys.append(k)
    df[out] = pd.Series(keys, index=df.index, dtype=object)
    return df
