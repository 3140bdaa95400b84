import numpy as np
import pandas as pd
import pytest

from data_processing.errors import ReconciliationError
from data_processing.keys import (
    CorrectionTable, clean_county_name, make_label, normalize_code, normalize_label,
    raw_label_key, reconcile_codes, reconcile_labels
)


@pytest.mark.parametrize("raw", ["01001", "1001", 1001, 1001.0, "1001.0", np.int64(1001)])
def test_normalize_code_variants(raw):
    assert normalize_code(raw) == 1001


@pytest.mark.parametrize("raw", ["abc", "10 01", 1001.5, True, ""])
def test_normalize_code_rejects(raw):
    with pytest.raises(ReconciliationError):
        normalize_code(raw)


def test_reconcile_codes_missing_value():
    df = pd.DataFrame({"fips": ["01001", None]})
    with pytest.raises(ReconciliationError, match="missing code"):
        reconcile_codes(df, "fips")


@pytest.mark.parametrize("name, expected", [
    ("Autauga County", "autauga"),
    ("Acadia Parish", "acadia"),
    ("Baltimore city", "baltimore"),
    ("Juneau City and Borough", "juneau"),
    ("Bethel Census Area", "bethel"),
    ("  St. Louis   County ", "st. louis"),
    ("Countyline", "countyline"),
])
def test_clean_county_name(name, expected):
    assert clean_county_name(name) == expected


def test_normalize_label():
    assert normalize_label("Autauga County, AL") == "autauga, AL"
    assert make_label("AUTAUGA", "al") == "autauga, AL"


@pytest.mark.parametrize("label", ["Autauga County, AL", "Acadia Parish, LA", "Doña Ana County, NM"])
def test_normalize_label_idempotent(label):
    once = normalize_label(label)
    assert normalize_label(once) == once


@pytest.mark.parametrize("label", ["Autauga County", "Autauga County, Alabama", "Autauga, A1", None])
def test_label_without_state_suffix(label):
    with pytest.raises(ReconciliationError):
        normalize_label(label)


def test_correction_table_lookup():
    table = CorrectionTable({"Doña Ana County, NM": "Dona Ana, NM"})

    assert table.lookup("Doña Ana County, NM") == "dona ana, NM"
    assert table.lookup("  DOÑA  ANA COUNTY, nm") == "dona ana, NM"
    assert table.lookup("Autauga County, AL") == "Autauga County, AL"
    assert "doña ana county, NM" in table
    assert len(table) == 1
    assert table.to_frame().to_dict("records") == [
        {"raw_label": "doña ana county, NM", "canonical_label": "dona ana, NM"}]


def test_raw_label_key_keeps_suffixes():
    assert raw_label_key("Baltimore  City, md") == "baltimore city, MD"
    assert raw_label_key("Baltimore County, MD") == "baltimore county, MD"
    with pytest.raises(ReconciliationError):
        raw_label_key("Baltimore City")


def test_correction_only_hits_its_own_raw_label():
    table = CorrectionTable({"Baltimore city, MD": "Baltimore City Independent, MD"})
    df = pd.DataFrame({"county": ["Baltimore city, MD", "Baltimore County, MD"]})

    out = reconcile_labels(df, "county", table)

    assert out["county_key"].tolist() == ["baltimore independent, MD", "baltimore, MD"]


def test_correction_table_rejects_conflicts():
    table = CorrectionTable({"Doña Ana County, NM": "Dona Ana, NM"})
    with pytest.raises(ReconciliationError):
        table.add("doña ana county, nm", "Las Cruces, NM")


def test_correction_table_rejects_chains():
    table = CorrectionTable({"a, AL": "b, AL"})
    with pytest.raises(ReconciliationError):
        table.add("b, AL", "c, AL")
    with pytest.raises(ReconciliationError):
        table.add("z, AL", "a, AL")


def test_reconcile_labels_name_and_state_columns():
    df = pd.DataFrame({"County": ["DONA ANA", "AUTAUGA"], "State": ["NM", "AL"]})
    table = CorrectionTable({"Doña Ana County, NM": "Dona Ana, NM"})

    out = reconcile_labels(df, "County", table, state_column="State")

    assert out["county_key"].tolist() == ["dona ana, NM", "autauga, AL"]


def test_reconcile_labels_skip_missing():
    df = pd.DataFrame({"county": ["Autauga County, AL", np.nan]})

    out = reconcile_labels(df, "county", skip_missing=True)
    assert out["county_key"].iloc[0] == "autauga, AL"
    assert pd.isna(out["county_key"].iloc[1])

    with pytest.raises(ReconciliationError):
        reconcile_labels(df, "county")
