import numpy as np
import pandas as pd
import pytest

from data_processing.errors import StandardizationError, TypeCoercionError
from data_processing.features import coerce_numeric, coerce_series, standardize


def test_sentinels_become_missing():
    s = pd.Series(["12.5", "Unreliable", "3", "  suppressed ", None, "", "0.0"], name="rate")

    out = coerce_series(s)

    assert out.dtype == np.float64
    assert out.iloc[[0, 2, 6]].tolist() == [12.5, 3.0, 0.0]
    assert out.iloc[[1, 3, 4, 5]].isna().all()


def test_numeric_values_untouched():
    s = pd.Series([1.25, 2, 1e-7, 123456.789])
    assert coerce_series(s).tolist() == [1.25, 2.0, 1e-7, 123456.789]


@pytest.mark.parametrize("bad", ["abc", "12,5", "n/a", "nan", "inf"])
def test_unrecognized_text_is_hard_error(bad):
    df = pd.DataFrame({"rate": ["1.0", bad]}, index=["a", "b"])

    with pytest.raises(TypeCoercionError) as exc:
        coerce_numeric(df, ["rate"])

    assert exc.value.column == "rate"
    assert exc.value.row == "b"
    assert exc.value.value == bad


def test_custom_sentinels():
    s = pd.Series(["1", "**"])
    assert coerce_series(s, sentinels=["**"]).isna().tolist() == [False, True]
    with pytest.raises(TypeCoercionError):
        coerce_series(pd.Series(["Unreliable"]), sentinels=["**"])


def test_int_dtype():
    out = coerce_series(pd.Series(["1", "2", "Unreliable"]), dtype="int")
    assert str(out.dtype) == "Int64"
    assert out.iloc[:2].tolist() == [1, 2]
    assert pd.isna(out.iloc[2])

    with pytest.raises(TypeCoercionError):
        coerce_series(pd.Series(["1.5"]), dtype="int")


def test_standardize():
    df = pd.DataFrame({"poverty_rate": [1.0, 2.0, 3.0, np.nan]})

    out, params = standardize(df, ["poverty_rate"], return_params=True)

    assert out["poverty_rate_z"].iloc[:3].tolist() == pytest.approx([-1.0, 0.0, 1.0])
    assert pd.isna(out["poverty_rate_z"].iloc[3])
    assert params["poverty_rate"] == pytest.approx((2.0, 1.0))
    assert "poverty_rate_z" not in df.columns


@pytest.mark.parametrize("values", [[5.0, 5.0, 5.0], [1.0, np.nan], [np.nan, np.nan]])
def test_degenerate_predictor(values):
    with pytest.raises(StandardizationError):
        standardize(pd.DataFrame({"x": values}), ["x"])


@pytest.mark.parametrize("bad", [np.inf, -np.inf, float("inf")])
def test_numeric_infinity_is_hard_error(bad):
    s = pd.Series([1.0, bad], index=["a", "b"], name="mortality_rate", dtype=object)

    with pytest.raises(TypeCoercionError) as exc:
        coerce_series(s)

    assert exc.value.row == "b"
