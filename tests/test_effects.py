import numpy as np
import pytest

from modeling.design import INTERCEPT, build_design
from modeling.effects import coefficient_table, fitted_at, group_intercepts, rate_ratio
from modeling.glm import fit_glm
from modeling.glmm import fit_glmm
from tests.conftest import grouped_frame


@pytest.fixture
def df():
    return grouped_frame([20, 30, 25, 8], [0.3, -0.2, 0.1, -0.3])


@pytest.fixture
def glmm(df):
    return fit_glmm(build_design(df, "y", ["x"], group="state"))


def test_fitted_at_group(glmm):
    out = fitted_at(glmm, "x", values=(-1.0, 1.0), group="S0")

    a = glmm.params[INTERCEPT] + group_intercepts(glmm).set_index("group").loc["S0", "ranef"]
    assert out.tolist() == pytest.approx(np.exp(a + glmm.params["x"] * np.array([-1.0, 1.0])).tolist())
    assert out.index.name == "x"


def test_group_intercepts(glmm):
    gi = group_intercepts(glmm)
    np.testing.assert_allclose(gi["intercept"], glmm.params[INTERCEPT] + gi["ranef"])
    assert "intercept" not in glmm.random_effects.columns


def test_fitted_at_population_level(df):
    glm = fit_glm(build_design(df, "y", ["x"]))

    out = fitted_at(glm, "x", values=[0.0])
    assert out.iloc[0] == pytest.approx(np.exp(glm.params[INTERCEPT]))


def test_fitted_at_errors(df, glmm):
    glm = fit_glm(build_design(df, "y", ["x"]))
    with pytest.raises(KeyError):
        fitted_at(glmm, "x", group="ZZ")
    with pytest.raises(KeyError):
        fitted_at(glmm, "opioid_z")
    with pytest.raises(TypeError):
        fitted_at(glm, "x", group="S0")


def test_rate_ratio(glmm):
    assert rate_ratio(glmm, "x") == pytest.approx(np.exp(2 * glmm.params["x"]))
    assert rate_ratio(glmm, "x", low=0, high=1) == pytest.approx(np.exp(glmm.params["x"]))


def test_coefficient_table(glmm):
    tab = coefficient_table(glmm)

    assert tab.columns.tolist() == ["coef", "se", "z", "exp_coef", "ci_low", "ci_high"]
    assert (tab["ci_low"] < tab["exp_coef"]).all()
    assert (tab["exp_coef"] < tab["ci_high"]).all()


def test_group_intercepts_method_matches(glmm):
    assert group_intercepts(glmm).equals(glmm.group_intercepts())
