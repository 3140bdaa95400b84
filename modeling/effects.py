# county_mortality/modeling/effects.py
import numpy as np
import pandas as pd

from config import EFFECT_VALUES
from modeling.design import INTERCEPT
from modeling.glmm import GLMMResult

Z_95 = 1.959963984540054


def _check_predictor(model, predictor):
    if predictor not in model.params.index or predictor == INTERCEPT:
        raise KeyError(f"Predictor {predictor!r} not in model coefficients {model.params.index.tolist()}")


def group_intercepts(model: GLMMResult) -> pd.DataFrame:
    return model.group_intercepts()


def _intercept_for(model, group):
    b0 = float(model.params[INTERCEPT])
    if group is None:
        return b0
    if not isinstance(model, GLMMResult):
        raise TypeError("Group-specific effects need a fitted GLMM")
    re = model.random_effects.set_index("group")["ranef"]
    if group not in re.index:
        raise KeyError(f"Unknown group {group!r}")
    return b0 + float(re[group])


def fitted_at(model, predictor, values=EFFECT_VALUES, group=None) -> pd.Series:
    """exp(intercept_g + coef * value) for each value, e.g. one sd below/above the mean."""
    _check_predictor(model, predictor)
    a = _intercept_for(model, group)
    v = np.asarray(values, dtype=float)
    return pd.Series(np.exp(a + float(model.params[predictor]) * v),
                     index=pd.Index(v, name=predictor), name="fitted")


def rate_ratio(model, predictor, low=-1.0, high=1.0):
    _check_predictor(model, predictor)
    return float(np.exp(model.params[predictor] * (high - low)))


def coefficient_table(model) -> pd.DataFrame:
    return (model.summary_frame()
            .assign(exp_coef=lambda d: np.exp(d.coef),
                    ci_low=lambda d: np.exp(d.coef - Z_95 * d.se),
                    ci_high=lambda d: np.exp(d.coef + Z_95 * d.se)))
