import joblib
import numpy as np
import pandas as pd

from modeling.design import build_design
from modeling.glmm import GLMMResult

_model = None


def save_model(model, path="results/glmm.pkl"):
    joblib.dump(model, path)
    return path


def load_model(path="results/glmm.pkl"):
    global _model
    _model = joblib.load(path)
    return _model


def predict_rates(county_df: pd.DataFrame, model=None) -> pd.Series:
    """
    Fitted rates for rows of county_df with complete predictors; the outcome
    may be missing. Groups the GLMM never saw get the population intercept.
    """
    model = model if model is not None else _model
    if model is None:
        raise RuntimeError("No model loaded; call load_model() or pass model=")
    predictors = list(model.params.index[1:])
    group = model.group_name if isinstance(model, GLMMResult) else None
    design = build_design(county_df.assign(_placeholder=0.0), "_placeholder", predictors, group=group)
    eta = design.X @ model.params.to_numpy()
    if group:
        re = model.random_effects.set_index("group")["ranef"]
        labels = np.asarray(design.group_labels, dtype=object)[design.groups]
        eta = eta + pd.Series(labels).map(re).fillna(0.0).to_numpy()
    return pd.Series(np.exp(eta), index=design.index, name="fitted_rate")
