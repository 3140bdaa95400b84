# county_mortality/modeling/glm.py
"""
Poisson / log-link GLM fit by Iteratively Reweighted Least Squares.

Each step solves the weighted normal equations X'WX b = X'Wz with working
weights w = mu and working response z = eta + (y - mu)/mu. Iteration stops
when |dev - dev_old| / (|dev| + 0.1) < tol. A rank-deficient weighted design
or an exhausted iteration budget raises instead of returning a fit.

engine="statsmodels" fits the same model with statsmodels' GLM for
cross-checking.
"""
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm

from config import GLM_MAX_ITER, GLM_TOL
from data_processing.errors import ConvergenceError, SingularDesignError
from modeling.design import DesignMatrix

MU_START_SHIFT = 0.1


def poisson_deviance(y, mu):
    y, mu = np.asarray(y, dtype=float), np.asarray(mu, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        ylogy = np.where(y > 0, y * np.log(y / mu), 0.0)
    return float(2.0 * np.sum(ylogy - (y - mu)))


def check_rank(X, columns, w=None):
    Xw = X if w is None else X * np.sqrt(w)[:, None]
    rank = np.linalg.matrix_rank(Xw)
    if rank < X.shape[1]:
        raise SingularDesignError(
            f"Design has rank {rank} < {X.shape[1]} columns {list(columns)}; a predictor is constant or collinear")


def solve(A, b, columns):
    try:
        return np.linalg.solve(A, b)
    except np.linalg.LinAlgError as e:
        raise SingularDesignError(f"Normal equations are singular for columns {list(columns)}") from e


def irls(X, y, offset, columns, tol=GLM_TOL, max_iter=GLM_MAX_ITER):
    """Returns (beta, mu, deviance, iterations)."""
    mu = y + MU_START_SHIFT
    eta = np.log(mu)
    dev_old = poisson_deviance(y, mu)
    dev = dev_old
    for it in range(1, max_iter + 1):
        w = mu
        check_rank(X, columns, w)
        z = eta - offset + (y - mu) / mu
        Xw = X * w[:, None]
        beta = solve(X.T @ Xw, Xw.T @ z, columns)
        eta = X @ beta + offset
        with np.errstate(over="ignore"):
            mu = np.exp(eta)
        dev = poisson_deviance(y, mu)
        if not np.isfinite(dev):
            raise ConvergenceError("IRLS deviance is not finite", it, dev)
        if abs(dev - dev_old) / (abs(dev) + 0.1) < tol:
            return beta, mu, dev, it
        dev_old = dev
    raise ConvergenceError(f"IRLS did not converge in {max_iter} iterations", max_iter, dev)


@dataclass(frozen=True)
class GLMResult:
    params: pd.Series
    bse: pd.Series
    cov_params: pd.DataFrame
    deviance: float
    null_deviance: float
    df_resid: int
    df_null: int
    nobs: int
    iterations: int
    pearson_chi2: float
    fitted: np.ndarray
    index: pd.Index
    engine: str = "irls"

    @property
    def dispersion(self):
        return self.pearson_chi2 / self.df_resid if self.df_resid > 0 else np.nan

    def predict(self, X, offset=None):
        eta = np.asarray(X, dtype=float) @ self.params.to_numpy()
        return np.exp(eta if offset is None else eta + offset)

    def summary_frame(self):
        return (self.params.rename("coef").to_frame()
                .join(self.bse.rename("se"))
                .assign(z=lambda d: d.coef / d.se))


def fit_glm(design: DesignMatrix, tol=GLM_TOL, max_iter=GLM_MAX_ITER, engine="irls") -> GLMResult:
    X, y, off, cols = design.X, design.y, design.offset, design.columns
    n, p = X.shape
    if n <= p:
        raise SingularDesignError(f"{n} complete rows cannot identify {p} coefficients {list(cols)}")
    check_rank(X, cols)

    if engine == "statsmodels":
        return _fit_statsmodels(design, tol, max_iter)
    if engine != "irls":
        raise ValueError(f"Unknown engine {engine!r}")

    beta, mu, dev, it = irls(X, y, off, cols, tol, max_iter)
    _, _, null_dev, _ = irls(X[:, :1], y, off, cols[:1], tol, max_iter)

    info = X.T @ (X * mu[:, None])
    cov = solve(info, np.eye(p), cols)
    return GLMResult(
        params=pd.Series(beta, index=cols, name="coef"),
        bse=pd.Series(np.sqrt(np.diag(cov)), index=cols, name="se"),
        cov_params=pd.DataFrame(cov, index=cols, columns=cols),
        deviance=dev, null_deviance=null_dev,
        df_resid=n - p, df_null=n - 1, nobs=n, iterations=it,
        pearson_chi2=float(np.sum((y - mu)**2 / mu)),
        fitted=mu, index=design.index,
    )


def _fit_statsmodels(design, tol, max_iter):
    cols = list(design.columns)
    X = pd.DataFrame(design.X, columns=cols, index=design.index)
    model = sm.GLM(design.y, X, family=sm.families.Poisson(), offset=design.offset)
    res = model.fit(tol=tol, maxiter=max_iter)
    iterations = int(res.fit_history.get("iteration", max_iter))
    if not res.converged:
        raise ConvergenceError("statsmodels IRLS did not converge", iterations, float(res.deviance))
    return GLMResult(
        params=pd.Series(np.asarray(res.params), index=cols, name="coef"),
        bse=pd.Series(np.asarray(res.bse), index=cols, name="se"),
        cov_params=pd.DataFrame(np.asarray(res.cov_params()), index=cols, columns=cols),
        deviance=float(res.deviance), null_deviance=float(res.null_deviance),
        df_resid=int(res.df_resid), df_null=design.nobs - 1, nobs=design.nobs,
        iterations=iterations, pearson_chi2=float(res.pearson_chi2),
        fitted=np.asarray(res.fittedvalues), index=design.index, engine="statsmodels",
    )
