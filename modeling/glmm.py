# county_mortality/modeling/glmm.py
"""
Poisson / log-link GLMM with one random intercept per group, fit by penalized
quasi-likelihood (PQL).

Inner loop: for a fixed between-group variance tau2 the group intercepts b are
extra coefficients with a ridge penalty 1/tau2 (a N(0, tau2) prior), and the
fixed effects and b are refit jointly by IRLS on

    [X'WX     X'WZ        ] [beta]   [X'Wz]
    [Z'WX     Z'WZ + I/tau2] [b   ] = [Z'Wz]

until the penalized deviance dev + sum(b^2)/tau2 settles.

Outer loop: tau2 is updated with the restricted-likelihood fixed point

    tau2 <- sum(b^2) / (q - tr(C_bb) / tau2)

where C_bb is the b-block of the inverse penalized information, until tau2
moves by less than outer_tol. Near tau2 = 0 the fixed point converges
slowly, so every second step is Aitken-extrapolated; an estimate at
TAU2_FLOOR means no detectable between-group variance.

A group with little information (few rows, small counts) gets a small Z'WZ
entry, so the penalty dominates and its intercept is pulled toward 0 harder
than a data-rich group with the same raw deviation.
"""
from dataclasses import dataclass

import numpy as np
import pandas as pd

from config import (GLMM_MAX_ITER, GLMM_OUTER_MAX_ITER, GLMM_OUTER_TOL, GLMM_TAU2_START,
                    GLMM_TOL)
from data_processing.errors import ConvergenceError, DesignError
from modeling.design import INTERCEPT, DesignMatrix
from modeling.glm import MU_START_SHIFT, check_rank, poisson_deviance, solve

TAU2_FLOOR = 1e-8


@dataclass(frozen=True)
class GLMMResult:
    params: pd.Series
    bse: pd.Series
    tau2: float
    random_effects: pd.DataFrame
    deviance: float
    nobs: int
    iterations: int
    outer_iterations: int
    fitted: np.ndarray
    index: pd.Index
    group_name: str = None
    resid_var: float = 1.0

    @property
    def tau(self): return float(np.sqrt(self.tau2))

    def group_intercepts(self):
        """Per-group intercept = fixed intercept + random offset."""
        return self.random_effects.assign(intercept=self.params[INTERCEPT] + self.random_effects["ranef"])

    def summary_frame(self):
        return (self.params.rename("coef").to_frame()
                .join(self.bse.rename("se"))
                .assign(z=lambda d: d.coef / d.se))


def _pql_inner(A, y, offset, p, tau2, eta, columns, tol, max_iter):
    q = A.shape[1] - p
    pen = np.r_[np.zeros(p), np.full(q, 1.0 / tau2)]
    with np.errstate(over="ignore"):
        mu = np.exp(eta)
    obj_old = poisson_deviance(y, mu)
    obj = obj_old
    for it in range(1, max_iter + 1):
        w = mu
        z = eta - offset + (y - mu) / mu
        Aw = A * w[:, None]
        theta = solve(A.T @ Aw + np.diag(pen), Aw.T @ z, columns)
        eta = A @ theta + offset
        with np.errstate(over="ignore"):
            mu = np.exp(eta)
        dev = poisson_deviance(y, mu)
        obj = dev + float(np.sum(theta[p:]**2)) / tau2
        if not np.isfinite(obj):
            raise ConvergenceError(f"PQL penalized deviance is not finite (tau2={tau2:.4g})", it, obj)
        if abs(obj - obj_old) / (abs(obj) + 0.1) < tol:
            H = A.T @ (A * mu[:, None]) + np.diag(pen)
            C = solve(H, np.eye(len(theta)), columns)
            return theta, eta, mu, dev, C, it
        obj_old = obj
    raise ConvergenceError(f"PQL inner loop did not converge in {max_iter} iterations (tau2={tau2:.4g})",
                           max_iter, obj)


def _aitken(x0, x1, x2):
    """Limit of a monotone, linearly converging sequence from its last three terms, else None."""
    if x1 == x0:
        return None
    r = (x2 - x1) / (x1 - x0)
    if not 0 < r < 1:
        return None
    return x2 + (x2 - x1) * r / (1 - r)


def fit_glmm(design: DesignMatrix, tau2=None, tau2_start=GLMM_TAU2_START, tol=GLMM_TOL,
             max_iter=GLMM_MAX_ITER, outer_tol=GLMM_OUTER_TOL,
             outer_max_iter=GLMM_OUTER_MAX_ITER) -> GLMMResult:
    """
    Fit the random-intercept model. Passing `tau2` fixes the variance
    component and skips the outer loop.
    """
    if design.groups is None:
        raise DesignError("fit_glmm needs a design built with a group column")
    X, y, off, cols = design.X, design.y, design.offset, design.columns
    n, p = X.shape
    q = design.n_groups
    check_rank(X, cols)

    Z = np.zeros((n, q))
    Z[np.arange(n), design.groups] = 1.0
    A = np.hstack([X, Z])
    all_cols = list(cols) + [f"{design.group_name}[{g}]" for g in design.group_labels]

    fixed = tau2 is not None
    cur = float(tau2 if fixed else tau2_start)
    if cur <= 0:
        raise ValueError(f"tau2 must be positive, got {cur}")

    eta = np.log(y + MU_START_SHIFT)
    total_inner = 0
    trail = [cur]
    for outer in range(1, outer_max_iter + 1):
        theta, eta, mu, dev, C, it = _pql_inner(A, y, off, p, cur, eta, all_cols, tol, max_iter)
        total_inner += it
        if fixed:
            break
        b = theta[p:]
        edf = q - np.trace(C[p:, p:]) / cur
        new = float(np.sum(b**2) / edf) if edf > 0 else TAU2_FLOOR
        new = max(new, TAU2_FLOOR)
        if abs(new - cur) < outer_tol:
            break
        trail.append(new)
        if len(trail) == 3:
            jump = _aitken(*trail)
            if jump is not None:
                new = max(jump, TAU2_FLOOR)
            trail = [new]
        cur = new
    else:
        raise ConvergenceError(f"PQL variance-component loop did not converge in {outer_max_iter} "
                               f"iterations (tau2={cur:.4g})", outer_max_iter, dev)

    se = np.sqrt(np.diag(C))
    counts = np.bincount(design.groups, minlength=q)
    ranef = pd.DataFrame({"group": list(design.group_labels), "ranef": theta[p:],
                          "se": se[p:], "n": counts})
    return GLMMResult(
        params=pd.Series(theta[:p], index=cols, name="coef"),
        bse=pd.Series(se[:p], index=cols, name="se"),
        tau2=cur, random_effects=ranef, deviance=dev, nobs=n,
        iterations=total_inner, outer_iterations=outer,
        fitted=mu, index=design.index, group_name=design.group_name,
    )
