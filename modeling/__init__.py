# county_mortality/modeling/__init__.py
from .design import DesignMatrix, build_design, INTERCEPT
from .glm import GLMResult, fit_glm, poisson_deviance
from .glmm import GLMMResult, fit_glmm
from .effects import fitted_at, group_intercepts, rate_ratio, coefficient_table
