# county_mortality/data_processing/errors.py
"""
Error categories raised by the pipeline.

Schema/key errors halt the pipeline on malformed or mismatched inputs,
data-quality errors come from the sanitizer, numerical errors from the solvers.
"""


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


# ---------- schema / key ----------
class SchemaError(PipelineError, KeyError):
    def __str__(self):
        return str(self.args[0]) if self.args else ""


class ReconciliationError(PipelineError, ValueError):
    pass


class JoinError(PipelineError, ValueError):
    pass


class AmbiguityError(JoinError):
    pass


# ---------- data quality ----------
class TypeCoercionError(PipelineError, ValueError):
    def __init__(self, column, row, value):
        self.column, self.row, self.value = column, row, value
        super().__init__(f"Column '{column}' row {row!r}: cannot parse {value!r} as a number")


class StandardizationError(PipelineError, ValueError):
    pass


class DesignError(PipelineError, ValueError):
    pass


# ---------- numerical ----------
class NumericalError(PipelineError, RuntimeError):
    pass


class SingularDesignError(NumericalError):
    pass


class ConvergenceError(NumericalError):
    def __init__(self, msg, iterations=None, deviance=None):
        self.iterations, self.deviance = iterations, deviance
        super().__init__(f"{msg} (iterations={iterations}, last deviance={deviance})")
