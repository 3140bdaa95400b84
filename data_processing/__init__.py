# county_mortality/data_processing/__init__.py
from .errors import (
    PipelineError, SchemaError, ReconciliationError, JoinError, AmbiguityError,
    TypeCoercionError, StandardizationError, DesignError, SingularDesignError, ConvergenceError
)
from .schema import normalize_schema
from .keys import (
    CorrectionTable, normalize_code, reconcile_codes, clean_county_name, make_label,
    normalize_label, reconcile_labels
)
from .joins import join
from .features import coerce_numeric, standardize
from .groups import summarize_groups, order_groups
from .pipeline import build_county_data

# glm_training pulls in modeling, which imports data_processing.errors;
# import it directly from data_processing.glm_training to avoid the cycle
