"""
surveytidy: data-frame verbs for survey design objects.

Every verb takes a SurveyDesign and returns a new one, keeping what
design-based variance estimation needs:

    - design variables (weights, clusters, strata, fpc, replicate weights)
      are never dropped
    - filter() marks a domain instead of removing rows
    - verbs that do remove rows say so (PhysicalSubsetWarning)

Typical use:

    import surveytidy as st

    d = st.as_survey(df, weights="wt", ids="psu", strata="strata")
    d = st.filter(d, "y1 > 50")
    d = st.mutate(st.group_by(d, "group"), y1_mean=st.FunctionCall("mean", (st.VariableReference("y1"),)))
"""

import logging

from surveytidy.columns import pull, relocate, rename, rename_with, select
from surveytidy.construct import DesignConstructionError, as_survey, as_survey_rep, as_survey_twophase
from surveytidy.design import (
    DOMAIN_COLUMN,
    DesignKind,
    DesignVariables,
    LinearizationSpec,
    ReplicateSpec,
    RowwiseState,
    SurveyDesign,
    TwoPhaseSpec,
    is_design_variable,
    protected_columns,
    with_data,
    with_domain,
)
from surveytidy.errors import (
    ColumnNotFoundError,
    ComputedOverDesignVariableWarning,
    DeduplicatingOnDesignVariableWarning,
    DesignInvariantError,
    DesignVariableRemovedError,
    DuplicateColumnError,
    EmptyDomainWarning,
    EmptyResultError,
    InvalidRenameFunctionError,
    NonLogicalPredicateError,
    PhysicalSubsetWarning,
    RenamedDesignVariableWarning,
    ReservedColumnError,
    SampleWeightIndependentOfDesignWarning,
    SurveytidyError,
    SurveytidyWarning,
    UnsupportedGroupingArgumentError,
)
from surveytidy.expressions import (
    BinaryExpression,
    BinaryOperator,
    Expression,
    FunctionCall,
    Literal,
    UnaryExpression,
    UnaryOperator,
    VariableReference,
)
from surveytidy.filtering import drop_na, exclude, filter, filter_out, subset
from surveytidy.grouping import group_by, group_vars, is_grouped, is_rowwise, rowwise, ungroup
from surveytidy.metadata import LabelStore
from surveytidy.mutate import c_across, mutate
from surveytidy.rows import (
    arrange,
    desc,
    distinct,
    slice,
    slice_head,
    slice_max,
    slice_min,
    slice_sample,
    slice_tail,
)
from surveytidy.selectors import (
    AllOf,
    AnyOf,
    Contains,
    EndsWith,
    Everything,
    Matches,
    Not,
    StartsWith,
    Where,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
