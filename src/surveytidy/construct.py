"""
Design constructors (raw DataFrame -> SurveyDesign).

These build the initial design record. They check that every named
column exists and that the weights are numeric, copy the data onto a
fresh RangeIndex, and seed the label store.

Column arguments take names; ``ids`` and ``repweights`` also accept a
selection (see surveytidy.selectors) resolving to several columns.
"""

from typing import Any, Dict, List, Optional

import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from surveytidy.design import (
    DesignVariables,
    LinearizationSpec,
    ReplicateSpec,
    SurveyDesign,
    TwoPhaseSpec,
)
from surveytidy.errors import ColumnNotFoundError, SurveytidyError
from surveytidy.metadata import LabelStore
from surveytidy.selectors import resolve


class DesignConstructionError(SurveytidyError, ValueError):
    """Raised when constructor arguments do not describe a valid design."""
    pass


def _optional_column(data: pd.DataFrame, name: Optional[str]) -> Optional[str]:
    if name is not None and name not in data.columns:
        raise ColumnNotFoundError([name])
    return name


def _columns(data: pd.DataFrame, selection: Any) -> List[str]:
    if selection is None:
        return []
    return resolve(selection, data.columns, data)


def _check_weights(data: pd.DataFrame, weights: str) -> str:
    _optional_column(data, weights)
    if not is_numeric_dtype(data[weights]) or is_bool_dtype(data[weights]):
        raise DesignConstructionError(f"Weight column '{weights}' must be numeric")
    return weights


def _prepare(data: pd.DataFrame) -> pd.DataFrame:
    if not isinstance(data, pd.DataFrame):
        raise DesignConstructionError(f"data must be a pandas DataFrame, not {type(data).__name__}")
    return data.reset_index(drop=True).copy()


def as_survey(
    data: pd.DataFrame,
    weights: str,
    ids: Any = None,
    strata: Optional[str] = None,
    fpc: Optional[str] = None,
    nest: bool = False,
    probs: bool = False,
    labels: Optional[Dict[str, str]] = None,
) -> SurveyDesign:
    """
    Build a Taylor-series linearization design.

    Args:
        data: Survey data
        weights: Weight column
        ids: Cluster/PSU column(s), outermost first
        strata: Stratum column
        fpc: Finite population correction column
        nest: Cluster ids are nested within strata
        probs: ``weights`` holds selection probabilities
        labels: Variable labels keyed by column name
    """
    data = _prepare(data)
    variables = DesignVariables(
        weights=_check_weights(data, weights),
        ids=tuple(_columns(data, ids)),
        strata=_optional_column(data, strata),
        fpc=_optional_column(data, fpc),
        nest=nest,
        probs=probs,
    )
    return SurveyDesign(
        data=data,
        variables=LinearizationSpec(variables),
        metadata=LabelStore(variable_labels=dict(labels or {})),
    )


def as_survey_rep(
    data: pd.DataFrame,
    weights: str,
    repweights: Any,
    type: str = "bootstrap",
    labels: Optional[Dict[str, str]] = None,
) -> SurveyDesign:
    """
    Build a replicate-weight design.

    Args:
        weights: Full-sample weight column
        repweights: Selection resolving to the replicate weight columns
        type: Replicate method ("BRR", "Fay", "JK1", "JKn", "bootstrap", ...)
    """
    data = _prepare(data)
    rep_cols = _columns(data, repweights)
    if not rep_cols:
        raise DesignConstructionError("repweights must select at least one column")
    for col in rep_cols:
        if not is_numeric_dtype(data[col]):
            raise DesignConstructionError(f"Replicate weight column '{col}' must be numeric")
    variables = DesignVariables(weights=_check_weights(data, weights), repweights=tuple(rep_cols))
    return SurveyDesign(
        data=data,
        variables=ReplicateSpec(variables, type=type),
        metadata=LabelStore(variable_labels=dict(labels or {})),
    )


def as_survey_twophase(
    phase1: SurveyDesign,
    subset: str,
    ids: Any = None,
    strata: Optional[str] = None,
    probs: Optional[str] = None,
    fpc: Optional[str] = None,
    method: str = "full",
) -> SurveyDesign:
    """
    Build a two-phase design from a phase-1 linearization design.

    Args:
        phase1: The phase-1 design (must be a linearization design)
        subset: Boolean column marking phase-2 membership
        ids, strata, fpc: Phase-2 bindings
        probs: Phase-2 selection probability column
        method: Variance method tag
    """
    if not isinstance(phase1.variables, LinearizationSpec):
        raise DesignConstructionError("as_survey_twophase() needs a linearization phase-1 design")
    data = phase1.data
    _optional_column(data, subset)
    if not is_bool_dtype(data[subset]):
        raise DesignConstructionError(f"Subset column '{subset}' must be boolean")
    phase2 = DesignVariables(
        weights=_optional_column(data, probs),
        ids=tuple(_columns(data, ids)),
        strata=_optional_column(data, strata),
        fpc=_optional_column(data, fpc),
        probs=probs is not None,
    )
    return phase1.evolve(
        variables=TwoPhaseSpec(phase1=phase1.variables.variables, phase2=phase2, subset=subset, method=method),
    )
