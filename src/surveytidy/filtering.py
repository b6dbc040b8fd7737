"""
Domain estimation verbs: filter(), filter_out(), subset(), drop_na().

filter() MARKS rows as in-domain instead of removing them. Variance
estimation for a subpopulation needs every row of the design; removing
rows changes the design, marking them does not.

Domain state:
    - The boolean column DOMAIN_COLUMN in design.data is the single
      source of truth
    - design.domain_log accumulates a description of each condition
      (audit only, never used to recompute the mask)
    - Chained calls AND their masks together:
      filter(filter(d, A), B) has the same domain column as filter(d, A, B)

Missing values:
    - filter():     a missing predicate result means "out of domain"
    - filter_out(): a missing predicate result means "not excluded",
                    i.e. the row stays in-domain
    The asymmetry is deliberate: filter_out(d, P) equals filter(d, !P)
    wherever P is not missing.

subset() is the only verb here that physically removes rows.
"""

import logging
from typing import Any, List, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import infer_dtype, is_bool_dtype

from surveytidy.design import DOMAIN_COLUMN, SurveyDesign, with_data, with_domain
from surveytidy.errors import (
    EmptyResultError,
    NonLogicalPredicateError,
    UnsupportedGroupingArgumentError,
    warn_empty_domain,
    warn_physical_subset,
)
from surveytidy.evaluation import describe, evaluate
from surveytidy.selectors import resolve

logger = logging.getLogger(__name__)


def _as_logical(value: Any, index: int, predicate: Any, n: int) -> pd.Series:
    """Coerce one predicate result to a nullable boolean Series of length n."""
    if isinstance(value, (bool, np.bool_)):
        return pd.Series([bool(value)] * n, dtype="boolean")

    if isinstance(value, pd.Series):
        series = value.reset_index(drop=True)
    elif isinstance(value, (np.ndarray, list, pd.api.extensions.ExtensionArray)):
        series = pd.Series(value)
    else:
        raise NonLogicalPredicateError(index, type(value).__name__, describe(predicate))

    logical = is_bool_dtype(series.dtype) or (
        series.dtype == object and infer_dtype(series, skipna=True) in ("boolean", "empty")
    )
    if not logical:
        raise NonLogicalPredicateError(index, str(series.dtype), describe(predicate))
    if len(series) != n:
        raise ValueError(
            f"Filter condition {index} has length {len(series)}, expected {n} (one per row)."
        )
    return series.astype("boolean")


def _evaluate_predicates(design: SurveyDesign, predicates: Sequence[Any]) -> List[pd.Series]:
    """Evaluate every predicate before anything is written."""
    return [
        _as_logical(evaluate(predicate, design.data), i, predicate, design.n_rows)
        for i, predicate in enumerate(predicates)
    ]


def _all_true(results: List[pd.Series], n: int) -> np.ndarray:
    """AND the predicate results together, treating missing as False."""
    mask = np.ones(n, dtype=bool)
    for result in results:
        mask &= result.fillna(False).to_numpy(dtype=bool)
    return mask


def _combine_with_domain(design: SurveyDesign, mask: np.ndarray) -> np.ndarray:
    if DOMAIN_COLUMN in design.data.columns:
        return design.data[DOMAIN_COLUMN].to_numpy(dtype=bool) & mask
    return mask


def filter(design: SurveyDesign, *predicates: Any, by: Any = None) -> SurveyDesign:
    """
    Mark rows satisfying every predicate as in-domain. Row count is unchanged.

    Args:
        design: Survey design
        *predicates: Expressions, strings (DataFrame.eval) or callables
            returning one boolean per row. AND-ed together; missing
            results are out of domain.
        by: Not supported; use group_by()

    Raises:
        UnsupportedGroupingArgumentError: If ``by`` is given
        NonLogicalPredicateError: If a predicate is not boolean

    Warns:
        EmptyDomainWarning: If no row is left in the domain
    """
    if by is not None:
        raise UnsupportedGroupingArgumentError("filter")

    results = _evaluate_predicates(design, predicates)
    mask = _combine_with_domain(design, _all_true(results, design.n_rows))

    if not mask.any():
        warn_empty_domain("filter")

    logger.debug("filter: %d of %d rows in domain", int(mask.sum()), design.n_rows)
    return with_domain(design, mask, [describe(p) for p in predicates])


def filter_out(design: SurveyDesign, *predicates: Any, by: Any = None) -> SurveyDesign:
    """
    Mark rows satisfying every predicate as out-of-domain. Row count is unchanged.

    The complement of filter(): rows where the AND of the predicates is
    true leave the domain, all other rows keep their current status.
    A missing predicate result does not exclude the row.

    Raises:
        UnsupportedGroupingArgumentError: If ``by`` is given
        NonLogicalPredicateError: If a predicate is not boolean

    Warns:
        EmptyDomainWarning: If no row is left in the domain
    """
    if by is not None:
        raise UnsupportedGroupingArgumentError("filter_out")

    results = _evaluate_predicates(design, predicates)
    if results:
        keep = ~_all_true(results, design.n_rows)
        log = ["!(" + " & ".join(describe(p) for p in predicates) + ")"]
    else:
        keep = np.ones(design.n_rows, dtype=bool)
        log = []
    mask = _combine_with_domain(design, keep)

    if not mask.any():
        warn_empty_domain("filter_out")

    logger.debug("filter_out: %d of %d rows in domain", int(mask.sum()), design.n_rows)
    return with_domain(design, mask, log)


exclude = filter_out


def subset(design: SurveyDesign, *predicates: Any) -> SurveyDesign:
    """
    Physically remove rows that do not satisfy every predicate.

    Unlike filter(), this changes the design and can bias variance
    estimates. Only use it when the design was built for the subset
    population. An existing domain column travels with the kept rows.

    Raises:
        NonLogicalPredicateError: If a predicate is not boolean
        EmptyResultError: If no row would remain

    Warns:
        PhysicalSubsetWarning: Always
    """
    warn_physical_subset("subset")

    results = _evaluate_predicates(design, predicates)
    keep = _all_true(results, design.n_rows)
    if not keep.any():
        raise EmptyResultError("subset")

    logger.debug("subset: keeping %d of %d rows", int(keep.sum()), design.n_rows)
    return with_data(design, design.data[keep].reset_index(drop=True))


def drop_na(design: SurveyDesign, *columns: Any) -> SurveyDesign:
    """
    Mark rows with a missing value as out-of-domain. Row count is unchanged.

    Args:
        *columns: Columns to check (selection); every column if omitted

    Warns:
        EmptyDomainWarning: If no row is left in the domain
    """
    data = design.data
    targets = resolve(list(columns), data.columns, data) if columns else list(data.columns)

    complete = ~data[targets].isna().any(axis=1).to_numpy(dtype=bool)
    mask = _combine_with_domain(design, complete)

    if not mask.any():
        warn_empty_domain("drop_na")

    logger.debug("drop_na: %d of %d rows in domain after checking %s", int(mask.sum()), design.n_rows, targets)
    return with_domain(design, mask, [f"drop_na({', '.join(targets)})"])
