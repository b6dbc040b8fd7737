"""
Row verbs: arrange(), the slice family, distinct().

arrange() only reorders rows. The domain column is an ordinary column of
the table, so every row keeps its own domain flag.

The slice family and distinct() physically remove rows. They always
warn (PhysicalSubsetWarning) before doing anything else, and refuse to
return a design without rows (EmptyResultError).

Slices operate on the whole table; grouping does not make them act per
group. A per-call ``by`` is rejected, as everywhere else.
"""

import logging
import math
import warnings
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np
import pandas as pd

from surveytidy.design import SurveyDesign, protected_columns, with_data
from surveytidy.errors import (
    DeduplicatingOnDesignVariableWarning,
    EmptyResultError,
    SampleWeightIndependentOfDesignWarning,
    UnsupportedGroupingArgumentError,
    format_columns,
    warn_physical_subset,
)
from surveytidy.evaluation import evaluate
from surveytidy.selectors import resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Descending:
    """Sort key wrapper: order by ``key`` from largest to smallest."""
    key: Any


def desc(key: Any) -> Descending:
    return Descending(key)


def _key_values(key: Any, data: pd.DataFrame) -> pd.Series:
    if isinstance(key, str) and key in data.columns:
        return data[key].reset_index(drop=True)
    value = evaluate(key, data)
    if isinstance(value, pd.Series):
        return value.reset_index(drop=True)
    if np.ndim(value) == 0:
        return pd.Series([value] * len(data))
    return pd.Series(np.asarray(value))


def _order(data: pd.DataFrame, keys: List[Any]) -> np.ndarray:
    """Stable row order for the given keys. Missing values sort last in every direction."""
    frame = {}
    ascending = []
    for i, key in enumerate(keys):
        is_desc = isinstance(key, Descending)
        values = _key_values(key.key if is_desc else key, data)
        if len(values) != len(data):
            raise ValueError(f"Sort key {i} has length {len(values)}, expected {len(data)}")
        frame[f"key{i}"] = values
        ascending.append(not is_desc)
    keyed = pd.DataFrame(frame)
    ordered = keyed.sort_values(
        by=list(frame), ascending=ascending, na_position="last", kind="stable"
    )
    return ordered.index.to_numpy()


def arrange(design: SurveyDesign, *keys: Any, by_group: bool = False) -> SurveyDesign:
    """
    Sort rows. Row count, columns and domain membership are unchanged.

    Args:
        *keys: Column names, desc(key), Expressions or callables
        by_group: Sort by the grouping columns first
    """
    keys = list(keys)
    if by_group and design.groups:
        keys = [*design.groups, *keys]
    if not keys:
        return design

    order = _order(design.data, keys)
    return design.evolve(data=design.data.iloc[order].reset_index(drop=True))


# ---------------------------------------------------------------------------
# Slice family
# ---------------------------------------------------------------------------

def _check_by(by: Any, fn_name: str) -> None:
    if by is not None:
        raise UnsupportedGroupingArgumentError(fn_name)


def _slice_size(n_rows: int, n: Optional[int], prop: Optional[float]) -> int:
    """Number of rows to keep. Negative n/prop means 'all but'."""
    if n is not None and prop is not None:
        raise ValueError("Specify at most one of 'n' and 'prop'.")
    if prop is not None:
        size = math.floor(abs(prop) * n_rows)
        negative = prop < 0
    else:
        size = abs(1 if n is None else int(n))
        negative = n is not None and n < 0
    size = min(size, n_rows)
    return n_rows - size if negative else size


def _finish_slice(design: SurveyDesign, rows: Any, fn_name: str) -> SurveyDesign:
    new_data = design.data.iloc[rows].reset_index(drop=True)
    if len(new_data) == 0:
        raise EmptyResultError(fn_name)
    logger.debug("%s: kept %d of %d rows", fn_name, len(new_data), design.n_rows)
    return with_data(design, new_data)


def slice(design: SurveyDesign, *positions: Any, by: Any = None) -> SurveyDesign:
    """
    Keep rows by 0-based position.

    Positions may be ints, ranges or lists of ints. Negative positions
    count from the end. Out-of-range positions are ignored.
    """
    warn_physical_subset("slice")
    _check_by(by, "slice")

    n_rows = design.n_rows
    rows = []
    for item in positions:
        items = item if isinstance(item, (list, tuple, range, np.ndarray)) else [item]
        for pos in items:
            pos = int(pos)
            if -n_rows <= pos < n_rows:
                rows.append(pos % n_rows)
    return _finish_slice(design, rows, "slice")


def slice_head(design: SurveyDesign, n: Optional[int] = None, prop: Optional[float] = None, by: Any = None) -> SurveyDesign:
    """Keep the first ``n`` rows (or proportion ``prop``)."""
    warn_physical_subset("slice_head")
    _check_by(by, "slice_head")
    size = _slice_size(design.n_rows, n, prop)
    return _finish_slice(design, np.arange(size), "slice_head")


def slice_tail(design: SurveyDesign, n: Optional[int] = None, prop: Optional[float] = None, by: Any = None) -> SurveyDesign:
    """Keep the last ``n`` rows (or proportion ``prop``)."""
    warn_physical_subset("slice_tail")
    _check_by(by, "slice_tail")
    size = _slice_size(design.n_rows, n, prop)
    return _finish_slice(design, np.arange(design.n_rows - size, design.n_rows), "slice_tail")


def _slice_extreme(
    design: SurveyDesign,
    order_by: Any,
    n: Optional[int],
    prop: Optional[float],
    with_ties: bool,
    na_rm: bool,
    largest: bool,
    fn_name: str,
) -> SurveyDesign:
    values = _key_values(order_by, design.data)
    order = _order(pd.DataFrame({"v": values}), [desc("v") if largest else "v"])
    if na_rm:
        order = order[values.iloc[order].notna().to_numpy()]

    size = min(_slice_size(design.n_rows, n, prop), len(order))
    rows = order[:size]
    if with_ties and size > 0:
        boundary = values.iloc[order[size - 1]]
        if not pd.isna(boundary):
            tail = order[size:]
            ties = tail[(values.iloc[tail] == boundary).to_numpy()]
            rows = np.concatenate([rows, ties])
    return _finish_slice(design, rows, fn_name)


def slice_min(
    design: SurveyDesign,
    order_by: Any,
    n: Optional[int] = None,
    prop: Optional[float] = None,
    with_ties: bool = True,
    na_rm: bool = False,
    by: Any = None,
) -> SurveyDesign:
    """
    Keep the rows with the smallest values of ``order_by``.

    Rows come back in ascending order. With ``with_ties`` rows equal to
    the last kept value are kept too, so more than ``n`` rows may remain.
    Missing values sort last and are dropped first; ``na_rm`` removes
    them entirely.
    """
    warn_physical_subset("slice_min")
    _check_by(by, "slice_min")
    return _slice_extreme(design, order_by, n, prop, with_ties, na_rm, False, "slice_min")


def slice_max(
    design: SurveyDesign,
    order_by: Any,
    n: Optional[int] = None,
    prop: Optional[float] = None,
    with_ties: bool = True,
    na_rm: bool = False,
    by: Any = None,
) -> SurveyDesign:
    """Keep the rows with the largest values of ``order_by``. See slice_min()."""
    warn_physical_subset("slice_max")
    _check_by(by, "slice_max")
    return _slice_extreme(design, order_by, n, prop, with_ties, na_rm, True, "slice_max")


def slice_sample(
    design: SurveyDesign,
    n: Optional[int] = None,
    prop: Optional[float] = None,
    replace: bool = False,
    weight_by: Any = None,
    random_state: Any = None,
    by: Any = None,
) -> SurveyDesign:
    """
    Keep a random sample of rows.

    Args:
        replace: Sample with replacement (then ``n`` may exceed the row count)
        weight_by: Column name or computation giving sampling weights.
            These are unrelated to the design weights.
        random_state: Seed or numpy Generator, passed to DataFrame.sample

    Warns:
        PhysicalSubsetWarning: Always
        SampleWeightIndependentOfDesignWarning: If ``weight_by`` is given
    """
    warn_physical_subset("slice_sample")
    _check_by(by, "slice_sample")

    weights = None
    if weight_by is not None:
        warnings.warn(
            "slice_sample() was called with weight_by on a survey design. "
            "weight_by samples rows proportional to its values, independently "
            "of the survey design weights. Use the design weights for "
            "probability-proportional sampling.",
            SampleWeightIndependentOfDesignWarning,
            stacklevel=2,
        )
        weights = _key_values(weight_by, design.data).to_numpy(dtype=float)

    if replace and n is not None and n > 0 and prop is None:
        size = int(n)
    elif replace and prop is not None and prop > 0:
        size = math.floor(prop * design.n_rows)
    else:
        size = _slice_size(design.n_rows, n, prop)

    sampled = design.data.reset_index(drop=True).sample(
        n=size, replace=replace, weights=weights, random_state=random_state
    )
    return _finish_slice(design, sampled.index.to_numpy(), "slice_sample")


# ---------------------------------------------------------------------------
# distinct
# ---------------------------------------------------------------------------

def distinct(design: SurveyDesign, *columns: Any) -> SurveyDesign:
    """
    Remove duplicate rows, keeping the first occurrence and every column.

    Args:
        *columns: Key columns (selection). By default every column that
            is not a design variable or the domain column. Rows that
            differ only in design variables therefore collapse into one;
            this default has not been checked against the statistical
            intent of deduplicating a sample.

    Warns:
        PhysicalSubsetWarning: Always
        DeduplicatingOnDesignVariableWarning: If a key is a design variable
    """
    warn_physical_subset("distinct")

    data = design.data
    protected = protected_columns(design)
    if columns:
        keys = resolve(list(columns), data.columns, data)
        on_design = [c for c in keys if c in protected]
        if on_design:
            warnings.warn(
                f"Deduplicating by design variable(s) {format_columns(on_design)} may corrupt "
                f"variance estimation. Design variables define the sampling structure.",
                DeduplicatingOnDesignVariableWarning,
                stacklevel=2,
            )
    else:
        keys = [c for c in data.columns if c not in protected]

    if keys:
        new_data = data.drop_duplicates(subset=keys, keep="first")
    else:
        # Every row is a duplicate when there is nothing to compare
        new_data = data.iloc[:1]

    logger.debug("distinct: kept %d of %d rows on %s", len(new_data), design.n_rows, keys)
    return with_data(design, new_data.reset_index(drop=True))
