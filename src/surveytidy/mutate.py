"""
mutate(): add or modify columns, whole-table, per group, or per row.

Scope of each computation:
    1. rowwise mode  -> once per row (``by`` is rejected)
    2. ``by`` given  -> once per group of ``by``
       groups set    -> once per group of design.groups
    3. otherwise     -> once over the whole table

Per-chunk results are collapsed back into whole-table columns before the
design is rebuilt, so the result is always an ordinary design.

Computations:
    - ``**named``: name -> Expression, string, callable or constant.
      Evaluated in order; later computations see earlier results.
    - ``*multi``:  callables returning a DataFrame or a mapping of
      name -> values. Their outputs get no transformation record.

Modifying a design variable by name warns
(ComputedOverDesignVariableWarning). Multi-output computations are not
inspected for this.

The domain column is never written here: targeting it raises
ReservedColumnError. Columns dropped by ``keep`` lose their label-store
entries.
"""

import logging
import warnings
from typing import Any, Dict, List, Mapping, Optional

import numpy as np
import pandas as pd

from surveytidy.columns import reorder_names
from surveytidy.design import DOMAIN_COLUMN, SurveyDesign, protected_columns, unique_names
from surveytidy.errors import (
    ComputedOverDesignVariableWarning,
    ReservedColumnError,
    UnsupportedGroupingArgumentError,
    format_columns,
)
from surveytidy.evaluation import describe, evaluate, referenced_columns
from surveytidy.selectors import resolve

logger = logging.getLogger(__name__)

KEEP_OPTIONS = ("all", "used", "unused", "none")


def c_across(frame: pd.DataFrame, *selection: Any) -> pd.Series:
    """
    Values of the selected columns in the current row.

    Meant for rowwise callables, e.g.
    ``mutate(rowwise(d), total=lambda row: c_across(row, StartsWith("y")).sum())``.
    On a frame with several rows every value is returned, row by row.
    """
    columns = resolve(list(selection), frame.columns, frame)
    if len(frame) == 1:
        return frame[columns].iloc[0]
    return pd.Series(frame[columns].to_numpy().ravel())


def _fit(value: Any, chunk: pd.DataFrame, name: str) -> pd.Series:
    """Broadcast one computation result to the rows of its chunk."""
    n = len(chunk)
    if isinstance(value, pd.Series):
        values = value.array
    elif np.ndim(value) == 0:
        return pd.Series([value] * n, index=chunk.index)
    else:
        values = np.asarray(value)
    if len(values) == n:
        return pd.Series(values, index=chunk.index)
    if len(values) == 1:
        return pd.Series([values[0]] * n, index=chunk.index)
    raise ValueError(f"mutate(): '{name}' has {len(values)} values, expected {n} or 1")


def _multi_outputs(result: Any, position: int) -> Mapping[str, Any]:
    if isinstance(result, pd.DataFrame):
        return {col: result[col] for col in result.columns}
    if isinstance(result, Mapping):
        return result
    raise TypeError(
        f"mutate(): unnamed computation {position} must return a DataFrame or a mapping "
        f"of column names to values, not {type(result).__name__}"
    )


def _compute_chunk(chunk: pd.DataFrame, multi: List[Any], named: Dict[str, Any]) -> Dict[str, pd.Series]:
    working = chunk
    outputs: Dict[str, pd.Series] = {}
    for position, computation in enumerate(multi):
        for name, value in _multi_outputs(evaluate(computation, working), position).items():
            outputs[name] = _fit(value, working, name)
            working = working.assign(**{name: outputs[name]})
    for name, computation in named.items():
        outputs[name] = _fit(evaluate(computation, working), working, name)
        working = working.assign(**{name: outputs[name]})
    return outputs


def _chunks(design: SurveyDesign, by: Optional[List[str]]) -> List[np.ndarray]:
    data = design.data
    if design.rowwise.active:
        return [np.array([i]) for i in range(design.n_rows)]
    if by:
        return list(data.groupby(by, sort=False, dropna=False).indices.values())
    return [np.arange(design.n_rows)]


def _collapse(pieces: List[Dict[str, pd.Series]], index: pd.Index) -> Dict[str, pd.Series]:
    names = unique_names(name for piece in pieces for name in piece)
    columns = {}
    for name in names:
        parts = [piece[name] for piece in pieces if name in piece]
        columns[name] = pd.concat(parts).reindex(index)
    return columns


def mutate(
    design: SurveyDesign,
    *multi: Any,
    keep: str = "all",
    before: Any = None,
    after: Any = None,
    by: Any = None,
    **named: Any,
) -> SurveyDesign:
    """
    Add or modify columns.

    Args:
        *multi: Callables returning several columns at once
        keep: Which existing columns to keep:
            "all"    every column
            "used"   columns read by the computations
            "unused" columns not read by the computations
            "none"   only the computed columns
            Design variables and grouping columns are always kept.
        before, after: Where to place new columns (selection)
        by: Per-call grouping (selection); not allowed in rowwise mode
        **named: New or modified columns

    Raises:
        UnsupportedGroupingArgumentError: If ``by`` is used in rowwise mode
        ValueError: If ``keep`` is invalid, a result has the wrong length,
            or both ``before`` and ``after`` are given
        ReservedColumnError: If a computation targets the domain column

    Warns:
        ComputedOverDesignVariableWarning: If a named target is a design variable
    """
    if keep not in KEEP_OPTIONS:
        raise ValueError(f"keep must be one of {KEEP_OPTIONS}, not {keep!r}")
    if before is not None and after is not None:
        raise ValueError("Specify at most one of 'before' and 'after'.")

    data = design.data
    if by is not None:
        if design.rowwise.active:
            raise UnsupportedGroupingArgumentError(
                "mutate", "'by' cannot be combined with rowwise mode."
            )
        by_columns = resolve(by, data.columns, data)
    else:
        by_columns = list(design.groups)

    if DOMAIN_COLUMN in named:
        raise ReservedColumnError("mutate", DOMAIN_COLUMN)

    protected = [c for c in protected_columns(design) if c in data.columns]
    changed_design = [name for name in named if name in protected]
    if changed_design:
        warnings.warn(
            f"mutate() modified design variable(s): {format_columns(changed_design)}. "
            f"The survey design now uses the new values, which may produce "
            f"unexpected variance estimates.",
            ComputedOverDesignVariableWarning,
            stacklevel=2,
        )

    chunks = _chunks(design, by_columns)
    pieces = [_compute_chunk(data.iloc[rows], list(multi), named) for rows in chunks]
    computed = _collapse(pieces, data.index)
    if DOMAIN_COLUMN in computed:
        raise ReservedColumnError("mutate", DOMAIN_COLUMN)

    new_data = data.assign(**computed)
    original = list(data.columns)
    new_columns = [c for c in new_data.columns if c not in original]

    # keep
    if keep != "all":
        used = set()
        for computation in [*multi, *named.values()]:
            used |= referenced_columns(computation, original)
        if keep == "used":
            kept = [c for c in original if c in used or c in computed]
        elif keep == "unused":
            kept = [c for c in original if c not in used or c in computed]
        else:
            kept = [c for c in original if c in computed]
        always = [*design.groups, *design.rowwise.id_columns, *by_columns]
        kept = [c for c in original if c in kept or c in always]
        new_data = new_data[kept + new_columns]

    # Protected columns dropped by keep are re-attached at the end
    missing_protected = [c for c in protected if c not in new_data.columns]
    if missing_protected:
        new_data = new_data.assign(**{c: data[c] for c in missing_protected})
    dropped = [c for c in original if c not in new_data.columns]

    if new_columns and (before is not None or after is not None):
        names = reorder_names(list(new_data.columns), new_columns, before, after, new_data)
        new_data = new_data[names]

    visible = design.visible
    if visible is not None:
        visible = [c for c in visible if c in new_data.columns] + new_columns
        visible = tuple(visible) if visible else None

    metadata = design.metadata.drop_keys(dropped)
    for column in new_columns:
        if column in named:
            metadata = metadata.with_entry("transformations", column, describe(named[column]))

    logger.debug(
        "mutate: %d chunk(s), computed %s, new %s, keep=%s",
        len(chunks), list(computed), new_columns, keep,
    )
    return design.evolve(data=new_data, metadata=metadata, visible=visible)
