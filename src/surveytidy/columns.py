"""
Column verbs: select(), rename(), rename_with(), relocate(), pull().

select() physically removes non-selected columns but always keeps the
design variables (and the domain column, once it exists). The user's
selection is recorded separately in design.visible, so the two column
sets are:
    - physical: design.data.columns (user selection + protected columns)
    - visible:  design.visible (user selection only), None = everything

rename() and rename_with() keep every name-keyed structure in sync:
the data, the design specification, the label store, the visible list,
the grouping columns and the rowwise id columns.

Renaming a design variable is allowed and warns. The domain column is
reserved: renaming it warns and the column keeps its name, and renaming
another column to it raises ReservedColumnError.
"""

import logging
import warnings
from collections import Counter
from typing import Any, Callable, Dict, List, Mapping, Optional

import pandas as pd

from surveytidy.design import (
    DOMAIN_COLUMN,
    RowwiseState,
    SurveyDesign,
    protected_columns,
    unique_names,
)
from surveytidy.errors import (
    ColumnNotFoundError,
    DuplicateColumnError,
    InvalidRenameFunctionError,
    RenamedDesignVariableWarning,
    ReservedColumnError,
    format_columns,
)
from surveytidy.selectors import Everything, resolve

logger = logging.getLogger(__name__)


def select(design: SurveyDesign, *selection: Any) -> SurveyDesign:
    """
    Keep the selected columns plus every design variable.

    Args:
        *selection: Names, positions or selectors (see surveytidy.selectors)

    Returns:
        Design whose data holds the selection (in the given order)
        followed by protected columns the selection did not mention.
        Grouping and rowwise id columns are kept as well. Label-store
        entries of dropped columns are removed.
    """
    data = design.data
    user_columns = resolve(list(selection), data.columns, data)

    protected = [c for c in protected_columns(design) if c in data.columns]
    state_columns = [*design.groups, *design.rowwise.id_columns]
    final_columns = unique_names([*user_columns, *protected, *state_columns])
    dropped = [c for c in data.columns if c not in final_columns]

    # Never store an empty visible list: None already means "everything"
    if not user_columns or set(user_columns) == set(final_columns):
        visible = None
    else:
        visible = tuple(user_columns)

    logger.debug("select: keeping %s, dropping %s", final_columns, dropped)
    return design.evolve(
        data=data[final_columns],
        metadata=design.metadata.drop_keys(dropped),
        visible=visible,
    )


def _apply_rename_map(design: SurveyDesign, mapping: Mapping[str, str], fn_name: str) -> SurveyDesign:
    """Rename columns everywhere they are referenced. ``mapping`` is old -> new."""
    data = design.data

    protected = set(protected_columns(design))
    touched = [old for old, new in mapping.items() if old in protected and old != new]

    mapping = {old: new for old, new in mapping.items() if old != new and old != DOMAIN_COLUMN}
    if DOMAIN_COLUMN in mapping.values():
        raise ReservedColumnError(fn_name, DOMAIN_COLUMN)
    new_names = [mapping.get(c, c) for c in data.columns]
    duplicated = [name for name, count in Counter(new_names).items() if count > 1]
    if duplicated:
        raise DuplicateColumnError(duplicated)

    if touched:
        message = f"{fn_name}() renamed design variable(s): {format_columns(touched)}. "
        if DOMAIN_COLUMN in touched:
            message += f"The domain column '{DOMAIN_COLUMN}' is reserved and keeps its name. "
        message += "The survey design has been updated to use the new name(s)."
        warnings.warn(message, RenamedDesignVariableWarning, stacklevel=3)

    if not mapping:
        return design

    def swap(names):
        return tuple(mapping.get(n, n) for n in names)

    logger.debug("%s: %s", fn_name, mapping)
    return design.evolve(
        data=data.rename(columns=mapping),
        variables=design.variables.renamed(mapping),
        metadata=design.metadata.rename_keys(mapping),
        visible=swap(design.visible) if design.visible is not None else None,
        groups=swap(design.groups),
        rowwise=RowwiseState(
            active=design.rowwise.active,
            id_columns=swap(design.rowwise.id_columns),
        ),
    )


def rename(design: SurveyDesign, mapping: Dict[str, str]) -> SurveyDesign:
    """
    Rename columns with an ``{old: new}`` mapping.

    Raises:
        ColumnNotFoundError: If an old name does not exist
        DuplicateColumnError: If the result would repeat a column name
        ReservedColumnError: If a column would be renamed to the domain column

    Warns:
        RenamedDesignVariableWarning: If a design variable is renamed
    """
    missing = [old for old in mapping if old not in design.data.columns]
    if missing:
        raise ColumnNotFoundError(missing)
    return _apply_rename_map(design, mapping, "rename")


def rename_with(
    design: SurveyDesign,
    fn: Callable[..., Any],
    columns: Any = None,
    **kwargs: Any,
) -> SurveyDesign:
    """
    Rename columns by applying a function to their names.

    Args:
        fn: Receives the list of selected names (plus ``kwargs``) and
            returns the new names, one per selected column
        columns: Selection of columns to rename; every column if None

    Raises:
        InvalidRenameFunctionError: If ``fn`` returns non-strings, the
            wrong number of names, duplicates, or names of other columns
        ReservedColumnError: If ``fn`` returns the domain column name

    Warns:
        RenamedDesignVariableWarning: If a design variable is renamed
    """
    data = design.data
    selected = resolve(Everything() if columns is None else columns, data.columns, data)

    output = fn(list(selected), **kwargs)
    if isinstance(output, str):
        output = [output]
    try:
        new_names = list(output)
    except TypeError:
        raise InvalidRenameFunctionError("non_string", output)

    if not all(isinstance(name, str) for name in new_names):
        raise InvalidRenameFunctionError("non_string", new_names)
    if len(new_names) != len(selected):
        raise InvalidRenameFunctionError("wrong_length", new_names)
    duplicated = [name for name, count in Counter(new_names).items() if count > 1]
    if duplicated:
        raise InvalidRenameFunctionError("duplicate", duplicated)
    conflicts = [name for name in new_names if name in data.columns and name not in selected]
    if conflicts:
        raise InvalidRenameFunctionError("conflict", conflicts)

    return _apply_rename_map(design, dict(zip(selected, new_names)), "rename_with")


def reorder_names(
    names: List[str],
    moving: List[str],
    before: Any = None,
    after: Any = None,
    data: Optional[pd.DataFrame] = None,
) -> List[str]:
    """
    Move ``moving`` in front of ``before``, behind ``after``, or to the front.

    ``before``/``after`` are selections resolved against ``names``; with
    several matches the leftmost (before) or rightmost (after) is used.
    """
    if before is not None and after is not None:
        raise ValueError("Specify at most one of 'before' and 'after'.")
    if not moving:
        return list(names)

    rest = [n for n in names if n not in moving]
    anchor_spec = before if before is not None else after
    if anchor_spec is None:
        return [*moving, *rest]

    anchors = resolve(anchor_spec, names, data)
    if not anchors:
        raise ColumnNotFoundError([repr(anchor_spec)])
    positions = [names.index(a) for a in anchors]
    if before is not None:
        cut = min(positions)
        lhs = [n for n in names[:cut] if n not in moving]
    else:
        cut = max(positions) + 1
        lhs = [n for n in names[:cut] if n not in moving]
    rhs = [n for n in names[cut:] if n not in moving]
    return [*lhs, *moving, *rhs]


def relocate(design: SurveyDesign, *selection: Any, before: Any = None, after: Any = None) -> SurveyDesign:
    """
    Change column order.

    With an explicit visible list only that list is reordered; the
    physical column order has no display meaning then. Otherwise the
    data columns themselves are reordered.
    """
    data = design.data
    if design.visible is not None:
        names = list(design.visible)
        moving = resolve(list(selection), names, data)
        return design.evolve(visible=tuple(reorder_names(names, moving, before, after, data)))

    names = list(data.columns)
    moving = resolve(list(selection), names, data)
    return design.evolve(data=data[reorder_names(names, moving, before, after, data)])


def pull(design: SurveyDesign, var: Any = -1, name: Optional[str] = None) -> pd.Series:
    """
    Extract one column as a Series. Terminal: the result is not a design.

    Args:
        var: Column name or position (default: last column)
        name: Optional column whose values become the index
    """
    data = design.data
    column = resolve(var, data.columns, data)[0]
    values = data[column]
    if name is not None:
        index_column = resolve(name, data.columns, data)[0]
        values = pd.Series(values.to_numpy(), index=data[index_column].to_numpy(), name=column)
    return values
