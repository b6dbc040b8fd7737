"""
Grouping state: group_by(), ungroup(), rowwise() and their predicates.

Grouping lives in design.groups (column names) and design.rowwise. The
DataFrame itself is never grouped; mutate() and arrange(by_group=True)
read these fields.

State transitions:
    group_by(add=False)          replace groups, exit rowwise
    group_by(add=True), grouped  append to groups
    group_by(add=True), rowwise  promote rowwise ids to groups, append, exit rowwise
    ungroup()                    clear groups and rowwise
    ungroup(cols)                remove cols from groups, rowwise untouched
    rowwise(ids)                 enter rowwise; current groups become the
                                 leading id columns

A design is never grouped and rowwise at the same time.
"""

import logging
from typing import Any, Tuple

from surveytidy.design import RowwiseState, SurveyDesign, unique_names
from surveytidy.selectors import resolve

logger = logging.getLogger(__name__)


def group_by(design: SurveyDesign, *columns: Any, add: bool = False, **computed: Any) -> SurveyDesign:
    """
    Set the grouping columns.

    Args:
        *columns: Selection of existing columns
        add: Append to the current groups instead of replacing them
        **computed: New grouping columns computed first, as in mutate()
    """
    if computed:
        from surveytidy.mutate import mutate

        design = mutate(design, **computed)

    data = design.data
    names = resolve(list(columns), data.columns, data) + list(computed)

    if not add:
        groups = unique_names(names)
    elif design.rowwise.active:
        groups = unique_names([*design.rowwise.id_columns, *names])
    else:
        groups = unique_names([*design.groups, *names])

    logger.debug("group_by: groups=%s", groups)
    return design.evolve(groups=tuple(groups), rowwise=RowwiseState())


def ungroup(design: SurveyDesign, *columns: Any) -> SurveyDesign:
    """Remove all grouping (and rowwise mode), or only the given grouping columns."""
    if not columns:
        return design.evolve(groups=(), rowwise=RowwiseState())

    removed = set(resolve(list(columns), design.data.columns, design.data))
    return design.evolve(groups=tuple(g for g in design.groups if g not in removed))


def rowwise(design: SurveyDesign, *id_columns: Any) -> SurveyDesign:
    """
    Compute mutate() expressions once per row.

    Args:
        *id_columns: Columns identifying each row. On a grouped design
            the grouping columns are moved in front of these, so that
            group_by(add=True) restores them.
    """
    data = design.data
    ids = resolve(list(id_columns), data.columns, data)
    ids = unique_names([*design.groups, *ids])
    return design.evolve(groups=(), rowwise=RowwiseState(active=True, id_columns=tuple(ids)))


def group_vars(design: SurveyDesign) -> Tuple[str, ...]:
    return design.groups


def is_grouped(design: SurveyDesign) -> bool:
    return len(design.groups) > 0


def is_rowwise(design: SurveyDesign) -> bool:
    return design.rowwise.active
