"""
Errors and warnings raised by surveytidy verbs.

Two families:
    - SurveytidyError subclasses abort the verb call. They are raised
      before any new design is assembled, so the input design is
      always left untouched.
    - SurveytidyWarning subclasses are emitted through ``warnings.warn``.
      The verb still completes and returns a valid design.

Use the classes (not the message text) when filtering or asserting.
"""

import warnings
from typing import List, Optional, Sequence


class SurveytidyError(Exception):
    """Base class for all surveytidy errors."""
    pass


class NonLogicalPredicateError(SurveytidyError):
    """Raised when a filter predicate does not evaluate to booleans."""

    def __init__(self, index: int, dtype: str, description: str):
        self.index = index
        self.dtype = dtype
        self.description = description
        super().__init__(
            f"Filter condition {index} must be logical, not {dtype}. "
            f"Condition: {description}. Add a comparison operator, e.g. '> 0'."
        )


class EmptyResultError(SurveytidyError):
    """Raised when a physical row removal would leave zero rows."""

    def __init__(self, fn_name: str):
        self.fn_name = fn_name
        super().__init__(
            f"{fn_name}() produced 0 rows. Survey objects require at least 1 row. "
            f"Use filter() for domain estimation (keeps all rows)."
        )


class DesignVariableRemovedError(SurveytidyError):
    """Raised when a transformed table lost a design variable column."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(
            f"Design variable(s) missing from the data: {', '.join(self.missing)}."
        )


class InvalidRenameFunctionError(SurveytidyError):
    """
    Raised when a rename_with() function produced unusable names.

    reason is one of:
        non_string   - output contains something other than strings
        wrong_length - output length differs from the number of columns
        duplicate    - output contains the same name twice
        conflict     - output collides with a column that is not renamed
    """

    def __init__(self, reason: str, value):
        self.reason = reason
        self.value = value
        messages = {
            "non_string": "must return strings",
            "wrong_length": "must return one name per selected column",
            "duplicate": "returned duplicate names",
            "conflict": "returned names that already exist in the data",
        }
        super().__init__(
            f"rename_with() function {messages.get(reason, reason)}: {value!r}."
        )


class UnsupportedGroupingArgumentError(SurveytidyError):
    """Raised when a verb receives a per-call grouping argument it cannot honour."""

    def __init__(self, fn_name: str, detail: Optional[str] = None):
        self.fn_name = fn_name
        message = detail or f"'by' is not supported by {fn_name}() for survey design objects."
        super().__init__(f"{message} Use group_by() to add grouping to a survey design.")


class ColumnNotFoundError(SurveytidyError):
    """Raised when a selection names a column that does not exist."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Column(s) not found: {', '.join(self.missing)}.")


class DuplicateColumnError(SurveytidyError):
    """Raised when a rename would produce duplicate column names."""

    def __init__(self, names: Sequence[str]):
        self.names = list(names)
        super().__init__(f"Names must be unique; duplicated: {', '.join(self.names)}.")


class ReservedColumnError(SurveytidyError):
    """Raised when a verb would create or overwrite the domain column directly."""

    def __init__(self, fn_name: str, name: str):
        self.fn_name = fn_name
        self.name = name
        super().__init__(
            f"{fn_name}() cannot write the reserved column '{name}'. "
            f"Use filter() or filter_out() to change the domain."
        )


class DesignInvariantError(SurveytidyError):
    """A design record violates a structural invariant. Always a bug."""
    pass


class SurveytidyWarning(UserWarning):
    """Base class for all surveytidy warnings."""
    pass


class EmptyDomainWarning(SurveytidyWarning):
    pass


class PhysicalSubsetWarning(SurveytidyWarning):
    pass


class RenamedDesignVariableWarning(SurveytidyWarning):
    pass


class ComputedOverDesignVariableWarning(SurveytidyWarning):
    pass


class DeduplicatingOnDesignVariableWarning(SurveytidyWarning):
    pass


class SampleWeightIndependentOfDesignWarning(SurveytidyWarning):
    pass


def warn_physical_subset(fn_name: str) -> None:
    """Standard warning for verbs that physically remove rows."""
    warnings.warn(
        f"{fn_name}() physically removes rows from the survey data. "
        f"This is different from filter(), which preserves all rows for "
        f"correct variance estimation. Use filter() for subpopulation analyses instead.",
        PhysicalSubsetWarning,
        stacklevel=3,
    )


def warn_empty_domain(fn_name: str) -> None:
    warnings.warn(
        f"{fn_name}() produced an empty domain: no rows are in-domain. "
        f"Variance estimation on this domain will fail.",
        EmptyDomainWarning,
        stacklevel=3,
    )


def format_columns(names: List[str]) -> str:
    return ", ".join(f"'{n}'" for n in names)
