"""
Core Survey Design Objects

Defines the design record every surveytidy verb consumes and returns.

A SurveyDesign binds one pandas DataFrame to:
    - The design specification (which columns are weights, clusters,
      strata, fpc, replicate weights, two-phase subset indicator)
    - The label store (descriptive metadata keyed by column name)
    - Domain bookkeeping (audit log of filter conditions)
    - Presentation state (visible columns)
    - Computation state (grouping columns, rowwise mode)

ARCHITECTURAL RULE:
    A SurveyDesign is immutable by convention.
    Verbs never modify the design they receive; they build a new one
    with evolve(), which re-checks every invariant before returning.
    Unmodified parts (including the DataFrame) are shared, so a design
    must be owned by one pipeline at a time. Use copy() for an
    independent deep copy.
"""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import numpy as np
import pandas as pd

from surveytidy.errors import DesignInvariantError, DesignVariableRemovedError
from surveytidy.metadata import LabelStore


# Reserved column holding the accumulated in/out-of-domain flag.
# Absent until the first domain-marking verb; never removed afterwards.
DOMAIN_COLUMN = "..surveycore_domain.."


def unique_names(names: Iterable[Optional[str]]) -> List[str]:
    seen: List[str] = []
    for name in names:
        if name is not None and name not in seen:
            seen.append(name)
    return seen


@dataclass(frozen=True)
class DesignVariables:
    """
    Which columns play each structural role in a design.

    Every field is always present. None (or an empty tuple) means
    "not applicable"; fields are never removed.

    Properties:
        weights:    Sampling weight column (required for single-phase
                    designs and for phase 1 of a two-phase design)
        ids:        Cluster / PSU id columns, outermost first
        strata:     Stratum column
        fpc:        Finite population correction column
        repweights: Replicate weight columns
        nest:       Whether cluster ids are nested within strata
        probs:      Whether weights are given as selection probabilities
    """

    weights: Optional[str] = None
    ids: Tuple[str, ...] = ()
    strata: Optional[str] = None
    fpc: Optional[str] = None
    repweights: Tuple[str, ...] = ()
    nest: bool = False
    probs: bool = False

    def columns(self) -> List[str]:
        """All referenced column names, de-duplicated, in a stable order."""
        return unique_names([*self.ids, self.strata, self.fpc, self.weights, *self.repweights])

    def renamed(self, mapping: Mapping[str, str]) -> "DesignVariables":
        def swap(name: Optional[str]) -> Optional[str]:
            return None if name is None else mapping.get(name, name)

        return replace(
            self,
            weights=swap(self.weights),
            ids=tuple(swap(n) for n in self.ids),
            strata=swap(self.strata),
            fpc=swap(self.fpc),
            repweights=tuple(swap(n) for n in self.repweights),
        )


class DesignKind(Enum):
    TAYLOR = "taylor"
    REPLICATE = "replicate"
    TWOPHASE = "twophase"


@dataclass(frozen=True)
class LinearizationSpec:
    """Taylor-series linearization design (clusters, strata, fpc)."""

    variables: DesignVariables
    kind: ClassVar[DesignKind] = DesignKind.TAYLOR

    def columns(self) -> List[str]:
        return self.variables.columns()

    def renamed(self, mapping: Mapping[str, str]) -> "LinearizationSpec":
        return replace(self, variables=self.variables.renamed(mapping))


@dataclass(frozen=True)
class ReplicateSpec:
    """Replicate-weight design (BRR, Fay, jackknife, bootstrap, ...)."""

    variables: DesignVariables
    type: str = "bootstrap"
    kind: ClassVar[DesignKind] = DesignKind.REPLICATE

    def columns(self) -> List[str]:
        return self.variables.columns()

    def renamed(self, mapping: Mapping[str, str]) -> "ReplicateSpec":
        return replace(self, variables=self.variables.renamed(mapping))


@dataclass(frozen=True)
class TwoPhaseSpec:
    """
    Two-phase design: a phase-1 design plus the phase-2 sample.

    Properties:
        phase1: Bindings of the full phase-1 sample
        phase2: Bindings of the phase-2 subsample (may be empty)
        subset: Boolean column marking phase-2 membership
        method: Variance method tag ("full", "approx", "simple")
    """

    phase1: DesignVariables
    phase2: DesignVariables
    subset: str
    method: str = "full"
    kind: ClassVar[DesignKind] = DesignKind.TWOPHASE

    def columns(self) -> List[str]:
        return unique_names([*self.phase1.columns(), *self.phase2.columns(), self.subset])

    def renamed(self, mapping: Mapping[str, str]) -> "TwoPhaseSpec":
        return replace(
            self,
            phase1=self.phase1.renamed(mapping),
            phase2=self.phase2.renamed(mapping),
            subset=mapping.get(self.subset, self.subset),
        )


DesignSpec = Union[LinearizationSpec, ReplicateSpec, TwoPhaseSpec]


@dataclass(frozen=True)
class RowwiseState:
    """
    Rowwise computation mode.

    Properties:
        active:     Whether computations run once per row
        id_columns: Columns identifying each row (promoted to grouping
                    columns by group_by(add=True))
    """

    active: bool = False
    id_columns: Tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class SurveyDesign:
    """
    One survey design bound to one table.

    Properties:
        data:       The survey data (pandas DataFrame, RangeIndex)
        variables:  Design specification (LinearizationSpec,
                    ReplicateSpec or TwoPhaseSpec)
        metadata:   Label store keyed by column name
        domain_log: Descriptions of every domain condition applied so far.
                    Audit only; the domain column is the source of truth.
        visible:    Columns to show, or None for "all columns"
        groups:     Grouping columns (empty = ungrouped)
        rowwise:    Rowwise mode and its id columns

    INVARIANTS (checked on construction, see validate_design):
        - data has >= 1 row, >= 1 column, unique column names
        - every design variable exists in data
        - metadata is a LabelStore
        - the domain column, if present, is boolean
        - an explicit visible list is non-empty and names existing columns
        - grouping columns exist in data
        - grouping and rowwise mode are never active together
    """

    data: pd.DataFrame
    variables: DesignSpec
    metadata: LabelStore = field(default_factory=LabelStore)
    domain_log: Tuple[str, ...] = ()
    visible: Optional[Tuple[str, ...]] = None
    groups: Tuple[str, ...] = ()
    rowwise: RowwiseState = field(default_factory=RowwiseState)

    def __post_init__(self):
        # Accept lists from callers, store tuples
        object.__setattr__(self, "domain_log", tuple(self.domain_log))
        object.__setattr__(self, "groups", tuple(self.groups))
        if self.visible is not None:
            object.__setattr__(self, "visible", tuple(self.visible))
        validate_design(self)

    @property
    def kind(self) -> DesignKind:
        return self.variables.kind

    @property
    def n_rows(self) -> int:
        return len(self.data)

    @property
    def domain(self) -> Optional[pd.Series]:
        """The domain mask, or None if no domain has been set."""
        if DOMAIN_COLUMN in self.data.columns:
            return self.data[DOMAIN_COLUMN]
        return None

    @property
    def weights(self) -> str:
        """Name of the (phase-1) weight column."""
        if isinstance(self.variables, TwoPhaseSpec):
            return self.variables.phase1.weights
        return self.variables.variables.weights

    def evolve(self, **changes: Any) -> "SurveyDesign":
        """Return a new design with some fields replaced. Invariants are re-checked."""
        return replace(self, **changes)

    def copy(self) -> "SurveyDesign":
        """Independent deep copy (data and metadata)."""
        return replace(self, data=self.data.copy(deep=True), metadata=_copy.deepcopy(self.metadata))

    def pipe(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Call ``func(self, *args, **kwargs)``, for chaining verbs."""
        return func(self, *args, **kwargs)


def validate_design(design: SurveyDesign) -> None:
    """
    Check every structural invariant of a design.

    Raises:
        DesignVariableRemovedError: A design variable is missing from data
        DesignInvariantError: Any other invariant is violated
    """
    data = design.data
    if not isinstance(data, pd.DataFrame):
        raise DesignInvariantError(f"data must be a pandas DataFrame, not {type(data).__name__}")
    if data.shape[0] < 1 or data.shape[1] < 1:
        raise DesignInvariantError(f"data must have at least 1 row and 1 column, got shape {data.shape}")
    duplicated = data.columns[data.columns.duplicated()].tolist()
    if duplicated:
        raise DesignInvariantError(f"data has duplicate column names: {duplicated}")

    spec = design.variables
    if not isinstance(spec, (LinearizationSpec, ReplicateSpec, TwoPhaseSpec)):
        raise DesignInvariantError(f"Unsupported design specification: {type(spec).__name__}")
    primary = spec.phase1 if isinstance(spec, TwoPhaseSpec) else spec.variables
    if primary.weights is None:
        raise DesignInvariantError("A design requires a weight column")

    missing = [c for c in spec.columns() if c not in data.columns]
    if missing:
        raise DesignVariableRemovedError(missing)

    if not isinstance(design.metadata, LabelStore):
        raise DesignInvariantError("metadata must be a LabelStore")

    if DOMAIN_COLUMN in data.columns and data[DOMAIN_COLUMN].dtype != np.bool_:
        raise DesignInvariantError(
            f"Domain column must be boolean, not {data[DOMAIN_COLUMN].dtype}"
        )

    if design.visible is not None:
        if len(design.visible) == 0:
            raise DesignInvariantError("visible must be None (all columns) rather than empty")
        absent = [c for c in design.visible if c not in data.columns]
        if absent:
            raise DesignInvariantError(f"visible names columns not in data: {absent}")

    absent_groups = [c for c in design.groups if c not in data.columns]
    if absent_groups:
        raise DesignInvariantError(f"grouping columns not in data: {absent_groups}")

    if design.groups and design.rowwise.active:
        raise DesignInvariantError("A design cannot be grouped and rowwise at the same time")


def protected_columns(design: SurveyDesign) -> List[str]:
    """
    Every column that must never be dropped.

    Design variables of all phases, the two-phase subset column, and
    the domain column once it exists. Ordered and de-duplicated.
    """
    names = design.variables.columns()
    if DOMAIN_COLUMN in design.data.columns:
        names = unique_names([*names, DOMAIN_COLUMN])
    return names


def is_design_variable(design: SurveyDesign, name: str) -> bool:
    return name in protected_columns(design)


def with_data(design: SurveyDesign, data: pd.DataFrame) -> SurveyDesign:
    """
    Replace the table of a design.

    Raises:
        DesignVariableRemovedError: If any protected column (including
            an existing domain column) is missing from the new table
    """
    missing = [c for c in protected_columns(design) if c not in data.columns]
    if missing:
        raise DesignVariableRemovedError(missing)
    return design.evolve(data=data)


def with_domain(design: SurveyDesign, mask: Any, description: Optional[Iterable[str]] = None) -> SurveyDesign:
    """
    Write the domain column and optionally append audit entries.

    Args:
        mask: Boolean values, one per row
        description: Audit log entries to append
    """
    values = np.asarray(mask)
    if values.dtype != np.bool_ or values.shape != (design.n_rows,):
        raise ValueError(
            f"Domain mask must be {design.n_rows} booleans, got dtype {values.dtype} shape {values.shape}"
        )
    data = design.data.assign(**{DOMAIN_COLUMN: values})
    log = design.domain_log + tuple(description or ())
    return design.evolve(data=data, domain_log=log)


def design_summary(design: SurveyDesign) -> Dict[str, Any]:
    """Small counts summary, used by logging and serialization."""
    domain = design.domain
    return {
        "kind": design.kind.value,
        "n_rows": design.n_rows,
        "n_columns": design.data.shape[1],
        "n_in_domain": int(domain.sum()) if domain is not None else design.n_rows,
    }
