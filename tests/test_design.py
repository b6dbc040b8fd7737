"""
Tests for the design record, its invariants and the constructors.

These tests verify:
    - Constructors bind the right columns for each design kind
    - validate_design() rejects broken records
    - The narrow mutation API (with_data, with_domain) guards design variables
    - Every binding field is always present
"""

import numpy as np
import pandas as pd
import pytest

from surveytidy.construct import DesignConstructionError, as_survey, as_survey_rep, as_survey_twophase
from surveytidy.design import (
    DOMAIN_COLUMN,
    DesignKind,
    DesignVariables,
    RowwiseState,
    design_summary,
    is_design_variable,
    protected_columns,
    with_data,
    with_domain,
)
from surveytidy.errors import ColumnNotFoundError, DesignInvariantError, DesignVariableRemovedError
from surveytidy.filtering import filter
from surveytidy.selectors import StartsWith

from conftest import check_invariants


class TestConstructors:
    """Test as_survey, as_survey_rep, as_survey_twophase."""

    def test_taylor(self, taylor):
        assert taylor.kind is DesignKind.TAYLOR
        assert taylor.variables.variables.ids == ("psu",)
        assert protected_columns(taylor) == ["psu", "strata", "fpc", "wt"]
        check_invariants(taylor)

    def test_replicate(self, replicate):
        assert replicate.kind is DesignKind.REPLICATE
        assert len(replicate.variables.variables.repweights) == 10
        assert "repwt_1" in protected_columns(replicate)

    def test_twophase(self, twophase):
        assert twophase.kind is DesignKind.TWOPHASE
        assert twophase.weights == "wt"
        assert "phase2_ind" in protected_columns(twophase)

    def test_resets_index_and_copies(self):
        df = pd.DataFrame({"wt": [1.0, 2.0], "x": [1, 2]}, index=[10, 20])
        d = as_survey(df, weights="wt")
        assert list(d.data.index) == [0, 1]
        d.data.loc[0, "x"] = 99
        assert df.loc[10, "x"] == 1

    def test_missing_column_raises(self):
        df = pd.DataFrame({"wt": [1.0]})
        with pytest.raises(ColumnNotFoundError):
            as_survey(df, weights="wt", strata="nope")

    def test_non_numeric_weights_raise(self):
        df = pd.DataFrame({"wt": ["a"]})
        with pytest.raises(DesignConstructionError):
            as_survey(df, weights="wt")

    def test_replicate_needs_columns(self):
        df = pd.DataFrame({"wt": [1.0]})
        with pytest.raises(DesignConstructionError):
            as_survey_rep(df, weights="wt", repweights=StartsWith("rep"))

    def test_twophase_subset_must_be_boolean(self, taylor):
        with pytest.raises(DesignConstructionError):
            as_survey_twophase(taylor, subset="y3")


class TestBindings:
    """Every binding field is present, None when unused."""

    def test_defaults(self):
        v = DesignVariables(weights="wt")
        assert v.ids == () and v.strata is None and v.fpc is None
        assert v.repweights == () and v.nest is False and v.probs is False

    def test_renamed(self):
        v = DesignVariables(weights="wt", ids=("psu",), strata="s")
        renamed = v.renamed({"wt": "w", "s": "stratum"})
        assert renamed.weights == "w" and renamed.strata == "stratum" and renamed.ids == ("psu",)


class TestInvariants:
    """Test validate_design through evolve()."""

    def test_duplicate_columns(self, small):
        data = small.data.copy()
        data.columns = ["psu", "wt", "y1", "y1", "group"]
        with pytest.raises(DesignInvariantError):
            small.evolve(data=data)

    def test_empty_data(self, small):
        with pytest.raises(DesignInvariantError):
            small.evolve(data=small.data.iloc[:0])

    def test_missing_design_variable(self, small):
        with pytest.raises(DesignVariableRemovedError) as excinfo:
            small.evolve(data=small.data.drop(columns=["wt"]))
        assert excinfo.value.missing == ["wt"]

    def test_non_boolean_domain(self, small):
        with pytest.raises(DesignInvariantError):
            small.evolve(data=small.data.assign(**{DOMAIN_COLUMN: 1}))

    def test_empty_visible(self, small):
        with pytest.raises(DesignInvariantError):
            small.evolve(visible=())

    def test_grouped_and_rowwise(self, small):
        with pytest.raises(DesignInvariantError):
            small.evolve(groups=("group",), rowwise=RowwiseState(active=True))


class TestMutationApi:
    """Test with_data, with_domain and helpers."""

    def test_with_data_guards_protected(self, small):
        with pytest.raises(DesignVariableRemovedError):
            with_data(small, small.data.drop(columns=["psu"]))

    def test_with_data_guards_domain_column(self, small):
        marked = filter(small, "y1 > 0")
        with pytest.raises(DesignVariableRemovedError):
            with_data(marked, marked.data.drop(columns=[DOMAIN_COLUMN]))

    def test_with_domain_checks_shape(self, small):
        with pytest.raises(ValueError):
            with_domain(small, np.array([True, False]))

    def test_with_domain_appends_log(self, small):
        result = with_domain(small, np.ones(6, dtype=bool), ["all rows"])
        assert result.domain_log == ("all rows",)
        assert is_design_variable(result, DOMAIN_COLUMN)

    def test_copy_is_independent(self, small):
        copied = small.copy()
        copied.data.loc[0, "y1"] = -100.0
        assert small.data.loc[0, "y1"] == 5.0

    def test_pipe(self, small):
        result = small.pipe(filter, "y1 > 0")
        assert design_summary(result)["n_in_domain"] == 3
