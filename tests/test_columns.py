"""
Tests for the column verbs: select, rename, rename_with, relocate, pull.

These tests verify:
    - Design variables survive any selection
    - The visible list is kept separate from the physical columns
    - Renames reach the data, the design spec and the label store
    - rename_with() rejects unusable function output
"""

import warnings

import pytest

from surveytidy.columns import pull, relocate, rename, rename_with, reorder_names, select
from surveytidy.design import DOMAIN_COLUMN, protected_columns
from surveytidy.errors import (
    ColumnNotFoundError,
    DuplicateColumnError,
    InvalidRenameFunctionError,
    RenamedDesignVariableWarning,
    ReservedColumnError,
)
from surveytidy.filtering import filter
from surveytidy.grouping import group_by
from surveytidy.selectors import Everything, Not, StartsWith

from conftest import check_invariants


class TestSelect:
    """Test select()."""

    def test_keeps_design_variables(self, small):
        """wt and psu should stay even when not selected."""
        result = select(small, "y1")
        assert list(result.data.columns) == ["y1", "psu", "wt"]
        check_invariants(result)

    def test_visible_is_user_selection(self, small):
        """Visible should list only what the user asked for."""
        result = select(small, "y1", "y2")
        assert result.visible == ("y1", "y2")

    def test_purges_labels_of_dropped_columns(self, small):
        """Label entries of physically dropped columns should be removed."""
        result = select(small, "y1")
        assert result.metadata.variable_labels == {"y1": "First outcome"}

    def test_protected_permanence_every_kind(self, any_design):
        """Every protected column should survive any selection."""
        for selection in (["y1"], [StartsWith("y")], [Not(Everything())], []):
            result = select(any_design, *selection)
            for column in protected_columns(any_design):
                assert column in result.data.columns

    def test_domain_column_survives(self, small):
        marked = filter(small, "y1 > 0")
        result = select(marked, "y2")
        assert DOMAIN_COLUMN in result.data.columns

    def test_selecting_everything_resets_visible(self, small):
        """A selection covering all kept columns stores None."""
        result = select(small, Everything())
        assert result.visible is None

    def test_empty_selection_stores_none(self, small):
        """Visible should never be an empty list."""
        result = select(small)
        assert result.visible is None
        assert list(result.data.columns) == ["psu", "wt"]

    def test_keeps_grouping_columns(self, small):
        grouped = group_by(small, "group")
        result = select(grouped, "y1")
        assert "group" in result.data.columns
        assert result.groups == ("group",)

    def test_unknown_column_raises(self, small):
        with pytest.raises(ColumnNotFoundError):
            select(small, "nope")

    def test_row_count_unchanged(self, small):
        assert select(small, "y1").n_rows == small.n_rows


class TestRename:
    """Test rename()."""

    def test_plain_rename(self, small):
        """Should rename the column and move its label."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = rename(small, {"y1": "outcome"})
        assert "outcome" in result.data.columns
        assert "y1" not in result.data.columns
        assert result.metadata.get_var_label("outcome") == "First outcome"

    def test_rename_weight_updates_design(self, small):
        """Renaming wt should update the design and warn."""
        labelled = small.evolve(metadata=small.metadata.with_entry("variable_labels", "wt", "Weight"))
        with pytest.warns(RenamedDesignVariableWarning):
            result = rename(labelled, {"wt": "weight"})
        assert result.weights == "weight"
        assert "weight" in result.data.columns
        assert "wt" not in result.data.columns
        assert result.metadata.variable_labels["weight"] == "Weight"
        check_invariants(result)

    def test_rename_updates_visible_and_groups(self, small):
        shaped = group_by(select(small, "y1", "group"), "group")
        result = rename(shaped, {"group": "g", "y1": "a"})
        assert result.visible == ("a", "g")
        assert result.groups == ("g",)

    def test_domain_column_keeps_its_name(self, small):
        """Renaming the domain column warns and is ignored."""
        marked = filter(small, "y1 > 0")
        with pytest.warns(RenamedDesignVariableWarning):
            result = rename(marked, {DOMAIN_COLUMN: "dom"})
        assert DOMAIN_COLUMN in result.data.columns
        assert "dom" not in result.data.columns

    def test_boolean_column_cannot_become_domain(self, small):
        """A boolean user column must not turn into the domain mask."""
        flagged = small.evolve(data=small.data.assign(flag=small.data["group"] == "A"))
        with pytest.raises(ReservedColumnError):
            rename(flagged, {"flag": DOMAIN_COLUMN})
        assert flagged.domain is None

    def test_numeric_column_cannot_take_domain_name(self, small):
        with pytest.raises(ReservedColumnError):
            rename(small, {"y1": DOMAIN_COLUMN})

    def test_unknown_column_raises(self, small):
        with pytest.raises(ColumnNotFoundError):
            rename(small, {"nope": "x"})

    def test_duplicate_result_raises(self, small):
        with pytest.raises(DuplicateColumnError):
            rename(small, {"y1": "y2"})

    def test_rename_replicate_weights(self, replicate):
        with pytest.warns(RenamedDesignVariableWarning):
            result = rename(replicate, {"repwt_1": "rw1"})
        assert result.variables.variables.repweights[0] == "rw1"
        check_invariants(result)


class TestRenameWith:
    """Test rename_with()."""

    def test_upper_case(self, small):
        result = rename_with(small, lambda names: [n.upper() for n in names], columns=StartsWith("y"))
        assert "Y1" in result.data.columns and "Y2" in result.data.columns

    def test_passes_extra_arguments(self, small):
        def add_prefix(names, prefix):
            return [prefix + n for n in names]

        result = rename_with(small, add_prefix, columns=["y1"], prefix="new_")
        assert "new_y1" in result.data.columns

    def test_design_variable_warns(self, small):
        with pytest.warns(RenamedDesignVariableWarning):
            result = rename_with(small, lambda names: [n + "_x" for n in names], columns="wt")
        assert result.weights == "wt_x"

    def test_domain_name_output_raises(self, small):
        with pytest.raises(ReservedColumnError):
            rename_with(small, lambda names: [DOMAIN_COLUMN], columns=["y1"])

    @pytest.mark.parametrize(
        "fn, reason",
        [
            (lambda names: [1 for _ in names], "non_string"),
            (lambda names: 5, "non_string"),
            (lambda names: names[:1], "wrong_length"),
            (lambda names: ["same" for _ in names], "duplicate"),
            (lambda names: ["group" for _ in names], "conflict"),
        ],
    )
    def test_invalid_output(self, small, fn, reason):
        """Should reject output with the matching reason."""
        columns = ["y1"] if reason == "conflict" else ["y1", "y2"]
        with pytest.raises(InvalidRenameFunctionError) as excinfo:
            rename_with(small, fn, columns=columns)
        assert excinfo.value.reason == reason


class TestRelocate:
    """Test relocate() and reorder_names()."""

    def test_moves_to_front(self, small):
        result = relocate(small, "group")
        assert list(result.data.columns)[0] == "group"
        assert result.n_rows == small.n_rows

    def test_before_and_after(self, small):
        names = ["a", "b", "c", "d"]
        assert reorder_names(names, ["d"], before="b") == ["a", "d", "b", "c"]
        assert reorder_names(names, ["a"], after="c") == ["b", "c", "a", "d"]

    def test_both_anchors_raise(self, small):
        with pytest.raises(ValueError):
            relocate(small, "y1", before="psu", after="wt")

    def test_reorders_visible_only(self, small):
        """With an explicit visible list only that list changes."""
        shaped = select(small, "y1", "y2", "group")
        result = relocate(shaped, "group", before="y1")
        assert result.visible == ("group", "y1", "y2")
        assert list(result.data.columns) == list(shaped.data.columns)


class TestPull:
    """Test pull()."""

    def test_last_column_by_default(self, small):
        assert pull(small).tolist() == small.data["group"].tolist()

    def test_named_index(self, small):
        values = pull(small, "wt", name="group")
        assert list(values.index) == ["A", "B", "A", "B", "A", "C"]
