"""
Tests for column selection.
"""

import pandas as pd
import pytest
from pandas.api.types import is_numeric_dtype

from surveytidy.errors import ColumnNotFoundError
from surveytidy.selectors import (
    AllOf,
    AnyOf,
    Contains,
    EndsWith,
    Everything,
    Matches,
    Not,
    StartsWith,
    Where,
    resolve,
)

COLUMNS = ["psu", "wt", "y1", "y2", "group"]


class TestResolve:
    """Test resolve()."""

    def test_names_keep_given_order(self):
        assert resolve(["y2", "psu"], COLUMNS) == ["y2", "psu"]

    def test_positions(self):
        assert resolve([0, -1], COLUMNS) == ["psu", "group"]

    def test_deduplicates(self):
        assert resolve(["y1", StartsWith("y")], COLUMNS) == ["y1", "y2"]

    def test_helpers(self):
        assert resolve(EndsWith("2"), COLUMNS) == ["y2"]
        assert resolve(Contains("ro"), COLUMNS) == ["group"]
        assert resolve(Matches(r"^y\d$"), COLUMNS) == ["y1", "y2"]
        assert resolve(Everything(), COLUMNS) == COLUMNS

    def test_leading_not_starts_from_everything(self):
        assert resolve(Not(StartsWith("y")), COLUMNS) == ["psu", "wt", "group"]

    def test_not_after_selection(self):
        assert resolve([StartsWith("y"), Not("y1")], COLUMNS) == ["y2"]

    def test_not_with_list(self):
        assert resolve(Not(["psu", "wt"]), COLUMNS) == ["y1", "y2", "group"]

    def test_all_of_and_any_of(self):
        assert resolve(AnyOf(["y1", "missing"]), COLUMNS) == ["y1"]
        with pytest.raises(ColumnNotFoundError):
            resolve(AllOf(["y1", "missing"]), COLUMNS)

    def test_where_needs_data(self):
        data = pd.DataFrame({"a": [1], "b": ["x"]})
        assert resolve(Where(is_numeric_dtype), data.columns, data) == ["a"]
        with pytest.raises(TypeError):
            resolve(Where(is_numeric_dtype), data.columns)

    def test_unknown_name_raises(self):
        with pytest.raises(ColumnNotFoundError) as excinfo:
            resolve("nope", COLUMNS)
        assert excinfo.value.missing == ["nope"]

    def test_position_out_of_range(self):
        with pytest.raises(ColumnNotFoundError):
            resolve(10, COLUMNS)

    def test_empty_selection(self):
        assert resolve([], COLUMNS) == []
