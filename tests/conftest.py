"""
Shared fixtures for the surveytidy test suite.

Provides one design of each kind built from synthetic data, a small
hand-written design whose values are easy to reason about, and an
invariant checker every verb test can call on its result.
"""

import numpy as np
import pandas as pd
import pytest

from surveytidy.construct import as_survey
from surveytidy.design import DOMAIN_COLUMN, protected_columns, validate_design
from surveytidy.examples import build_replicate_design, build_taylor_design, build_twophase_design


def check_invariants(design):
    """Assert every structural invariant of a design record."""
    validate_design(design)
    assert isinstance(design.data.index, pd.RangeIndex)
    assert design.data.index.start == 0
    for column in protected_columns(design):
        assert column in design.data.columns
    if DOMAIN_COLUMN in design.data.columns:
        assert design.data[DOMAIN_COLUMN].dtype == np.bool_
    assert not (design.groups and design.rowwise.active)


@pytest.fixture
def taylor():
    return build_taylor_design()


@pytest.fixture
def replicate():
    return build_replicate_design()


@pytest.fixture
def twophase():
    return build_twophase_design()


@pytest.fixture(params=["taylor", "replicate", "twophase"])
def any_design(request):
    builders = {
        "taylor": build_taylor_design,
        "replicate": build_replicate_design,
        "twophase": build_twophase_design,
    }
    return builders[request.param]()


@pytest.fixture
def small():
    """Six rows, weight column 'wt', cluster column 'psu', some missing values."""
    df = pd.DataFrame(
        {
            "psu": [1, 1, 2, 2, 3, 3],
            "wt": [1.0, 2.0, 1.5, 1.0, 2.5, 3.0],
            "y1": [5.0, -1.0, np.nan, 3.0, 0.0, 7.0],
            "y2": [1.0, 2.0, 3.0, -4.0, 5.0, np.nan],
            "group": ["A", "B", "A", "B", "A", "C"],
        }
    )
    return as_survey(df, weights="wt", ids="psu", labels={"y1": "First outcome", "group": "Group"})
