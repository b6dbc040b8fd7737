"""
Test the synthetic example surveys.
"""

from surveytidy.examples import make_survey_data


def test_example_data_structure():
    df = make_survey_data(n=100, n_psu=10, n_strata=5, n_replicates=4, with_phase2=True)

    assert len(df) == 100
    assert df["psu"].nunique() == 10
    assert df["strata"].nunique() == 5
    assert [c for c in df.columns if c.startswith("repwt_")] == ["repwt_1", "repwt_2", "repwt_3", "repwt_4"]
    assert df["phase2_ind"].dtype == bool
    assert (df["wt"] > 0).all()


def test_example_data_reproducible():
    assert make_survey_data(seed=7).equals(make_survey_data(seed=7))
