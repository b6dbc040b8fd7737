"""
Synthetic example surveys.

Builds a stratified cluster sample (psu within strata, fpc, weights) with
two continuous outcomes, one binary outcome and a categorical group, and
wraps it in each kind of design. Used by the tests and as a quick way to
try the verbs.
"""
from typing import Optional

import numpy as np
import pandas as pd

from surveytidy.construct import as_survey, as_survey_rep, as_survey_twophase
from surveytidy.design import SurveyDesign
from surveytidy.selectors import StartsWith

EXAMPLE_LABELS = {
    "y1": "Outcome variable 1 (continuous)",
    "y2": "Outcome variable 2 (continuous)",
    "y3": "Outcome variable 3 (binary, 0/1)",
    "group": "Respondent group",
}


def make_survey_data(
    n: int = 200,
    n_psu: int = 20,
    n_strata: int = 4,
    n_replicates: int = 0,
    with_phase2: bool = False,
    seed: Optional[int] = 42,
) -> pd.DataFrame:
    """
    Generate survey microdata.

    Columns: psu, strata, fpc, wt, y1, y2, y3, group, plus repwt_1..repwt_R
    when ``n_replicates`` > 0 and a boolean phase2_ind when ``with_phase2``.
    """
    if n < n_psu or n_psu < n_strata:
        raise ValueError("Need n >= n_psu >= n_strata")
    rng = np.random.default_rng(seed)

    psu_stratum = np.arange(n_psu) % n_strata
    psu_index = np.sort(np.concatenate([np.arange(n_psu), rng.integers(0, n_psu, n - n_psu)]))
    strata = psu_stratum[psu_index]

    stratum_n = np.bincount(strata, minlength=n_strata)
    stratum_pop = np.round(stratum_n * rng.uniform(8, 15, n_strata))
    wt = (stratum_pop / stratum_n)[strata] * np.exp(rng.normal(0, 0.2, n))

    df = pd.DataFrame(
        {
            "psu": [f"psu_{i + 1}" for i in psu_index],
            "strata": [f"stratum_{s + 1}" for s in strata],
            "fpc": stratum_pop[strata],
            "wt": wt,
            "y1": rng.normal(50, 10, n),
            "y2": rng.normal(0, 1, n),
            "y3": (rng.uniform(size=n) < 0.3).astype(int),
            "group": rng.choice(["A", "B", "C"], n),
        }
    )

    for r in range(n_replicates):
        df[f"repwt_{r + 1}"] = wt * np.exp(rng.normal(0, 0.1, n))

    if with_phase2:
        df["phase2_ind"] = rng.uniform(size=n) < 0.4

    return df


def build_taylor_design(seed: Optional[int] = 42, **kwargs) -> SurveyDesign:
    data = make_survey_data(seed=seed, **kwargs)
    return as_survey(data, weights="wt", ids="psu", strata="strata", fpc="fpc", nest=True, labels=EXAMPLE_LABELS)


def build_replicate_design(n_replicates: int = 10, seed: Optional[int] = 42, **kwargs) -> SurveyDesign:
    data = make_survey_data(n_replicates=n_replicates, seed=seed, **kwargs)
    return as_survey_rep(data, weights="wt", repweights=StartsWith("repwt_"), type="bootstrap", labels=EXAMPLE_LABELS)


def build_twophase_design(seed: Optional[int] = 42, **kwargs) -> SurveyDesign:
    phase1 = build_taylor_design(seed=seed, with_phase2=True, **kwargs)
    return as_survey_twophase(phase1, subset="phase2_ind", strata="strata")
