import numpy as np
import pandas as pd
import pytest
from steinmetz.features import build_feature_table
from steinmetz import summary


def test_session_overview(sessions):
    ov = summary.session_overview(sessions)
    assert ov.index.tolist() == [1, 2, 3]
    assert ov.loc[2, "n_neurons"] == 14
    for s in sessions:
        n_success = sum(t.feedback_type == 1 for t in s.trials)
        assert ov.loc[s.session_id, "success_rate"] == pytest.approx(n_success / s.n_trials)


def test_success_rate_is_successes_over_total(sessions):
    df = build_feature_table(sessions)
    rates = summary.success_rate_by(df, "session_id")
    for sid, g in df.groupby("session_id"):
        assert rates.loc[sid, "n_trials"] == len(g)
        assert rates.loc[sid, "success_rate"] == (g["feedback_type"] == 1).sum() / len(g)
    assert rates["n_trials"].sum() == len(df)


def test_success_rate_by_mouse(sessions):
    df = build_feature_table(sessions)
    rates = summary.success_rate_by(df, "mouse_name")
    assert rates.index.tolist() == ["Cori", "Hench"]
    assert rates.loc["Cori", "n_trials"] == 160


def test_feedback_counts():
    df = pd.DataFrame({"success": [1, 1, 0, 1]})
    counts = summary.feedback_counts(df)
    assert counts["success"] == 3
    assert counts["failure"] == 1
    assert summary.feedback_counts(pd.DataFrame({"success": [1, 1]}))["failure"] == 0


def test_brain_area_counts(sessions):
    counts = summary.brain_area_counts(sessions)
    for s in sessions:
        assert counts[counts["session_id"] == s.session_id]["n_neurons"].sum() == s.n_neurons


def test_feature_correlations(sessions):
    df = build_feature_table(sessions)
    corr = summary.feature_correlations(df)
    assert corr.shape[0] == corr.shape[1]
    assert df["bin_min"].nunique() > 1
    assert "bin_min" in corr.columns
    np.testing.assert_allclose(np.diag(corr.values), 1.0)
    assert corr.loc["bin_max", "bin_min"] == corr.loc["bin_min", "bin_max"]


def test_feature_correlations_drop_constant_columns(sessions):
    df = build_feature_table(sessions)
    df["bin_min"] = 0.0
    corr = summary.feature_correlations(df)
    assert "bin_min" not in corr.columns
    assert "bin_min" not in corr.index
    assert not corr.isna().any().any()


def test_session_overview_empty():
    with pytest.raises(ValueError):
        summary.session_overview([])


def test_session_homogeneity(sessions):
    df = build_feature_table(sessions)
    res = summary.session_homogeneity(df)
    assert res["per_session"].index.tolist() == [1, 2, 3]
    assert 0.0 <= res["anova_p"] <= 1.0
    single = summary.session_homogeneity(df[df["session_id"] == 1])
    assert np.isnan(single["anova_f"])
