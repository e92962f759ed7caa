from pathlib import Path
import numpy as np
from steinmetz.features import build_feature_table, session_bin_centres
from steinmetz.evaluation import confusion_counts
from steinmetz import summary, plots


def test_exploratory_plots_written(tmp_path, sessions):
    df = build_feature_table(sessions)
    out = [
        plots.plot_feedback_pie(summary.feedback_counts(df), tmp_path / "pie.png"),
        plots.plot_success_rate_bars(summary.success_rate_by(df, "session_id"), tmp_path / "bars.png"),
        plots.plot_brain_area_bars(summary.brain_area_counts(sessions), tmp_path / "areas.png"),
        plots.plot_correlation_heatmap(summary.feature_correlations(df), tmp_path / "corr.png"),
        plots.plot_hist2d(df, "contrast_diff", "avg_spikes", tmp_path / "h2d.png"),
        plots.plot_bin_profiles(df, tmp_path / "sub" / "profiles.png"),
    ]
    for p in out:
        assert Path(p).exists()
        assert Path(p).stat().st_size > 0


def test_model_plots_written(tmp_path):
    fpr = np.array([0.0, 0.5, 1.0])
    tpr = np.array([0.0, 0.8, 1.0])
    roc_png = plots.plot_roc_curves({"knn": (fpr, tpr)}, {"knn": 0.65}, tmp_path / "roc.png")
    cm = confusion_counts([1, 0, 1], [1, 1, 0])
    cm_png = plots.plot_confusion_matrices({"knn": cm, "xgboost": cm}, tmp_path / "cm.png")
    assert roc_png.exists()
    assert cm_png.exists()


def test_profile_time_axis_uses_bin_centres():
    centres = np.arange(40) * 0.01 + 0.005
    np.testing.assert_allclose(plots.profile_time_axis(40, centres), centres)
    # missing or mismatched centres fall back to bin_size spacing
    np.testing.assert_allclose(plots.profile_time_axis(3, None, bin_size=0.02), [0.0, 0.02, 0.04])
    np.testing.assert_allclose(plots.profile_time_axis(3, centres), [0.0, 0.01, 0.02])


def test_bin_profiles_with_session_centres(tmp_path, sessions):
    df = build_feature_table(sessions)
    centres = session_bin_centres(sessions)
    assert sorted(centres) == [1, 2, 3]
    p = plots.plot_bin_profiles(df, tmp_path / "profiles.png", bin_centres=centres)
    assert p.exists()
