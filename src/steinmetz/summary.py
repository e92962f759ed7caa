"""Descriptive statistics over sessions and the per-trial feature table.

Functions
- session_overview(sessions)
- success_rate_by(df, column)
- feedback_counts(df)
- brain_area_counts(sessions)
- feature_correlations(df, columns=None)
- session_homogeneity(df)
"""
from typing import Any, Dict, Iterable, List, Optional
import logging
import numpy as np
import pandas as pd
from scipy import stats
from .session import Session
from .features import SUMMARY_COLUMNS

logger = logging.getLogger(__name__)


def session_overview(sessions: Iterable[Session]) -> pd.DataFrame:
    rows = []
    for s in sessions:
        n_success = sum(1 for t in s.trials if t.success)
        mean_spikes = (
            float(np.mean([np.asarray(t.spks).mean() for t in s.trials]))
            if s.trials and s.n_neurons
            else np.nan
        )
        rows.append({
            "session_id": int(s.session_id),
            "mouse_name": s.mouse_name,
            "date_exp": s.date_exp,
            "n_trials": s.n_trials,
            "n_neurons": s.n_neurons,
            "n_brain_areas": len(s.brain_areas),
            "success_rate": n_success / s.n_trials if s.n_trials else np.nan,
            "mean_spikes": mean_spikes,
        })
    if not rows:
        raise ValueError("No sessions given to session_overview")
    return pd.DataFrame(rows).set_index("session_id")


def success_rate_by(df: pd.DataFrame, column: str) -> pd.DataFrame:
    """Trials, successes and success rate for each value of `column`."""
    g = df.groupby(column)["success"]
    out = pd.DataFrame({"n_trials": g.size(), "n_success": g.sum()})
    out["success_rate"] = out["n_success"] / out["n_trials"]
    return out


def feedback_counts(df: pd.DataFrame) -> pd.Series:
    counts = df["success"].map({1: "success", 0: "failure"}).value_counts()
    return counts.reindex(["success", "failure"], fill_value=0)


def brain_area_counts(sessions: Iterable[Session]) -> pd.DataFrame:
    """Neuron count per (session, brain area), long format."""
    rows = []
    for s in sessions:
        labels, counts = np.unique(np.asarray(s.brain_area), return_counts=True)
        for area, n in zip(labels, counts):
            rows.append({"session_id": int(s.session_id), "brain_area": str(area), "n_neurons": int(n)})
    return pd.DataFrame(rows, columns=["session_id", "brain_area", "n_neurons"])


def feature_correlations(df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """Pearson correlations between feature columns.

    Constant columns have no defined correlation and are dropped with a
    warning.
    """
    if columns is None:
        columns = ["contrast_left", "contrast_right", "contrast_diff"] + SUMMARY_COLUMNS + ["success"]
    data = df[columns].astype(float)
    constant = [c for c in columns if data[c].nunique(dropna=True) < 2]
    if constant:
        logger.warning("Dropping constant columns from correlations: %s", constant)
        data = data.drop(columns=constant)
    return data.corr(method="pearson")


def session_homogeneity(df: pd.DataFrame) -> Dict[str, Any]:
    """Spread of the per-trial mean spike count within and across sessions.

    Returns the per-session mean/std table and a one-way ANOVA across
    sessions (F statistic and p-value; NaN when fewer than two sessions).
    """
    per_session = df.groupby("session_id")["avg_spikes"].agg(["mean", "std", "count"])
    groups = [g.dropna().to_numpy() for _, g in df.groupby("session_id")["avg_spikes"]]
    groups = [g for g in groups if g.size > 0]
    if len(groups) < 2:
        f_stat, p = np.nan, np.nan
    else:
        f_stat, p = stats.f_oneway(*groups)
    return {
        "per_session": per_session,
        "anova_f": float(f_stat),
        "anova_p": float(p),
    }
