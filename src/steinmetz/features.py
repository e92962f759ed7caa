"""Per-trial feature extraction.

Each trial's spike matrix (neurons x time bins) is reduced to the average
count per time bin across all recorded neurons; the min, max and max-min
range of that profile, plus its overall mean, become the summary
features. `build_feature_table` flattens a list of sessions into one
DataFrame with one row per trial.
"""
from typing import Dict, Iterable, List
import logging
import numpy as np
import pandas as pd
from .session import Session, Trial

logger = logging.getLogger(__name__)

ID_COLUMNS = ["session_id", "trial_id", "mouse_name"]
SUMMARY_COLUMNS = ["avg_spikes", "bin_min", "bin_max", "bin_range"]


def trial_bin_averages(spks: np.ndarray) -> np.ndarray:
    """Mean spike count per time bin over neurons.

    spks: neurons x bins. A matrix with no neurons gives an all-NaN profile.
    """
    spks = np.asarray(spks, dtype=float)
    if spks.ndim != 2:
        raise ValueError(f"spks must be 2-D (neurons x bins), got shape {spks.shape}")
    if spks.shape[0] == 0:
        logger.warning("Trial has no neurons; bin averages are NaN")
        return np.full(spks.shape[1], np.nan)
    return spks.mean(axis=0)


def trial_features(trial: Trial) -> Dict[str, float]:
    profile = trial_bin_averages(trial.spks)
    if profile.size == 0 or np.all(np.isnan(profile)):
        bin_min = bin_max = avg = np.nan
    else:
        bin_min = float(np.nanmin(profile))
        bin_max = float(np.nanmax(profile))
        avg = float(np.nanmean(profile))
    feats = {
        "avg_spikes": avg,
        "bin_min": bin_min,
        "bin_max": bin_max,
        "bin_range": bin_max - bin_min,
    }
    for j, v in enumerate(profile, start=1):
        feats[f"bin_{j}"] = float(v)
    return feats


def session_feature_table(session: Session) -> pd.DataFrame:
    rows = []
    for i, t in enumerate(session.trials, start=1):
        row = {
            "session_id": int(session.session_id),
            "trial_id": i,
            "mouse_name": session.mouse_name,
            "contrast_left": t.contrast_left,
            "contrast_right": t.contrast_right,
            "contrast_diff": t.contrast_diff,
            "feedback_type": int(t.feedback_type),
            "success": int(t.success),
            "n_neurons": session.n_neurons,
        }
        row.update(trial_features(t))
        rows.append(row)
    return pd.DataFrame(rows)


def build_feature_table(sessions: Iterable[Session]) -> pd.DataFrame:
    """Concatenate per-session feature tables (one row per trial)."""
    tables = [session_feature_table(s) for s in sessions]
    if not tables:
        raise ValueError("No sessions given to build_feature_table")
    df = pd.concat(tables, ignore_index=True)
    logger.info("Feature table: %d trials x %d columns", df.shape[0], df.shape[1])
    return df


def bin_columns(df: pd.DataFrame) -> List[str]:
    cols = [c for c in df.columns if c.startswith("bin_") and c[4:].isdigit()]
    return sorted(cols, key=lambda c: int(c[4:]))


def brain_area_table(session: Session) -> pd.DataFrame:
    """Per-trial mean spike count (over neurons and bins) for each brain area."""
    labels = np.asarray(session.brain_area)
    areas = session.brain_areas
    rows = []
    for i, t in enumerate(session.trials, start=1):
        spks = np.asarray(t.spks, dtype=float)
        row = {"session_id": int(session.session_id), "trial_id": i}
        for area in areas:
            row[area] = float(spks[labels == area].mean())
        rows.append(row)
    return pd.DataFrame(rows, columns=["session_id", "trial_id"] + areas)


def session_bin_centres(sessions: Iterable[Session]) -> Dict[int, np.ndarray]:
    """Session id -> bin-centre times, taken from each session's first trial.

    Sessions whose trials carry no `time` vector are left out.
    """
    out = {}
    for s in sessions:
        if s.trials and s.trials[0].time is not None:
            out[int(s.session_id)] = np.asarray(s.trials[0].time, dtype=float)
    return out
