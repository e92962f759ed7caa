"""Charts for the exploratory report.

Every function writes one PNG, closes its figure and returns the path, so
callers can collect outputs without holding figures open.
"""

from pathlib import Path
from typing import Dict, Optional, Sequence
import numpy as np
import pandas as pd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import seaborn as sns

from .features import bin_columns


def _save(fig, path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(p, dpi=120)
    plt.close(fig)
    return p


def plot_feedback_pie(counts: pd.Series, path) -> Path:
    fig, ax = plt.subplots(figsize=(5, 5))
    ax.pie(
        counts.values,
        labels=[f"{k} (n={int(v)})" for k, v in counts.items()],
        autopct="%1.1f%%",
        colors=["C2", "C3"][: len(counts)],
        startangle=90,
    )
    ax.set_title("Trial feedback")
    ax.axis("equal")
    return _save(fig, path)


def plot_success_rate_bars(rates: pd.DataFrame, path, xlabel: str = "") -> Path:
    """rates: output of `summary.success_rate_by`."""
    fig, ax = plt.subplots(figsize=(max(6, 0.4 * len(rates)), 4))
    x = np.arange(len(rates))
    ax.bar(x, rates["success_rate"].values, color="C0")
    ax.set_xticks(x)
    ax.set_xticklabels([str(i) for i in rates.index], rotation=45 if len(rates) > 8 else 0)
    overall = rates["n_success"].sum() / rates["n_trials"].sum()
    ax.axhline(overall, color="k", linestyle="--", linewidth=0.8, label=f"overall {overall:.2f}")
    ax.set_ylim(0, 1)
    ax.set_xlabel(xlabel or rates.index.name or "")
    ax.set_ylabel("Success rate")
    ax.legend(loc="lower right", fontsize="small")
    return _save(fig, path)


def plot_brain_area_bars(area_counts: pd.DataFrame, path) -> Path:
    """Stacked bars of neurons per brain area for each session."""
    wide = area_counts.pivot_table(
        index="session_id", columns="brain_area", values="n_neurons", aggfunc="sum", fill_value=0
    )
    fig, ax = plt.subplots(figsize=(max(6, 0.5 * len(wide)), 5))
    bottom = np.zeros(len(wide))
    palette = sns.color_palette("husl", n_colors=max(1, wide.shape[1]))
    for color, area in zip(palette, wide.columns):
        vals = wide[area].values
        ax.bar(np.arange(len(wide)), vals, bottom=bottom, color=color, label=area)
        bottom += vals
    ax.set_xticks(np.arange(len(wide)))
    ax.set_xticklabels([str(i) for i in wide.index])
    ax.set_xlabel("Session")
    ax.set_ylabel("Number of neurons")
    if wide.shape[1] <= 30:
        ax.legend(loc="upper left", bbox_to_anchor=(1.0, 1.0), fontsize="x-small", ncol=2)
    return _save(fig, path)


def plot_correlation_heatmap(corr: pd.DataFrame, path, title: str = "Feature correlations") -> Path:
    fig, ax = plt.subplots(figsize=(1 + 0.7 * len(corr), 0.6 * len(corr) + 1))
    sns.heatmap(corr, annot=True, fmt=".2f", cmap="coolwarm", vmin=-1, vmax=1, square=True, ax=ax)
    ax.set_title(title)
    return _save(fig, path)


def plot_hist2d(df: pd.DataFrame, x: str, y: str, path, bins: int = 30) -> Path:
    fig, ax = plt.subplots(figsize=(6, 5))
    data = df[[x, y]].dropna()
    h = ax.hist2d(data[x].values, data[y].values, bins=bins, cmap="viridis")
    fig.colorbar(h[3], ax=ax, label="Trials")
    ax.set_xlabel(x)
    ax.set_ylabel(y)
    return _save(fig, path)


def profile_time_axis(n_bins: int, centres: Optional[np.ndarray] = None, bin_size: float = 0.01) -> np.ndarray:
    """Bin-centre times for a profile of `n_bins`, or `bin_size` spacing from 0."""
    if centres is not None and len(centres) == n_bins:
        return np.asarray(centres, dtype=float)
    return np.arange(n_bins) * bin_size


def plot_bin_profiles(
    df: pd.DataFrame,
    path,
    bin_centres: Optional[Dict[int, np.ndarray]] = None,
    bin_size: float = 0.01,
) -> Path:
    """Mean per-bin spike profile for each session.

    bin_centres: session id -> bin-centre times (see
    `features.session_bin_centres`). Sessions without matching centres
    fall back to `bin_size` spacing from 0.
    """
    cols = bin_columns(df)
    bin_centres = bin_centres or {}
    fig, ax = plt.subplots(figsize=(8, 4))
    for sid, g in df.groupby("session_id"):
        t = profile_time_axis(len(cols), bin_centres.get(sid), bin_size)
        ax.plot(t, g[cols].mean(axis=0).values, linewidth=1, label=str(sid))
    ax.set_xlabel("Time from stimulus onset (s)")
    ax.set_ylabel("Mean spikes per neuron per bin")
    if df["session_id"].nunique() <= 20:
        ax.legend(title="Session", fontsize="x-small", ncol=2)
    return _save(fig, path)


def plot_roc_curves(curves: Dict[str, Sequence[np.ndarray]], aucs: Dict[str, float], path) -> Path:
    """curves: model name -> (fpr, tpr)."""
    fig, ax = plt.subplots(figsize=(5, 5))
    for name, (fpr, tpr) in curves.items():
        ax.plot(fpr, tpr, label=f"{name} (AUC={aucs.get(name, np.nan):.3f})")
    ax.plot([0, 1], [0, 1], color="k", linestyle="--", linewidth=0.8)
    ax.set_xlabel("False positive rate")
    ax.set_ylabel("True positive rate")
    ax.set_title("ROC on test set")
    ax.legend(loc="lower right", fontsize="small")
    return _save(fig, path)


def plot_confusion_matrices(confusions: Dict[str, pd.DataFrame], path) -> Path:
    n = max(1, len(confusions))
    fig, axes = plt.subplots(1, n, figsize=(3.5 * n, 3.2), squeeze=False)
    for ax, (name, cm) in zip(axes[0], confusions.items()):
        sns.heatmap(cm, annot=True, fmt="d", cmap="Blues", cbar=False, ax=ax)
        ax.set_title(name)
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")
    return _save(fig, path)
