"""Classifier evaluation on a held-out set: confusion matrix, accuracy, ROC/AUC.

Labels are 1 for success and 0 for failure throughout.
"""
from typing import Any, Dict, Tuple
import logging
import numpy as np
import pandas as pd
from sklearn import metrics

logger = logging.getLogger(__name__)

LABELS = ["failure", "success"]


def confusion_counts(y_true, y_pred) -> pd.DataFrame:
    """2x2 confusion table; rows are actual, columns predicted."""
    cm = metrics.confusion_matrix(np.asarray(y_true, dtype=int), np.asarray(y_pred, dtype=int), labels=[0, 1])
    return pd.DataFrame(
        cm.astype(int),
        index=pd.Index(LABELS, name="actual"),
        columns=pd.Index(LABELS, name="predicted"),
    )


def accuracy(y_true, y_pred) -> float:
    y_true = np.asarray(y_true, dtype=int)
    if y_true.size == 0:
        raise ValueError("Cannot compute accuracy on an empty set")
    return float(metrics.accuracy_score(y_true, np.asarray(y_pred, dtype=int)))


def roc(y_true, scores) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    fpr, tpr, thresholds = metrics.roc_curve(np.asarray(y_true, dtype=int), np.asarray(scores, dtype=float))
    return fpr, tpr, thresholds


def auc_score(y_true, scores) -> float:
    y_true = np.asarray(y_true, dtype=int)
    if np.unique(y_true).size < 2:
        logger.warning("Only one class present in y_true; AUC is undefined")
        return float("nan")
    return float(metrics.roc_auc_score(y_true, np.asarray(scores, dtype=float)))


def evaluate_predictions(y_true, scores, threshold: float = 0.5) -> Dict[str, Any]:
    """Summarize success-probability scores against the true labels.

    Predictions are `scores >= threshold`. Sensitivity is the recall on
    successes, specificity the recall on failures; either is NaN when the
    test set contains no trials of that class.
    """
    y_true = np.asarray(y_true, dtype=int)
    scores = np.asarray(scores, dtype=float)
    y_pred = (scores >= threshold).astype(int)
    cm = confusion_counts(y_true, y_pred)
    tn, fp = cm.loc["failure", "failure"], cm.loc["failure", "success"]
    fn, tp = cm.loc["success", "failure"], cm.loc["success", "success"]
    acc = accuracy(y_true, y_pred)
    return {
        "accuracy": acc,
        "misclassification_rate": 1.0 - acc,
        "auc": auc_score(y_true, scores),
        "sensitivity": float(tp / (tp + fn)) if (tp + fn) else float("nan"),
        "specificity": float(tn / (tn + fp)) if (tn + fp) else float("nan"),
        "confusion": cm,
    }
