"""Classifier comparison: k-NN, random forest and gradient-boosted trees.

The models are library implementations; what lives here is the reduced
feature set, the hand-picked hyperparameters (`ModelParams`) and the glue
that fits all three on a training table and scores them on a test table.
"""
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence, Tuple
import logging
import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier
from sklearn.model_selection import train_test_split
from sklearn.neighbors import KNeighborsClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from xgboost import XGBClassifier

from .evaluation import evaluate_predictions, roc

logger = logging.getLogger(__name__)

REDUCED_FEATURES = [
    "session_id",
    "contrast_left",
    "contrast_right",
    "contrast_diff",
    "avg_spikes",
    "bin_min",
    "bin_max",
    "bin_range",
]
MODEL_NAMES = ("knn", "random_forest", "xgboost")


@dataclass
class ModelParams:
    knn_k: int = 15
    rf_trees: int = 500
    rf_mtry: int = 3
    xgb_rounds: int = 100
    xgb_learning_rate: float = 0.1
    xgb_max_depth: int = 4
    class_weighting: bool = True
    threshold: float = 0.5
    random_state: int = 42

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def feature_matrix(df: pd.DataFrame, features: Sequence[str] = REDUCED_FEATURES) -> Tuple[np.ndarray, np.ndarray]:
    """Return X (trials x features) and y (1 success, 0 failure)."""
    missing = [c for c in features if c not in df.columns]
    if missing:
        raise ValueError(f"Feature table missing columns: {missing}")
    X = df[list(features)].to_numpy(dtype=float)
    y = df["success"].to_numpy(dtype=int)
    return X, y


def split_train_test(df: pd.DataFrame, test_size: float = 0.2, random_state: int = 42) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Stratified random hold-out split of the feature table."""
    train_df, test_df = train_test_split(
        df, test_size=test_size, random_state=random_state, stratify=df["success"]
    )
    return train_df.reset_index(drop=True), test_df.reset_index(drop=True)


def build_models(params: ModelParams, y_train: np.ndarray, n_features: Optional[int] = None) -> Dict[str, Any]:
    """Instantiate the three classifiers from `params`.

    k is clamped to the training-set size. When `n_features` is given, mtry
    is clamped to it; otherwise `rf_mtry` is used as is.
    """
    y_train = np.asarray(y_train, dtype=int)
    n_success = int(y_train.sum())
    n_failure = int(y_train.size - n_success)

    k = max(1, min(params.knn_k, y_train.size))
    if k != params.knn_k:
        logger.warning("knn_k=%d exceeds %d training trials; using k=%d", params.knn_k, y_train.size, k)
    knn = Pipeline([
        ("scale", StandardScaler()),
        ("clf", KNeighborsClassifier(n_neighbors=k)),
    ])

    mtry = max(1, params.rf_mtry if n_features is None else min(params.rf_mtry, n_features))
    rf = RandomForestClassifier(
        n_estimators=params.rf_trees,
        max_features=mtry,
        class_weight="balanced" if params.class_weighting else None,
        random_state=params.random_state,
        n_jobs=1,
    )

    scale_pos_weight = 1.0
    if params.class_weighting and n_success > 0:
        scale_pos_weight = n_failure / n_success
    xgb = XGBClassifier(
        n_estimators=params.xgb_rounds,
        learning_rate=params.xgb_learning_rate,
        max_depth=params.xgb_max_depth,
        scale_pos_weight=scale_pos_weight,
        objective="binary:logistic",
        eval_metric="logloss",
        random_state=params.random_state,
        n_jobs=1,
        verbosity=0,
    )
    return {"knn": knn, "random_forest": rf, "xgboost": xgb}


def fit_models(models: Dict[str, Any], X: np.ndarray, y: np.ndarray) -> Dict[str, Any]:
    if np.unique(y).size < 2:
        raise ValueError("Training set needs both success and failure trials")
    for name, model in models.items():
        logger.info("Fitting %s on %d trials", name, len(y))
        model.fit(X, y)
    return models


def predict_scores(model, X: np.ndarray) -> np.ndarray:
    """Predicted probability of success for each row of X."""
    proba = model.predict_proba(X)
    classes = list(getattr(model, "classes_", [0, 1]))
    return proba[:, classes.index(1)]


def apply_threshold(scores: np.ndarray, threshold: float = 0.5) -> np.ndarray:
    return (np.asarray(scores, dtype=float) >= threshold).astype(int)


def compare_models(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    params: Optional[ModelParams] = None,
    features: Sequence[str] = REDUCED_FEATURES,
) -> Tuple[pd.DataFrame, Dict[str, Dict[str, Any]]]:
    """Fit the three classifiers on `train_df` and evaluate on `test_df`.

    Returns
      results: DataFrame indexed by model name with accuracy,
        misclassification_rate, auc, sensitivity, specificity
      details: model name -> {'model', 'scores', 'y_pred', 'confusion', 'fpr', 'tpr'}
    """
    params = params or ModelParams()
    if len(test_df) == 0:
        raise ValueError("Test set is empty")
    X_train, y_train = feature_matrix(train_df, features)
    X_test, y_test = feature_matrix(test_df, features)

    models = build_models(params, y_train, n_features=X_train.shape[1])
    fit_models(models, X_train, y_train)

    rows = []
    details = {}
    for name, model in models.items():
        scores = predict_scores(model, X_test)
        ev = evaluate_predictions(y_test, scores, threshold=params.threshold)
        if np.unique(y_test).size > 1:
            fpr, tpr, _ = roc(y_test, scores)
        else:
            fpr, tpr = np.array([]), np.array([])
        details[name] = {
            "model": model,
            "scores": scores,
            "y_pred": apply_threshold(scores, params.threshold),
            "confusion": ev["confusion"],
            "fpr": fpr,
            "tpr": tpr,
        }
        rows.append({
            "model": name,
            "accuracy": ev["accuracy"],
            "misclassification_rate": ev["misclassification_rate"],
            "auc": ev["auc"],
            "sensitivity": ev["sensitivity"],
            "specificity": ev["specificity"],
        })
        logger.info("%s: accuracy=%.3f auc=%.3f", name, ev["accuracy"], ev["auc"])
    results = pd.DataFrame(rows).set_index("model")
    return results, details


def rf_feature_importance(model: RandomForestClassifier, features: Sequence[str] = REDUCED_FEATURES) -> pd.Series:
    return pd.Series(model.feature_importances_, index=list(features)).sort_values(ascending=False)
