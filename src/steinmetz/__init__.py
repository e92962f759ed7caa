"""steinmetz package

Session dataclasses, loaders, per-trial feature extraction, descriptive
statistics, charts and a three-model comparison for predicting trial
success from spike recordings of mice doing a two-alternative contrast
task.
"""

from .session import Session, Trial
from .io import (
    load_session,
    load_sessions,
    load_test_sessions,
    save_session,
    find_session_files,
    parse_feedback_type,
)
from .features import build_feature_table, session_feature_table, trial_features, brain_area_table
from .models import ModelParams, REDUCED_FEATURES, compare_models
from .evaluation import evaluate_predictions

__all__ = [
    "Session",
    "Trial",
    "load_session",
    "load_sessions",
    "load_test_sessions",
    "save_session",
    "find_session_files",
    "parse_feedback_type",
    "build_feature_table",
    "session_feature_table",
    "trial_features",
    "brain_area_table",
    "ModelParams",
    "REDUCED_FEATURES",
    "compare_models",
    "evaluate_predictions",
]
