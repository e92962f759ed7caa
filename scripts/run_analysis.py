"""Run the full trial-outcome report: load → features → statistics → charts → models.

Usage: python scripts/run_analysis.py --data-dir data --out-dir outputs [--test-session-ids 1 18]
"""
from pathlib import Path
import sys
import argparse
import json
import logging
from typing import Optional

# Determine repository root (two levels up from this script)
repo_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(repo_root / 'src'))

import pandas as pd

from steinmetz.io import load_sessions, load_test_sessions
from steinmetz.features import build_feature_table, brain_area_table, session_bin_centres
from steinmetz.models import ModelParams, REDUCED_FEATURES, compare_models, split_train_test, rf_feature_importance
from steinmetz import summary
from steinmetz import plots

DATA_DIR = repo_root / 'data'
OUT_DIR = repo_root / 'outputs'


def parse_args(argv: Optional[list] = None):
    defaults = ModelParams()
    p = argparse.ArgumentParser(description='Explore session recordings and compare k-NN / random forest / XGBoost on trial success')
    p.add_argument('--data-dir', type=Path, default=DATA_DIR, help='Directory holding session<N> and test<N> files (default: data/)')
    p.add_argument('--out-dir', type=Path, default=OUT_DIR, help='Directory to write PNG/CSV/JSON outputs')
    p.add_argument('--test-session-ids', type=int, nargs='+', default=None,
                   help='Recording session each test<N> file was drawn from, in file order')
    p.add_argument('--test-size', type=float, default=0.2, help='Hold-out fraction when no test files are present')
    p.add_argument('--knn-k', type=int, default=defaults.knn_k, help='Neighbours for k-NN')
    p.add_argument('--rf-trees', type=int, default=defaults.rf_trees, help='Trees in the random forest')
    p.add_argument('--rf-mtry', type=int, default=defaults.rf_mtry, help='Features tried at each random forest split')
    p.add_argument('--xgb-rounds', type=int, default=defaults.xgb_rounds, help='Boosting rounds for XGBoost')
    p.add_argument('--xgb-learning-rate', type=float, default=defaults.xgb_learning_rate, help='XGBoost learning rate')
    p.add_argument('--threshold', type=float, default=defaults.threshold, help='Decision threshold on success probability')
    p.add_argument('--no-class-weighting', dest='class_weighting', action='store_false',
                   help='Do not reweight classes in random forest / XGBoost')
    p.set_defaults(class_weighting=True)
    p.add_argument('--seed', type=int, default=defaults.random_state, help='Random seed for splits and models')
    p.add_argument('--overwrite', action='store_true', help='Overwrite output files if they exist')
    p.add_argument('--verbose', action='store_true', help='Enable verbose logging')
    return p.parse_args(argv)


def configure_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format='[%(levelname)s] %(message)s')


def safe_save(path: Path, save_fn, overwrite: bool):
    """Helper to save files only if allowed by overwrite flag."""
    if path.exists() and not overwrite:
        logging.info('File exists and --overwrite not set, skipping save: %s', path)
        return False
    try:
        save_fn(path)
        logging.info('Wrote %s', path)
        return True
    except Exception:
        logging.exception('Failed to write %s', path)
        return False


def _json_float(v):
    """NaN is not valid JSON; write it as null."""
    return None if pd.isna(v) else float(v)


def params_from_args(args) -> ModelParams:
    return ModelParams(
        knn_k=args.knn_k,
        rf_trees=args.rf_trees,
        rf_mtry=args.rf_mtry,
        xgb_rounds=args.xgb_rounds,
        xgb_learning_rate=args.xgb_learning_rate,
        class_weighting=args.class_weighting,
        threshold=args.threshold,
        random_state=args.seed,
    )


def main(argv: Optional[list] = None):
    args = parse_args(argv)
    configure_logging(args.verbose)

    out_dir = args.out_dir
    out_dir.mkdir(parents=True, exist_ok=True)
    plot_dir = out_dir / 'plots'

    logging.info('Loading sessions from %s', args.data_dir)
    sessions = load_sessions(str(args.data_dir))
    test_sessions = load_test_sessions(str(args.data_dir), session_ids=args.test_session_ids)

    # Feature table
    df = build_feature_table(sessions)
    safe_save(out_dir / 'feature_table.csv', lambda p: df.to_csv(str(p), index=False), overwrite=args.overwrite)

    # Descriptive statistics
    overview = summary.session_overview(sessions)
    logging.info('\nSession overview:\n%s', overview)
    safe_save(out_dir / 'session_overview.csv', lambda p: overview.to_csv(str(p)), overwrite=args.overwrite)

    counts = summary.feedback_counts(df)
    by_session = summary.success_rate_by(df, 'session_id')
    by_mouse = summary.success_rate_by(df, 'mouse_name')
    by_contrast = summary.success_rate_by(df, 'contrast_diff')
    logging.info('\nSuccess rate by mouse:\n%s', by_mouse)
    logging.info('\nSuccess rate by contrast difference:\n%s', by_contrast)
    area_counts = summary.brain_area_counts(sessions)
    corr = summary.feature_correlations(df)
    homog = summary.session_homogeneity(df)
    logging.info('Across-session ANOVA on avg_spikes: F=%.3f p=%.3g', homog['anova_f'], homog['anova_p'])

    safe_save(out_dir / 'success_rate_by_contrast.csv', lambda p: by_contrast.to_csv(str(p)), overwrite=args.overwrite)
    safe_save(out_dir / 'feature_correlations.csv', lambda p: corr.to_csv(str(p)), overwrite=args.overwrite)

    # Charts
    safe_save(plot_dir / 'feedback_pie.png', lambda p: plots.plot_feedback_pie(counts, p), overwrite=args.overwrite)
    safe_save(plot_dir / 'success_rate_by_session.png',
              lambda p: plots.plot_success_rate_bars(by_session, p, xlabel='Session'), overwrite=args.overwrite)
    safe_save(plot_dir / 'success_rate_by_mouse.png',
              lambda p: plots.plot_success_rate_bars(by_mouse, p, xlabel='Mouse'), overwrite=args.overwrite)
    safe_save(plot_dir / 'success_rate_by_contrast_diff.png',
              lambda p: plots.plot_success_rate_bars(by_contrast, p, xlabel='Contrast difference (left - right)'),
              overwrite=args.overwrite)
    safe_save(plot_dir / 'brain_area_counts.png', lambda p: plots.plot_brain_area_bars(area_counts, p), overwrite=args.overwrite)
    safe_save(plot_dir / 'feature_correlations.png', lambda p: plots.plot_correlation_heatmap(corr, p), overwrite=args.overwrite)
    safe_save(plot_dir / 'hist2d_contrast_diff_avg_spikes.png',
              lambda p: plots.plot_hist2d(df, 'contrast_diff', 'avg_spikes', p), overwrite=args.overwrite)
    safe_save(plot_dir / 'hist2d_bin_max_bin_min.png',
              lambda p: plots.plot_hist2d(df, 'bin_min', 'bin_max', p), overwrite=args.overwrite)
    safe_save(plot_dir / 'bin_profiles.png',
              lambda p: plots.plot_bin_profiles(df, p, bin_centres=session_bin_centres(sessions)), overwrite=args.overwrite)

    # Per-session brain-area correlation heatmaps
    for s in sessions:
        areas = brain_area_table(s).drop(columns=['session_id', 'trial_id'])
        if areas.shape[1] < 2:
            continue
        safe_save(plot_dir / f'brain_area_correlations_session{s.session_id}.png',
                  lambda p, a=areas, sid=s.session_id: plots.plot_correlation_heatmap(
                      a.corr(), p, title=f'Session {sid}: brain-area spike correlations'),
                  overwrite=args.overwrite)

    # Models
    params = params_from_args(args)
    if test_sessions:
        train_df = df
        test_df = build_feature_table(test_sessions)
        logging.info('Evaluating on %d held-out test trials from %d test files', len(test_df), len(test_sessions))
    else:
        train_df, test_df = split_train_test(df, test_size=args.test_size, random_state=args.seed)
        logging.info('No test files; random hold-out of %d trials', len(test_df))

    results, details = compare_models(train_df, test_df, params)
    logging.info('\nModel comparison:\n%s', results)
    for name, d in details.items():
        logging.info('\n%s confusion matrix:\n%s', name, d['confusion'])
    importance = rf_feature_importance(details['random_forest']['model'], REDUCED_FEATURES)
    logging.info('\nRandom forest feature importance:\n%s', importance)

    safe_save(out_dir / 'model_results.csv', lambda p: results.to_csv(str(p)), overwrite=args.overwrite)
    safe_save(out_dir / 'rf_feature_importance.csv', lambda p: importance.to_csv(str(p), header=['importance']),
              overwrite=args.overwrite)
    curves = {n: (d['fpr'], d['tpr']) for n, d in details.items() if d['fpr'].size}
    if curves:
        safe_save(plot_dir / 'roc_curves.png', lambda p: plots.plot_roc_curves(curves, results['auc'].to_dict(), p),
                  overwrite=args.overwrite)
    safe_save(plot_dir / 'confusion_matrices.png',
              lambda p: plots.plot_confusion_matrices({n: d['confusion'] for n, d in details.items()}, p),
              overwrite=args.overwrite)

    report = {
        'n_sessions': len(sessions),
        'n_trials': int(len(df)),
        'n_test_trials': int(len(test_df)),
        'overall_success_rate': float(df['success'].mean()),
        'feedback_counts': {k: int(v) for k, v in counts.items()},
        'anova_avg_spikes': {k: _json_float(homog[f'anova_{k.lower()}']) for k in ('F', 'p')},
        'params': params.to_dict(),
        'models': {n: {k: _json_float(v) for k, v in row.items()} for n, row in results.iterrows()},
        'best_model_by_auc': None if results['auc'].isna().all() else str(results['auc'].idxmax()),
    }

    def _write_json(p: Path):
        with p.open('w') as f:
            json.dump(report, f, indent=2)

    safe_save(out_dir / 'report_summary.json', _write_json, overwrite=args.overwrite)
    logging.info('Overall success rate %.3f over %d trials', report['overall_success_rate'], report['n_trials'])
    logging.info('All done')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
