"""
Training Script for the Metadata Classifier and its Ensembles

Runs the whole batch pipeline:
load -> split -> fit encoders/normalizer on train -> engineer features
-> train base models -> score validation -> combine -> evaluate.

Usage:
    fakenews-train --data data/raw/fake_news_dataset.csv --save
    python -m fakenews_ensemble.training.train_classical --seed 123
"""

import argparse
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from fakenews_ensemble.config import RESULTS_DIR, PipelineConfig
from fakenews_ensemble.evaluation.metrics import ModelEvaluator
from fakenews_ensemble.models.classical_models import (
    ProbabilityModel,
    create_all_models,
    save_model,
)
from fakenews_ensemble.models.ensemble import EnsembleResult, decide, run_all_strategies
from fakenews_ensemble.preprocessing.data_loader import NewsDataLoader, split_dataset
from fakenews_ensemble.preprocessing.feature_pipeline import (
    FeatureParams,
    fit_feature_params,
    save_feature_params,
    split_labels,
    transform_records,
)
from fakenews_ensemble.utils.deterministic import set_all_seeds
from fakenews_ensemble.utils.errors import ConfigError, PipelineError


@dataclass
class PipelineResult:
    """Everything one run produces."""
    feature_params: FeatureParams
    models: Dict[str, ProbabilityModel]
    probabilities: Dict[str, pd.Series]
    ensembles: Dict[str, EnsembleResult]
    evaluator: ModelEvaluator
    train_ids: pd.Index
    val_ids: pd.Index


def _banner(title: str, verbose: bool):
    if verbose:
        print("\n" + "=" * 50)
        print(title)
        print("=" * 50)


def prepare_features(
    train: pd.DataFrame,
    val: pd.DataFrame,
    config: PipelineConfig,
    verbose: bool = True
):
    """
    Fit feature parameters on train and apply them to both splits.

    Returns:
        Tuple of (X_train, X_val, feature_params)
    """
    _banner("FEATURE PREPARATION", verbose)

    params = fit_feature_params(
        train,
        threshold=config.cardinality_threshold,
        unknown_policy=config.unknown_category_policy,
        degenerate_policy=config.degenerate_field_policy,
        verbose=verbose
    )
    X_train = transform_records(params, train)
    X_val = transform_records(params, val)

    if verbose:
        print(f"\nFeature dimensions:")
        print(f"  Training: {X_train.shape}")
        print(f"  Validation: {X_val.shape}")

    return X_train, X_val, params


def train_models(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    config: PipelineConfig,
    verbose: bool = True
) -> Dict[str, ProbabilityModel]:
    """
    Train all base models on the training split.

    Returns:
        Dictionary of fitted models
    """
    _banner("MODEL TRAINING", verbose)

    models = create_all_models(
        seed=config.seed,
        k_grid=config.knn_k_grid,
        cv_folds=config.cv_folds,
        prune_tree=config.prune_tree,
        include_boosted_tree=config.include_boosted_tree,
        boosted_tree_trials=config.boosted_tree_trials,
        verbose=verbose
    )
    for model in models.values():
        model.fit(X_train, y_train)

    return models


def run_pipeline(
    records: pd.DataFrame,
    config: Optional[PipelineConfig] = None,
    verbose: bool = True
) -> PipelineResult:
    """
    Run the full pipeline on prepared records.

    Args:
        records: Output of NewsDataLoader.prepare_records
        config: Run settings (default: PipelineConfig())
        verbose: Print progress

    Returns:
        PipelineResult
    """
    config = (config or PipelineConfig()).validate()
    available = set(create_all_models(
        include_boosted_tree=config.include_boosted_tree, verbose=False
    ))
    missing = [m for m in config.ensemble_members if m not in available]
    if missing:
        raise ConfigError(
            f"Unknown ensemble members: {missing}",
            field="ensemble_members"
        )

    set_all_seeds(config.seed)

    train, val = split_dataset(records, config.train_fraction, config.seed)
    if verbose:
        print(f"Train: {len(train)} samples, Validation: {len(val)} samples")

    X_train, X_val, params = prepare_features(train, val, config, verbose)
    y_train = split_labels(train)
    y_val = split_labels(val)

    models = train_models(X_train, y_train, config, verbose)

    _banner("MODEL EVALUATION", verbose)
    evaluator = ModelEvaluator()
    probabilities = {}
    for name, model in models.items():
        proba = model.predict_probability(X_val)
        probabilities[name] = proba
        evaluator.evaluate_model(name, y_val, decide(proba, config.threshold), proba)

    _banner("ENSEMBLES", verbose)
    members = {name: probabilities[name] for name in config.ensemble_members}
    ensembles = run_all_strategies(
        members,
        y_val,
        weights=config.ensemble_weights,
        threshold=config.threshold,
        boosting_rounds=config.boosting_rounds,
        holdout_fraction=config.stacking_holdout_fraction,
        seed=config.seed,
        verbose=verbose
    )
    for name, result in ensembles.items():
        evaluator.evaluate_model(
            f"ensemble_{name}", y_val, result.labels, result.probabilities
        )

    if verbose:
        evaluator.print_results()

    return PipelineResult(
        feature_params=params,
        models=models,
        probabilities=probabilities,
        ensembles=ensembles,
        evaluator=evaluator,
        train_ids=train.index,
        val_ids=val.index
    )


def save_outputs(result: PipelineResult, results_dir: Optional[Path] = None):
    """Write report tables, feature parameters and fitted models."""
    results_dir = Path(results_dir or RESULTS_DIR)
    results_dir.mkdir(parents=True, exist_ok=True)

    f1_path = results_dir / "f1_scores.csv"
    result.evaluator.f1_table().to_csv(f1_path)
    comparison_path = results_dir / "prediction_comparison.csv"
    result.evaluator.comparison_table().to_csv(comparison_path)
    metrics_path = results_dir / "metrics.csv"
    result.evaluator.to_dataframe().to_csv(metrics_path)
    print(f"\nResults saved to {results_dir}")

    save_feature_params(result.feature_params)
    for model in result.models.values():
        save_model(model)


def build_config(args: argparse.Namespace) -> PipelineConfig:
    config = PipelineConfig(
        seed=args.seed,
        train_fraction=args.train_fraction,
        threshold=args.threshold,
        stacking_holdout_fraction=args.stack_holdout,
        include_boosted_tree=args.boosted_tree,
    )
    if args.center_constant_fields:
        config = replace(config, degenerate_field_policy="center")
    return config


def main(argv=None) -> int:
    """Main training pipeline."""
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(
        description="Train metadata models and ensembles for fake news detection"
    )
    parser.add_argument('--data', type=str, default=None,
                        help='Path to the article metadata CSV')
    parser.add_argument('--seed', type=int, default=defaults.seed,
                        help='Random seed for the split and the models')
    parser.add_argument('--train-fraction', type=float,
                        default=defaults.train_fraction,
                        help='Share of records used for training')
    parser.add_argument('--threshold', type=float, default=defaults.threshold,
                        help='P(REAL) at or above which an article is REAL')
    parser.add_argument('--stack-holdout', type=float, default=None,
                        help='Nested holdout fraction for meta-learners '
                             '(default: in-sample)')
    parser.add_argument('--boosted-tree', action='store_true',
                        help='Also train the boosted decision tree base model')
    parser.add_argument('--center-constant-fields', action='store_true',
                        help='Center constant fields instead of failing')
    parser.add_argument('--save', action='store_true',
                        help='Save report tables, feature parameters and models')
    args = parser.parse_args(argv)

    print("=" * 60)
    print("FAKE NEWS DETECTION - METADATA MODELS AND ENSEMBLES")
    print("=" * 60)

    try:
        config = build_config(args)
        loader = NewsDataLoader()
        records = loader.load_records(args.data)
        result = run_pipeline(records, config)
    except FileNotFoundError as e:
        print(f"\nERROR: {e}")
        return 1
    except PipelineError as e:
        print(f"\nERROR {e.describe()}")
        return 1

    print("\n" + "=" * 50)
    print("MODEL COMPARISON (F1)")
    print("=" * 50)
    print(result.evaluator.f1_table().to_string(float_format="%.4f"))
    print(f"\nBest model (by F1): {result.evaluator.get_best_model('f1')}")

    if args.save:
        save_outputs(result)

    return 0


if __name__ == "__main__":
    sys.exit(main())
