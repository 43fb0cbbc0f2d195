"""Helpers shared by the trainers: label encoding, grid validation, CV and grid search."""

from __future__ import annotations

import numbers
from typing import Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.model_selection import GridSearchCV, StratifiedKFold, cross_validate

from evotrees.errors import ConfigError, TrainingError


# nombres amigables -> scorer de scikit-learn
SCORING_ALIASES = {
    "accuracy": "accuracy",
    "balanced_accuracy": "balanced_accuracy",
    "brier": "neg_brier_score",
    "neg_brier_score": "neg_brier_score",
    "log_loss": "neg_log_loss",
    "neg_log_loss": "neg_log_loss",
    "roc_auc": "roc_auc",
    "kappa": "cohen_kappa",
}

DEFAULT_CV_SCORING = {
    "accuracy": "accuracy",
    "brier": "neg_brier_score",
}


def resolve_scoring(name: str):
    """Map a scoring name to something ``GridSearchCV`` accepts."""
    if name not in SCORING_ALIASES:
        raise ConfigError(f"Unsupported scoring '{name}'. Use one of: {sorted(SCORING_ALIASES)}")
    scorer = SCORING_ALIASES[name]
    if scorer == "cohen_kappa":
        from sklearn.metrics import cohen_kappa_score, make_scorer

        return make_scorer(cohen_kappa_score)
    return scorer


def label_classes(y: pd.Series) -> list[str]:
    """Category order of a label series (categorical order, else sorted values)."""
    if isinstance(y.dtype, pd.CategoricalDtype):
        classes = [str(c) for c in y.cat.categories]
    else:
        classes = sorted(str(v) for v in pd.unique(y.dropna()))
    if len(classes) != 2:
        raise TrainingError(f"Binary classification needs exactly two label values, got {classes}")
    return classes


def encode_labels(y: pd.Series, classes: Sequence[str]) -> np.ndarray:
    """Integer codes 0..k-1 following ``classes``; the delegates only ever see these."""
    as_text = pd.Series(y).astype(str).to_numpy()
    lookup = {c: i for i, c in enumerate(classes)}
    unknown = sorted(set(as_text) - set(lookup))
    if unknown:
        raise TrainingError(f"Labels outside {list(classes)}: {unknown}")
    return np.array([lookup[v] for v in as_text], dtype=int)


def _is_scalar(value) -> bool:
    return value is None or isinstance(value, (numbers.Number, str, bool))


def validate_fixed_params(valid_names: Sequence[str], params: Mapping) -> Dict[str, object]:
    unknown = sorted(set(params) - set(valid_names))
    if unknown:
        raise ConfigError(f"Unknown model parameters: {unknown}")
    bad = sorted(k for k, v in params.items() if not _is_scalar(v))
    if bad:
        raise ConfigError(f"Model parameters must be scalars: {bad}")
    return dict(params)


def validate_param_grid(valid_names: Sequence[str], grid: Optional[Mapping]) -> Dict[str, list]:
    """Check every axis of the grid: known name, non-empty list of scalars."""
    if not grid:
        return {}
    if not isinstance(grid, Mapping):
        raise ConfigError(f"Parameter grid must be a mapping of name -> list, got {type(grid).__name__}")

    checked: Dict[str, list] = {}
    for name, values in grid.items():
        if name not in valid_names:
            raise ConfigError(f"Unknown grid parameter '{name}'")
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise ConfigError(f"Grid axis '{name}' must be a list of values, got {values!r}")
        if len(values) == 0:
            raise ConfigError(f"Grid axis '{name}' is empty")
        if not all(_is_scalar(v) for v in values):
            raise ConfigError(f"Grid axis '{name}' holds non-scalar values: {list(values)}")
        checked[name] = list(values)
    return checked


def grid_size(grid: Mapping[str, Sequence]) -> int:
    size = 1
    for values in grid.values():
        size *= len(values)
    return size


def build_cv(cv_folds: int, seed: int) -> StratifiedKFold:
    if isinstance(cv_folds, bool) or not isinstance(cv_folds, int) or cv_folds < 2:
        raise ConfigError(f"cv_folds must be an integer >= 2, got {cv_folds!r}")
    return StratifiedKFold(n_splits=cv_folds, shuffle=True, random_state=seed)


def run_grid_search(
    estimator,
    X_train: pd.DataFrame,
    y_train: np.ndarray,
    param_grid: Dict[str, list],
    *,
    cv,
    scoring="accuracy",
    n_jobs: int = 1,
) -> GridSearchCV:
    grid = GridSearchCV(
        estimator=estimator,
        param_grid=param_grid,
        scoring=scoring,
        cv=cv,
        n_jobs=n_jobs,
        refit=True,
        error_score="raise",
        verbose=0,
    )
    grid.fit(X_train, y_train)
    return grid


def summarize_grid(grid: GridSearchCV) -> pd.DataFrame:
    """One row per grid point with its mean/std CV score, best first."""
    results = pd.DataFrame(grid.cv_results_)
    param_cols = [c for c in results.columns if c.startswith("param_")]
    summary = results[param_cols + ["mean_test_score", "std_test_score", "rank_test_score"]].copy()
    summary.columns = [c.removeprefix("param_") for c in summary.columns]
    return summary.sort_values(["rank_test_score", "mean_test_score"], ascending=[True, False]).reset_index(drop=True)


def cross_validate_estimator(
    estimator,
    X: pd.DataFrame,
    y: np.ndarray,
    *,
    cv,
    scoring: Optional[Dict[str, str]] = None,
    n_jobs: int = 1,
) -> Tuple[Dict[str, np.ndarray], pd.DataFrame]:
    scoring_dict = scoring or DEFAULT_CV_SCORING
    results = cross_validate(
        estimator,
        X,
        y,
        cv=cv,
        scoring=scoring_dict,
        return_train_score=True,
        n_jobs=n_jobs,
        error_score="raise",
    )

    rows = []
    for metric in scoring_dict:
        # los scorers "neg_*" se devuelven con signo invertido
        sign = -1.0 if str(scoring_dict[metric]).startswith("neg_") else 1.0
        rows.append(
            {
                "metric": metric,
                "train_mean": sign * results[f"train_{metric}"].mean(),
                "test_mean": sign * results[f"test_{metric}"].mean(),
                "test_std": results[f"test_{metric}"].std(),
            }
        )
    return results, pd.DataFrame(rows, columns=["metric", "train_mean", "test_mean", "test_std"])
