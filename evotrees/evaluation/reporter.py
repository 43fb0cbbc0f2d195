"""
Human-readable reports for fitted models: feature importance, tree diagram,
confusion-matrix heatmap and tuning curves. All figures are written to disk
with a non-interactive backend.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
import xgboost as xgb
from sklearn.tree import DecisionTreeClassifier, export_text, plot_tree

from evotrees.errors import EvaluationError
from evotrees.evaluation.evaluator import EvaluationResult


def _raw_importance(model) -> dict:
    estimator = model.estimator
    names = list(model.feature_names)

    if isinstance(estimator, xgb.XGBModel):
        # gain: reduccion media de la perdida en los splits que usan la variable
        scores = estimator.get_booster().get_score(importance_type="gain")
        if scores and not set(scores) <= set(names):
            # booster entrenado sin nombres de columnas: f0, f1, ...
            scores = {names[int(k[1:])]: v for k, v in scores.items()}
        return {name: float(scores.get(name, 0.0)) for name in names}

    if hasattr(estimator, "feature_importances_"):
        return {name: float(v) for name, v in zip(names, estimator.feature_importances_)}

    raise EvaluationError(f"{type(estimator).__name__} does not expose feature importances")


def feature_importance(model) -> List[Tuple[str, float]]:
    """(feature, score) pairs, highest score first; unused features score 0."""
    raw = _raw_importance(model)
    pairs = [(name, max(score, 0.0)) for name, score in raw.items()]
    return sorted(pairs, key=lambda p: (-p[1], p[0]))


def importance_frame(pairs: List[Tuple[str, float]]) -> pd.DataFrame:
    return pd.DataFrame(pairs, columns=["feature", "importance"])


def plot_feature_importance(
    pairs: List[Tuple[str, float]],
    out_path,
    *,
    top_n: Optional[int] = 20,
    title: str = "Feature importance",
) -> Path:
    frame = importance_frame(pairs)
    if top_n is not None:
        frame = frame.head(top_n)

    height = max(3.0, 0.3 * len(frame) + 1)
    plt.figure(figsize=(7, height))
    sns.barplot(data=frame, x="importance", y="feature", color="steelblue")
    plt.xlabel("Importance")
    plt.ylabel("")
    plt.title(title)
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close()
    return out_path


def _decision_tree(model) -> DecisionTreeClassifier:
    if not isinstance(model.estimator, DecisionTreeClassifier):
        raise EvaluationError(f"Tree diagrams need a single decision tree, got {type(model.estimator).__name__}")
    return model.estimator


def plot_tree_diagram(model, out_path, *, max_depth: Optional[int] = None) -> Path:
    tree = _decision_tree(model)
    depth = tree.get_depth() if max_depth is None else min(max_depth, tree.get_depth())
    plt.figure(figsize=(max(8, 3 * (depth + 1)), max(5, 2 * (depth + 1))))
    plot_tree(
        tree,
        feature_names=list(model.feature_names),
        class_names=list(model.classes),
        filled=True,
        rounded=True,
        proportion=True,
        max_depth=max_depth,
        fontsize=8,
    )
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close()
    return out_path


def export_tree_rules(model) -> str:
    tree = _decision_tree(model)
    return export_text(tree, feature_names=list(model.feature_names), class_names=list(model.classes))


def plot_confusion_matrix(result: EvaluationResult, out_path, *, title: str = "Confusion matrix") -> Path:
    plt.figure(figsize=(4.5, 4))
    sns.heatmap(result.confusion, annot=True, fmt="d", cmap="Blues", cbar=False)
    plt.xlabel("Predicted")
    plt.ylabel("True")
    plt.title(f"{title} (accuracy {result.accuracy:.1%})")
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close()
    return out_path


def tuning_curve(report: pd.DataFrame, param: str) -> pd.DataFrame:
    """Best mean CV score reached for each value of ``param``, in ascending parameter order."""
    if param not in report.columns:
        raise EvaluationError(f"Parameter '{param}' is not part of the tuning report")

    values = report[param]
    if not pd.api.types.is_numeric_dtype(values):
        numeric = pd.to_numeric(values, errors="coerce")
        # GridSearchCV guarda los valores como object; texto solo si no son numeros
        values = numeric if numeric.notna().all() else values.astype(str)
    best = report.assign(**{param: values}).groupby(param, sort=True)["mean_test_score"].max().reset_index()
    return best


def plot_tuning_results(report: pd.DataFrame, param: str, out_path, *, score_label: str = "CV score") -> Path:
    best = tuning_curve(report, param)
    plt.figure()
    plt.plot(best[param], best["mean_test_score"], marker="o")
    plt.xlabel(param)
    plt.ylabel(score_label)
    plt.title(f"Tuning: {param}")
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(out_path, dpi=150, bbox_inches="tight")
    plt.close()
    return out_path
