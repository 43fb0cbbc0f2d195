"""Holdout evaluation: accuracy, confusion matrix and the usual 2x2 statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import cohen_kappa_score, confusion_matrix

from evotrees.errors import EvaluationError


class SupportsPredict(Protocol):
    """Anything that maps rows to one predicted label per row."""

    classes: list

    def predict(self, rows: pd.DataFrame) -> pd.Series:
        ...


@dataclass
class EvaluationResult:
    accuracy: float
    confusion: pd.DataFrame
    classes: list
    n_rows: int
    statistics: Dict[str, float] = field(default_factory=dict)

    def to_dict(self, prefix: str = "") -> Dict[str, float]:
        metrics = {f"{prefix}accuracy": float(self.accuracy)}
        metrics.update({f"{prefix}{k}": float(v) for k, v in self.statistics.items()})
        return metrics


def _ratio(num: float, den: float) -> float:
    return float(num) / float(den) if den else float("nan")


def confusion_table(y_true: Sequence, y_pred: Sequence, classes: Sequence[str]) -> pd.DataFrame:
    """2x2 counts; rows are true labels, columns predicted labels, both in ``classes`` order."""
    matrix = confusion_matrix(y_true, y_pred, labels=list(classes))
    return pd.DataFrame(
        matrix,
        index=pd.Index(list(classes), name="true"),
        columns=pd.Index(list(classes), name="predicted"),
    )


def evaluate_predictions(y_true: Sequence, y_pred: Sequence, classes: Sequence[str]) -> EvaluationResult:
    """Compare predicted against true labels. The first class is the positive one."""
    classes = [str(c) for c in classes]
    y_true = np.asarray(pd.Series(y_true).astype(str))
    y_pred = np.asarray(pd.Series(y_pred).astype(str))
    if len(y_true) != len(y_pred):
        raise EvaluationError(f"Got {len(y_true)} true labels but {len(y_pred)} predictions")
    if len(y_true) == 0:
        raise EvaluationError("Cannot evaluate on an empty subset")

    unknown = sorted((set(y_true) | set(y_pred)) - set(classes))
    if unknown:
        raise EvaluationError(f"Labels outside {classes}: {unknown}")

    table = confusion_table(y_true, y_pred, classes)
    counts = table.to_numpy()
    total = counts.sum()
    accuracy = np.trace(counts) / total

    stats: Dict[str, float] = {}
    if len(classes) == 2:
        tp, fn = counts[0, 0], counts[0, 1]
        fp, tn = counts[1, 0], counts[1, 1]
        stats["sensitivity"] = _ratio(tp, tp + fn)
        stats["specificity"] = _ratio(tn, tn + fp)
        stats["precision"] = _ratio(tp, tp + fp)
        stats["balanced_accuracy"] = (stats["sensitivity"] + stats["specificity"]) / 2
    # tasa de no-informacion: acierto de predecir siempre la clase mayoritaria
    stats["no_information_rate"] = counts.sum(axis=1).max() / total
    # kappa solo es 0/0 cuando verdad y prediccion son la misma clase constante
    if len(set(y_true) | set(y_pred)) > 1:
        stats["kappa"] = float(cohen_kappa_score(y_true, y_pred, labels=classes))
    else:
        stats["kappa"] = float("nan")

    return EvaluationResult(
        accuracy=float(accuracy),
        confusion=table,
        classes=classes,
        n_rows=int(total),
        statistics=stats,
    )


def evaluate_classifier(
    model: SupportsPredict,
    rows: pd.DataFrame,
    labels: pd.Series,
    classes: Optional[Sequence[str]] = None,
) -> EvaluationResult:
    """Apply ``model`` to ``rows`` and score the predictions against ``labels``."""
    if len(rows) == 0:
        raise EvaluationError("Cannot evaluate on an empty subset")
    if len(rows) != len(labels):
        raise EvaluationError(f"Got {len(rows)} rows but {len(labels)} labels")

    predicted = model.predict(rows)
    return evaluate_predictions(labels, predicted, classes or model.classes)


def format_confusion(result: EvaluationResult) -> str:
    lines = [result.confusion.to_string()]
    lines.append(f"{'accuracy':<20}: {result.accuracy:.2%}")
    for key in ("kappa", "sensitivity", "specificity", "balanced_accuracy", "no_information_rate"):
        if key in result.statistics:
            lines.append(f"{key:<20}: {result.statistics[key]:.4f}")
    return "\n".join(lines)
