import os
import json
import datetime
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import joblib
import numpy as np
import pandas as pd

from evotrees.errors import ConfigError, EvaluationError, TrainingError
from evotrees.evaluation import reporter
from evotrees.evaluation.evaluator import EvaluationResult, evaluate_classifier, format_confusion
from evotrees.pipelines import experiment_pipelines as ep

# --- MLflow opcional ---
try:
    import mlflow
    import mlflow.sklearn
    _MLFLOW_AVAILABLE = True
except ImportError:
    _MLFLOW_AVAILABLE = False


def _to_float(v):
    # Evita errores con tipos numpy al loguear
    try:
        return float(v)
    except (TypeError, ValueError):
        return v


@dataclass
class FittedModel:
    """
    A delegate estimator plus what is needed to apply it to new rows:
    the feature columns it was fitted on and the label categories.
    """

    kind: str
    estimator: Any
    feature_names: list
    classes: list
    best_params: dict = field(default_factory=dict)
    best_score: Optional[float] = None
    cv_results: Optional[pd.DataFrame] = None

    def _select(self, rows: pd.DataFrame) -> pd.DataFrame:
        missing = [c for c in self.feature_names if c not in rows.columns]
        if missing:
            raise EvaluationError(f"Rows are missing features the model was trained on: {missing}")
        return rows[self.feature_names]

    def predict(self, rows: pd.DataFrame) -> pd.Series:
        X = self._select(rows)
        try:
            codes = np.asarray(self.estimator.predict(X)).astype(int)
        except ValueError as e:
            raise EvaluationError(f"Prediction failed: {e}") from e
        labels = pd.Categorical.from_codes(codes, categories=self.classes)
        return pd.Series(labels, index=rows.index, name="prediction")

    def predict_proba(self, rows: pd.DataFrame) -> pd.DataFrame:
        X = self._select(rows)
        try:
            proba = self.estimator.predict_proba(X)
        except ValueError as e:
            raise EvaluationError(f"Prediction failed: {e}") from e
        return pd.DataFrame(proba, index=rows.index, columns=self.classes)


class ModelTrainer:
    """
    Trains, tunes, evaluates and saves one kind of tree-based classifier.

    Subclasses only say which estimator to build; fitting, grid search,
    evaluation, reporting and tracking are shared.
    """

    model_type = "base"
    display_name = "Base"
    MODEL_CONFIG: dict = {}
    PARAM_GRID: dict = {}
    TRAINING_CONFIG: dict = {"cv_folds": 5, "scoring": "accuracy", "seed": 1}
    # excepciones del delegado que se traducen a TrainingError
    delegate_errors: tuple = (ValueError,)

    def __init__(
        self,
        model_params=None,
        param_grid=None,
        training_params=None,
        *,
        n_jobs: int = 1,
        reports_dir="reports",
        models_dir="models",
        use_mlflow: bool = False,
        mlflow_experiment: str | None = None,
        mlflow_tracking_uri: str | None = None,
        tags: dict | None = None,
    ):
        self.model_params = dict(self.MODEL_CONFIG if model_params is None else model_params)
        self.param_grid = dict(self.PARAM_GRID if param_grid is None else param_grid)
        self.training_params = {**self.TRAINING_CONFIG, **(training_params or {})}
        self.n_jobs = max(1, int(n_jobs or 1))
        self.reports_dir = Path(reports_dir)
        self.models_dir = Path(models_dir)
        self.fitted_: Optional[FittedModel] = None
        self.evaluation_: Optional[EvaluationResult] = None

        # ---- Opciones MLflow ----
        self.use_mlflow = bool(use_mlflow and _MLFLOW_AVAILABLE)
        self.mlflow_experiment = (
            mlflow_experiment
            or os.getenv("EXPERIMENT_NAME")
            or os.getenv("MLFLOW_EXPERIMENT_NAME", "pokemon-evolution")
        )
        self.mlflow_tracking_uri = mlflow_tracking_uri or os.getenv("MLFLOW_TRACKING_URI")
        self.tags = tags or {"model_type": self.model_type}

        if self.use_mlflow and self.mlflow_tracking_uri:
            mlflow.set_tracking_uri(self.mlflow_tracking_uri)

    # ---------------------- estimator ----------------------
    def _build_estimator(self, **params):
        """Return the unfitted delegate estimator; every model kind must override this."""
        raise NotImplementedError

    @property
    def seed(self) -> int:
        return int(self.training_params.get("seed", 1))

    def build_estimator(self, *, tuning: bool = False):
        """
        Delegate estimator with the fixed parameters. ``random_state`` and
        ``n_jobs`` are filled in when the estimator supports them and the
        caller did not set them; under a grid search the search owns the cores.
        """
        params = dict(self.model_params)
        supported = self._build_estimator().get_params()
        if "random_state" in supported and "random_state" not in params:
            params["random_state"] = self.seed
        if "n_jobs" in supported and "n_jobs" not in params:
            params["n_jobs"] = 1 if tuning else self.n_jobs
        return self._build_estimator(**params)

    def validate_params(self, X: pd.DataFrame) -> None:
        """Reject configurations the delegate would choke on, before fitting."""
        valid_names = list(self._build_estimator().get_params())
        ep.validate_fixed_params(valid_names, self.model_params)
        self.param_grid = ep.validate_param_grid(valid_names, self.param_grid)
        ep.resolve_scoring(self.training_params.get("scoring", "accuracy"))
        ep.build_cv(self.training_params.get("cv_folds", 5), self.seed)
        self._check_sampling_width(X.shape[1])

    def _check_sampling_width(self, n_features: int) -> None:
        widths = [self.model_params.get("max_features")]
        widths += list(self.param_grid.get("max_features", []))
        too_wide = sorted(
            w for w in widths
            if isinstance(w, (int, np.integer)) and not isinstance(w, bool) and w > n_features
        )
        if too_wide:
            raise TrainingError(
                f"max_features {too_wide} exceeds the {n_features} available features"
            )

    # ---------------------- MLflow helpers ----------------------
    def _mlflow_start(self, run_name: str | None = None):
        if not self.use_mlflow:
            return None
        os.environ["MLFLOW_ENABLE_LOGGED_MODELS"] = "false"
        # Evita "nested runs" si ya hay uno activo
        if mlflow.active_run() is not None:
            return mlflow.active_run()
        mlflow.set_experiment(self.mlflow_experiment)
        return mlflow.start_run(run_name=run_name)

    def _mlflow_log_params(self, n_train: int, n_test: int):
        if not self.use_mlflow:
            return
        mlflow.log_params({f"model__{k}": v for k, v in self.model_params.items()})
        mlflow.log_params({f"train__{k}": v for k, v in self.training_params.items()})
        mlflow.log_params({"n_train": n_train, "n_test": n_test, "grid_size": ep.grid_size(self.param_grid)})
        if self.fitted_ is not None and self.fitted_.best_params:
            mlflow.log_params({f"best__{k}": v for k, v in self.fitted_.best_params.items()})

    def _mlflow_log_metrics(self, metrics: dict, prefix: str = ""):
        if not self.use_mlflow:
            return
        safe = {f"{prefix}{k}": _to_float(v) for k, v in metrics.items()}
        mlflow.log_metrics(safe)

    def _mlflow_log_cv(self, scores, scorer_name: str = "accuracy"):
        if not self.use_mlflow:
            return
        scores = np.asarray(scores, dtype=float)
        mlflow.log_metric(f"cv_{scorer_name}_mean", _to_float(scores.mean()))
        mlflow.log_metric(f"cv_{scorer_name}_std", _to_float(scores.std()))
        for i, s in enumerate(scores, 1):
            mlflow.log_metric(f"cv_{scorer_name}_fold_{i}", _to_float(s))

    def _mlflow_log_artifacts_and_model(self, saved_path, artifacts):
        if not self.use_mlflow:
            return
        for path in [saved_path, *artifacts]:
            mlflow.log_artifact(str(path))

        from tempfile import TemporaryDirectory
        with TemporaryDirectory() as tmpdir:
            local_dir = Path(tmpdir) / f"{self.model_type}_mlflow_model"
            mlflow.sklearn.save_model(sk_model=self.fitted_.estimator, path=str(local_dir))
            mlflow.log_artifacts(str(local_dir), artifact_path="model")

    # ---------------------- training ----------------------
    def train(self, X_train: pd.DataFrame, y_train: pd.Series) -> FittedModel:
        """
        Fit the delegate on the training rows, sweeping ``param_grid`` with
        cross-validation when it is not empty.
        """
        print(f"[INFO] Training {self.display_name} model...")
        classes = ep.label_classes(y_train)
        y_codes = ep.encode_labels(y_train, classes)
        self.validate_params(X_train)

        best_params, best_score, cv_results = {}, None, None
        try:
            if self.param_grid:
                print(
                    f"[INFO] Grid search over {ep.grid_size(self.param_grid)} combinations "
                    f"({self.training_params.get('cv_folds', 5)}-fold CV, scoring={self.training_params.get('scoring')})"
                )
                search = ep.run_grid_search(
                    self.build_estimator(tuning=True),
                    X_train,
                    y_codes,
                    self.param_grid,
                    cv=ep.build_cv(self.training_params.get("cv_folds", 5), self.seed),
                    scoring=ep.resolve_scoring(self.training_params.get("scoring", "accuracy")),
                    n_jobs=self.n_jobs,
                )
                estimator = search.best_estimator_
                best_params = dict(search.best_params_)
                best_score = float(search.best_score_)
                cv_results = ep.summarize_grid(search)
                print(f"[INFO] Best params: {best_params} (CV score {best_score:.4f})")
            else:
                estimator = self.build_estimator()
                estimator.fit(X_train, y_codes)
        except self.delegate_errors as e:
            raise TrainingError(f"{self.display_name} training failed: {e}") from e

        self.fitted_ = FittedModel(
            kind=self.model_type,
            estimator=estimator,
            feature_names=list(X_train.columns),
            classes=classes,
            best_params=best_params,
            best_score=best_score,
            cv_results=cv_results,
        )
        print("[INFO] Training complete.")
        return self.fitted_

    def _require_fitted(self) -> FittedModel:
        if self.fitted_ is None:
            raise EvaluationError(f"{self.display_name} model has not been trained yet.")
        return self.fitted_

    def predict(self, rows: pd.DataFrame) -> pd.Series:
        return self._require_fitted().predict(rows)

    def _extra_metrics(self) -> dict:
        return {}

    def evaluate(self, X_train, X_test, y_train, y_test) -> dict:
        """
        Holdout accuracy and confusion statistics, plus training accuracy.
        """
        print("[INFO] Evaluating model performance...")
        model = self._require_fitted()
        train_result = evaluate_classifier(model, X_train, y_train)
        self.evaluation_ = evaluate_classifier(model, X_test, y_test)

        metrics = {"accuracy_train": train_result.accuracy}
        metrics.update(self.evaluation_.to_dict(prefix="test_"))
        metrics.update(self._extra_metrics())
        if model.best_score is not None:
            metrics["cv_best_score"] = model.best_score

        print("[INFO] Model Evaluation:")
        print(format_confusion(self.evaluation_))
        print(f"   accuracy_train      : {train_result.accuracy:.2%}")
        return metrics

    def cross_validate(self, X, y):
        """
        k-fold scores of the fixed configuration on the given rows.
        """
        print("[INFO] Running cross-validation...")
        classes = ep.label_classes(y)
        y_codes = ep.encode_labels(y, classes)
        self.validate_params(X)
        scoring = self.training_params.get("scoring", "accuracy")
        try:
            results, summary = ep.cross_validate_estimator(
                self.build_estimator(tuning=True),
                X,
                y_codes,
                cv=ep.build_cv(self.training_params.get("cv_folds", 5), self.seed),
                scoring={scoring: ep.resolve_scoring(scoring)},
                n_jobs=self.n_jobs,
            )
        except self.delegate_errors as e:
            raise TrainingError(f"{self.display_name} cross-validation failed: {e}") from e
        scores = results[f"test_{scoring}"]
        print(f"[INFO] CV {scoring} mean: {scores.mean():.4f} ± {scores.std():.4f}")
        self._mlflow_log_cv(scores, scorer_name=scoring)
        return scores, summary

    def tuning_report(self) -> pd.DataFrame:
        model = self._require_fitted()
        if model.cv_results is None:
            raise ConfigError(f"{self.display_name} was trained without a parameter grid.")
        return model.cv_results

    def feature_importance(self):
        return reporter.feature_importance(self._require_fitted())

    # ---------------------- persistence ----------------------
    def save_model(self, model_type=None, timestamp=None):
        """
        Save the fitted model under a unique versioned filename only.
        """
        model_type = model_type or self.model_type
        if timestamp is None:
            timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")

        versioned_dir = self.models_dir / model_type / "artifacts"
        versioned_dir.mkdir(parents=True, exist_ok=True)
        versioned_model_path = versioned_dir / f"model_{timestamp}.pkl"
        joblib.dump(self._require_fitted(), versioned_model_path)

        print(f"[INFO] Saved versioned model to: {versioned_model_path}")
        return versioned_model_path

    def _extra_reports(self, figures_dir: Path) -> list:
        return []

    def write_reports(self, model_type=None) -> list:
        """
        Confusion heatmap, importance bar chart and, when a grid was swept,
        one tuning curve per grid axis.
        """
        model_type = model_type or self.model_type
        model = self._require_fitted()
        figures_dir = self.reports_dir / "figures"
        written = []

        if self.evaluation_ is not None:
            written.append(
                reporter.plot_confusion_matrix(
                    self.evaluation_,
                    figures_dir / f"confusion_{model_type}.png",
                    title=self.display_name,
                )
            )

        pairs = reporter.feature_importance(model)
        print("[INFO] Top features:")
        for name, score in pairs[:10]:
            print(f"   {name}: {score:.4f}")
        written.append(
            reporter.plot_feature_importance(
                pairs,
                figures_dir / f"importance_{model_type}.png",
                title=f"{self.display_name} - feature importance",
            )
        )
        importance_path = self.reports_dir / f"importance_{model_type}.csv"
        reporter.importance_frame(pairs).to_csv(importance_path, index=False)
        written.append(importance_path)

        if model.cv_results is not None:
            tuning_path = self.reports_dir / f"tuning_{model_type}.csv"
            model.cv_results.to_csv(tuning_path, index=False)
            written.append(tuning_path)
            for param in self.param_grid:
                if len(self.param_grid[param]) > 1:
                    written.append(
                        reporter.plot_tuning_results(
                            model.cv_results,
                            param,
                            figures_dir / f"tuning_{model_type}_{param}.png",
                            score_label=f"CV {self.training_params.get('scoring', 'accuracy')}",
                        )
                    )

        written.extend(self._extra_reports(figures_dir))
        return written

    def run(self, X_train, X_test, y_train, y_test, model_type=None, timestamp=None):
        """
        Full training + evaluation pipeline: train (tune) -> evaluate on the
        holdout -> reports -> metrics JSON -> versioned model file.
        """
        model_type = model_type or self.model_type
        print(f"[INFO] Starting {self.display_name} training pipeline...")
        self.reports_dir.mkdir(parents=True, exist_ok=True)

        run_ctx = self._mlflow_start(run_name=f"{model_type}_run")
        try:
            # 1) Entrenar
            self.train(X_train, y_train)
            self._mlflow_log_params(n_train=len(X_train), n_test=len(X_test))

            # 2) Evaluar
            metrics = self.evaluate(X_train, X_test, y_train, y_test)
            self._mlflow_log_metrics(metrics)

            # 3) Figuras y tablas
            artifacts = self.write_reports(model_type=model_type)

            # --- Guardar métricas (JSON) ---
            metrics_path = self.reports_dir / f"metrics_{model_type}.json"
            with open(metrics_path, "w") as f:
                json.dump({k: _to_float(v) for k, v in metrics.items()}, f, indent=2)
            artifacts.append(metrics_path)

            # 4) Guardar modelo .pkl
            saved_path = self.save_model(model_type=model_type, timestamp=timestamp)
            self._mlflow_log_artifacts_and_model(saved_path, artifacts)

            print(f"[INFO] {self.display_name} model saved at: {saved_path}")
            print(f"[INFO] {self.display_name} training pipeline complete.\n")
            return metrics

        finally:
            if self.use_mlflow and run_ctx and mlflow.active_run() and \
                    mlflow.active_run().info.run_id == run_ctx.info.run_id:
                mlflow.end_run()
