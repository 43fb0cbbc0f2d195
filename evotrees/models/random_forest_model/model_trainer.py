from sklearn.ensemble import RandomForestClassifier

from evotrees.models.base_trainer import ModelTrainer as BaseModelTrainer
from .config import MODEL_CONFIG, PARAM_GRID, TRAINING_CONFIG


class ModelTrainer(BaseModelTrainer):
    """
    Trains, tunes and evaluates a Random Forest classifier.
    """

    model_type = "random_forest"
    display_name = "Random Forest"
    MODEL_CONFIG = MODEL_CONFIG
    PARAM_GRID = PARAM_GRID
    TRAINING_CONFIG = {**BaseModelTrainer.TRAINING_CONFIG, **TRAINING_CONFIG}

    def _build_estimator(self, **params):
        return RandomForestClassifier(**params)

    def _extra_metrics(self) -> dict:
        forest = self.fitted_.estimator
        # error out-of-bag, solo si el bosque se entreno con oob_score
        if getattr(forest, "oob_score", False) and hasattr(forest, "oob_score_"):
            print(f"[INFO] OOB accuracy: {forest.oob_score_:.4f}")
            return {"oob_accuracy": float(forest.oob_score_)}
        return {}
