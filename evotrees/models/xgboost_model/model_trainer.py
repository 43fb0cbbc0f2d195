# evotrees/models/xgboost_model/model_trainer.py
import xgboost as xgb

from evotrees.models.base_trainer import ModelTrainer as BaseModelTrainer
from .config import MODEL_CONFIG, PARAM_GRID, TRAINING_CONFIG


class ModelTrainer(BaseModelTrainer):
    """
    Trains, tunes and evaluates an XGBoost gradient-boosted tree classifier.
    """

    model_type = "xgboost"
    display_name = "XGBoost"
    MODEL_CONFIG = MODEL_CONFIG
    PARAM_GRID = PARAM_GRID
    TRAINING_CONFIG = {**BaseModelTrainer.TRAINING_CONFIG, **TRAINING_CONFIG}
    delegate_errors = (ValueError, xgb.core.XGBoostError)

    def _build_estimator(self, **params):
        return xgb.XGBClassifier(**params)

    def _extra_metrics(self) -> dict:
        booster = self.fitted_.estimator.get_booster()
        return {"boosting_rounds": booster.num_boosted_rounds()}
