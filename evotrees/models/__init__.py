"""Registry of the classifier backends the pipeline can train."""

from evotrees.errors import ConfigError
from evotrees.models.decision_tree_model import ModelTrainer as DecisionTreeTrainer
from evotrees.models.random_forest_model import ModelTrainer as RandomForestTrainer
from evotrees.models.xgboost_model import ModelTrainer as XGBTrainer

MODEL_REGISTRY = {
    "decision_tree": DecisionTreeTrainer,
    "random_forest": RandomForestTrainer,
    "xgboost": XGBTrainer,
}


def get_trainer_class(model_type: str):
    if model_type not in MODEL_REGISTRY:
        raise ConfigError(f"Unsupported model_type '{model_type}'. Use one of: {list(MODEL_REGISTRY)}")
    return MODEL_REGISTRY[model_type]
