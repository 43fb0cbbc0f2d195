# evotrees/models/decision_tree_model/config.py

MODEL_CONFIG = {
    "criterion": "gini",
    "max_depth": None,
    # minsplit=20 / minbucket=7, los valores por defecto de rpart
    "min_samples_split": 20,
    "min_samples_leaf": 7,
    "ccp_alpha": 0.0,
}

# un unico arbol: sin barrido por defecto
PARAM_GRID = {}

TRAINING_CONFIG = {
    "cv_folds": 5,
    "scoring": "accuracy",
}
