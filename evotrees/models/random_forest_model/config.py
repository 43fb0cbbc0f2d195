MODEL_CONFIG = {
    "n_estimators": 500,
    "criterion": "gini",
    "max_features": "sqrt",
    "min_samples_leaf": 1,
    "bootstrap": True,
    "oob_score": True,
}

# mtry -> max_features, min.node.size -> min_samples_leaf, splitrule -> criterion
PARAM_GRID = {
    "max_features": [2, 4, 6, 8],
    "min_samples_leaf": [1, 5, 10],
    "criterion": ["gini", "entropy"],
}

TRAINING_CONFIG = {
    "cv_folds": 5,
    "scoring": "accuracy",
}
