# evotrees/models/xgboost_model/config.py

MODEL_CONFIG = {
    "n_estimators": 100,
    "learning_rate": 0.3,
    "max_depth": 6,
    "gamma": 0.0,
    "colsample_bytree": 1.0,
    "min_child_weight": 1,
    "subsample": 1.0,
    "objective": "binary:logistic",
    "eval_metric": "logloss",
    "tree_method": "hist",
}

# rejilla por defecto de caret para xgbTree (nrounds, max_depth, eta, colsample, subsample)
PARAM_GRID = {
    "n_estimators": [50, 100, 150],
    "max_depth": [1, 2, 3],
    "learning_rate": [0.3, 0.4],
    "colsample_bytree": [0.6, 0.8],
    "subsample": [0.5, 0.75, 1.0],
}

TRAINING_CONFIG = {
    "cv_folds": 5,
    "scoring": "brier",
}
