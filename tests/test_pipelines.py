from pathlib import Path

import numpy as np
import pandas as pd
import pytest
from sklearn.model_selection import StratifiedKFold
from sklearn.tree import DecisionTreeClassifier

from evotrees.errors import ConfigError, InvalidFractionError, ParseError, TrainingError
from evotrees.pipelines import data_setup as ds
from evotrees.pipelines import experiment_pipelines as ep
from evotrees.pipelines import run_config as rc


def test_feature_config_resolves_features_excluding_label_and_ids(sample_table):
    cfg = ds.DEFAULT_FEATURE_CONFIG
    assert cfg.excluded_columns == ["evolution", "name", "designation"]
    assert cfg.resolve_features(sample_table) == ["sound_0", "sound_1", "sound_2", "sound_3"]

    explicit = ds.FeatureConfig(feature_columns=("sound_2", "sound_0"))
    assert explicit.resolve_features(sample_table) == ["sound_2", "sound_0"]

    with pytest.raises(ParseError):
        ds.FeatureConfig(feature_columns=("sound_9",)).resolve_features(sample_table)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"label": ""},
        {"label": "name"},
        {"label_values": ("pre", "pre")},
        {"label_values": ("a", "b", "c")},
        {"feature_columns": ("evolution",)},
    ],
)
def test_feature_config_rejects_inconsistent_roles(kwargs):
    with pytest.raises(ConfigError):
        ds.FeatureConfig(**kwargs)


def test_feature_config_from_dict_round_trips_and_validates():
    cfg = ds.FeatureConfig.from_dict({"label": "stage", "id_columns": ["name"], "label_values": ["basic", "evolved"]})
    assert cfg.label == "stage"
    assert cfg.id_columns == ("name",)
    assert ds.FeatureConfig.from_dict(cfg.to_dict()) == cfg
    assert ds.FeatureConfig.from_dict(None) == ds.DEFAULT_FEATURE_CONFIG

    with pytest.raises(ConfigError):
        ds.FeatureConfig.from_dict({"labels": "stage"})
    with pytest.raises(ConfigError):
        ds.FeatureConfig.from_dict({"id_columns": "name"})


def test_build_feature_frame(sample_table):
    X, y = ds.build_feature_frame(sample_table)
    assert list(X.columns) == ["sound_0", "sound_1", "sound_2", "sound_3"]
    assert y.tolist() == sample_table["evolution"].tolist()

    with pytest.raises(ParseError):
        ds.build_feature_frame(sample_table.drop(columns=["evolution"]))


def test_infer_and_resolve_data_path(tmp_path):
    (tmp_path / "params.yaml").write_text("data: {}\n")
    (tmp_path / "nested").mkdir()

    root = ds.infer_project_root(start=tmp_path / "nested")
    assert root == tmp_path
    assert ds.resolve_data_path(base_dir=root) == tmp_path / ds.DEFAULT_DATA_REL_PATH
    absolute = tmp_path / "elsewhere.csv"
    assert ds.resolve_data_path(absolute, base_dir=root) == absolute


def test_label_helpers():
    y = pd.Series(pd.Categorical(["post", "pre", "post"], categories=["pre", "post"]))
    classes = ep.label_classes(y)
    assert classes == ["pre", "post"]
    assert ep.encode_labels(y, classes).tolist() == [1, 0, 1]
    assert ep.label_classes(pd.Series(["b", "a", "b"])) == ["a", "b"]

    with pytest.raises(TrainingError):
        ep.label_classes(pd.Series(["a", "b", "c"]))
    with pytest.raises(TrainingError):
        ep.encode_labels(pd.Series(["a", "z"]), ["a", "b"])


def test_resolve_scoring():
    assert ep.resolve_scoring("brier") == "neg_brier_score"
    assert ep.resolve_scoring("accuracy") == "accuracy"
    assert callable(ep.resolve_scoring("kappa"))
    with pytest.raises(ConfigError):
        ep.resolve_scoring("r2")


def test_validate_param_grid():
    names = list(DecisionTreeClassifier().get_params())
    grid = ep.validate_param_grid(names, {"max_depth": (2, 3, None), "criterion": ["gini"]})
    assert grid == {"max_depth": [2, 3, None], "criterion": ["gini"]}
    assert ep.grid_size(grid) == 3
    assert ep.validate_param_grid(names, None) == {}

    with pytest.raises(ConfigError):
        ep.validate_param_grid(names, {"criterion": "gini"})
    with pytest.raises(ConfigError):
        ep.validate_param_grid(names, [("max_depth", [1])])


def test_build_cv():
    cv = ep.build_cv(4, seed=0)
    assert isinstance(cv, StratifiedKFold)
    assert cv.get_n_splits() == 4
    for bad in (1, 2.5, True):
        with pytest.raises(ConfigError):
            ep.build_cv(bad, seed=0)


def test_grid_search_and_summary(sample_table):
    X, y = ds.build_feature_frame(sample_table)
    codes = ep.encode_labels(y, ["pre", "post"])

    grid = ep.run_grid_search(
        DecisionTreeClassifier(random_state=0),
        X,
        codes,
        {"max_depth": [1, 2, 3]},
        cv=ep.build_cv(3, seed=0),
    )
    summary = ep.summarize_grid(grid)

    assert grid.best_params_["max_depth"] in (1, 2, 3)
    assert list(summary.columns) == ["max_depth", "mean_test_score", "std_test_score", "rank_test_score"]
    assert summary["mean_test_score"].iloc[0] == pytest.approx(grid.best_score_)


def test_cross_validate_estimator_flips_negative_scores(sample_table):
    X, y = ds.build_feature_frame(sample_table)
    codes = ep.encode_labels(y, ["pre", "post"])

    results, summary = ep.cross_validate_estimator(
        DecisionTreeClassifier(max_depth=2, random_state=0), X, codes, cv=ep.build_cv(3, seed=0)
    )

    assert "test_accuracy" in results
    assert list(summary["metric"]) == ["accuracy", "brier"]
    brier = summary.set_index("metric").loc["brier"]
    assert 0.0 <= brier["test_mean"] <= 1.0


def test_resolve_n_jobs():
    assert rc.resolve_n_jobs(0.8, cpu_count=10) == 8
    assert rc.resolve_n_jobs(0.8, cpu_count=1) == 1
    assert rc.resolve_n_jobs(1.0, cpu_count=4) == 4
    for bad in (0, 1.5, -0.1, "half"):
        with pytest.raises(ConfigError):
            rc.resolve_n_jobs(bad, cpu_count=4)


def test_load_run_config_reads_params_and_env(tmp_path):
    params = tmp_path / "params.yaml"
    params.write_text(
        "data:\n"
        "  path: data/pokemon.csv\n"
        "  label: evolution\n"
        "  label_values: [pre, post]\n"
        "split:\n"
        "  train_fraction: 0.6\n"
        "  seed: 5\n"
        "train:\n"
        "  model_types: [decision_tree, xgboost]\n"
        "  cv_folds: 3\n"
        "  xgboost:\n"
        "    params: {n_estimators: 10}\n"
        "    grid:\n"
        "reports:\n"
        "  dir: out\n"
    )

    cfg = rc.load_run_config(params_path=params, env={"SEED": "9", "N_JOBS_FRACTION": "1.0"})

    root = tmp_path.resolve()
    assert cfg.base_dir == root
    assert cfg.resolved_data_path == root / "data" / "pokemon.csv"
    assert cfg.resolved_reports_dir == root / "out"
    assert cfg.train_fraction == 0.6
    assert cfg.seed == 9
    assert cfg.model_types == ("decision_tree", "xgboost")
    assert cfg.feature_config.label_values == ("pre", "post")
    assert cfg.settings_for("xgboost") == rc.ModelSettings(params={"n_estimators": 10}, grid={})
    assert cfg.settings_for("decision_tree") == rc.ModelSettings()
    assert cfg.training_params() == {"seed": 9, "cv_folds": 3}
    assert cfg.n_jobs >= 1
    assert cfg.use_mlflow is False


def test_load_run_config_base_dir_overrides_params_location(tmp_path):
    base = tmp_path / "runs"
    base.mkdir()
    cfg = rc.load_run_config(base_dir=base, env={})

    assert cfg.base_dir == base
    assert cfg.resolved_data_path == base / ds.DEFAULT_DATA_REL_PATH


def test_load_run_config_rejects_bad_values(tmp_path):
    params = tmp_path / "params.yaml"

    params.write_text("split:\n  train_fraction: 1.2\n")
    with pytest.raises(InvalidFractionError):
        rc.load_run_config(params_path=params, env={})

    params.write_text("train:\n  xgboost:\n    grids: {}\n")
    with pytest.raises(ConfigError):
        rc.load_run_config(params_path=params, env={})

    params.write_text("data: [unclosed\n")
    with pytest.raises(ConfigError):
        rc.load_run_config(params_path=params, env={})

    params.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        rc.load_run_config(params_path=params, env={})
