# evotrees/main.py
import sys
import argparse

import pandas as pd

from evotrees.data.data_loader import DataLoader
from evotrees.data.splitter import DataSplitter
from evotrees.errors import EvoTreesError
from evotrees.models import get_trainer_class
from evotrees.pipelines.run_config import RunConfig, load_run_config
from evotrees.utils.seeds import set_global_seed


def _banner(title: str):
    print("=" * 70); print(f"[INFO] {title}"); print("=" * 70)


def run_data_loader(config: RunConfig) -> pd.DataFrame:
    _banner("STEP 1: Loading sample table")
    loader = DataLoader(config.resolved_data_path, feature_config=config.feature_config, sep=config.sep)
    return loader.run()


def run_split(config: RunConfig, df: pd.DataFrame):
    _banner("STEP 2: Train/test split")
    splitter = DataSplitter(
        train_fraction=config.train_fraction,
        seed=config.seed,
        stratify=config.stratify,
        feature_config=config.feature_config,
    )
    return splitter.run(df)


def build_trainer(config: RunConfig, model_type: str):
    trainer_cls = get_trainer_class(model_type)
    settings = config.settings_for(model_type)
    return trainer_cls(
        model_params=settings.params,
        param_grid=settings.grid,
        training_params=config.training_params(),
        n_jobs=config.n_jobs,
        reports_dir=config.resolved_reports_dir,
        models_dir=config.resolved_models_dir,
        use_mlflow=config.use_mlflow,
        mlflow_experiment=config.experiment_name,
        mlflow_tracking_uri=config.mlflow_tracking_uri,
    )


def run_training(config: RunConfig, X_train, X_test, y_train, y_test) -> dict:
    results = {}
    for step, model_type in enumerate(config.model_types, start=3):
        _banner(f"STEP {step}: Training {model_type}")
        trainer = build_trainer(config, model_type)
        results[model_type] = trainer.run(X_train, X_test, y_train, y_test, model_type=model_type)
    return results


def summarize(results: dict) -> pd.DataFrame:
    rows = [
        {
            "model": model_type,
            "accuracy_train": metrics.get("accuracy_train"),
            "accuracy_test": metrics.get("test_accuracy"),
            "kappa_test": metrics.get("test_kappa"),
        }
        for model_type, metrics in results.items()
    ]
    return pd.DataFrame(rows, columns=["model", "accuracy_train", "accuracy_test", "kappa_test"])


def run_pipeline(config: RunConfig) -> dict:
    """
    Single forward pass: load -> split (shared by every model) -> train,
    evaluate and report each selected model kind. Any failure aborts the run.
    """
    # validar los tipos de modelo antes de tocar los datos
    for model_type in config.model_types:
        get_trainer_class(model_type)

    set_global_seed(config.seed)
    print(f"[INFO] Base dir: {config.base_dir} | n_jobs={config.n_jobs} | seed={config.seed}")
    df = run_data_loader(config)
    X_train, X_test, y_train, y_test = run_split(config, df)
    results = run_training(config, X_train, X_test, y_train, y_test)

    _banner("Pipeline Summary")
    summary = summarize(results)
    print(summary.to_string(
        index=False,
        formatters={"accuracy_train": "{:.2%}".format, "accuracy_test": "{:.2%}".format, "kappa_test": "{:.3f}".format},
    ))
    print("\n[INFO] Full pipeline executed successfully!")
    return results


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Tree-based classifiers for Pokémon evolution stage.")
    parser.add_argument("--base-dir", default=None, help="Directory that relative data/report paths resolve against.")
    parser.add_argument("--params", default=None, help="Path to params.yaml (default: <base-dir>/params.yaml).")
    args = parser.parse_args(argv)

    try:
        config = load_run_config(params_path=args.params, base_dir=args.base_dir)
        run_pipeline(config)
    except EvoTreesError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
