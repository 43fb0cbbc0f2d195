"""Explicit, per-invocation run configuration built from params.yaml and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from evotrees.errors import ConfigError, InvalidFractionError
from evotrees.pipelines.data_setup import DEFAULT_DATA_REL_PATH, FeatureConfig
from evotrees.utils.env import load_env

DEFAULT_MODEL_TYPES = ("decision_tree", "random_forest", "xgboost")
DEFAULT_N_JOBS_FRACTION = 0.8


def resolve_n_jobs(fraction: float = DEFAULT_N_JOBS_FRACTION, cpu_count: Optional[int] = None) -> int:
    """Number of worker processes for the delegates: a fraction of the cores, at least one."""
    if isinstance(fraction, bool) or not isinstance(fraction, (int, float)) or not 0 < fraction <= 1:
        raise ConfigError(f"n_jobs_fraction must lie in (0, 1], got {fraction!r}")
    cores = cpu_count or os.cpu_count() or 1
    return max(1, int(cores * fraction))


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ModelSettings:
    """Fixed parameters and optional grid for one model kind (None = trainer defaults)."""

    params: Optional[Dict[str, object]] = None
    grid: Optional[Dict[str, list]] = None

    @classmethod
    def from_dict(cls, data: Optional[Mapping]) -> "ModelSettings":
        data = dict(data or {})
        unknown = sorted(set(data) - {"params", "grid"})
        if unknown:
            raise ConfigError(f"Unknown model settings: {unknown} (expected 'params' and/or 'grid')")
        for key in ("params", "grid"):
            if data.get(key) is not None and not isinstance(data[key], Mapping):
                raise ConfigError(f"'{key}' must be a mapping, got {data[key]!r}")
        params = dict(data["params"]) if data.get("params") is not None else None
        grid = None
        if "grid" in data:
            # "grid:" vacio en el yaml significa ajuste sin barrido
            grid = dict(data["grid"] or {})
        return cls(params=params, grid=grid)


@dataclass(frozen=True)
class RunConfig:
    """Everything one pipeline invocation needs; nothing is read from globals afterwards."""

    base_dir: Path
    data_path: Path = DEFAULT_DATA_REL_PATH
    sep: str = ","
    feature_config: FeatureConfig = field(default_factory=FeatureConfig)
    train_fraction: float = 0.7
    seed: int = 1
    stratify: bool = False
    model_types: Tuple[str, ...] = DEFAULT_MODEL_TYPES
    model_settings: Dict[str, ModelSettings] = field(default_factory=dict)
    cv_folds: Optional[int] = None
    scoring: Optional[str] = None
    n_jobs: int = 1
    reports_dir: Path = Path("reports")
    models_dir: Path = Path("models")
    use_mlflow: bool = False
    experiment_name: str = "pokemon-evolution"
    mlflow_tracking_uri: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.train_fraction, bool) or not isinstance(self.train_fraction, (int, float)) \
                or not 0 < self.train_fraction < 1:
            raise InvalidFractionError(f"Split fraction must lie in (0, 1), got {self.train_fraction!r}")
        if not self.model_types:
            raise ConfigError("At least one model type must be selected.")
        if self.n_jobs < 1:
            raise ConfigError(f"n_jobs must be >= 1, got {self.n_jobs}")

    def resolve(self, path: Path) -> Path:
        path = Path(path)
        return path if path.is_absolute() else Path(self.base_dir) / path

    @property
    def resolved_data_path(self) -> Path:
        return self.resolve(self.data_path)

    @property
    def resolved_reports_dir(self) -> Path:
        return self.resolve(self.reports_dir)

    @property
    def resolved_models_dir(self) -> Path:
        return self.resolve(self.models_dir)

    def settings_for(self, model_type: str) -> ModelSettings:
        return self.model_settings.get(model_type, ModelSettings())

    def training_params(self) -> Dict[str, object]:
        params: Dict[str, object] = {"seed": self.seed}
        if self.cv_folds is not None:
            params["cv_folds"] = self.cv_folds
        if self.scoring is not None:
            params["scoring"] = self.scoring
        return params


def load_cfg(path) -> dict:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Params file not found: {path}")
    try:
        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return cfg


def load_run_config(params_path=None, base_dir=None, env: Optional[Mapping] = None) -> RunConfig:
    """
    Build the RunConfig. Precedence for the base directory: explicit argument,
    then EVOTREES_BASE_DIR, then the params file's directory, then the cwd.
    Environment values (SEED, N_JOBS_FRACTION, USE_MLFLOW) override params.yaml.
    """
    env = dict(env) if env is not None else load_env(base_dir)

    if base_dir is None and env.get("EVOTREES_BASE_DIR"):
        base_dir = env["EVOTREES_BASE_DIR"]
    if params_path is None:
        params_path = Path(base_dir or ".") / "params.yaml"
    params_path = Path(params_path)
    if base_dir is None:
        base_dir = params_path.resolve().parent if params_path.exists() else Path.cwd()
    base_dir = Path(base_dir)

    cfg = load_cfg(params_path) if params_path.exists() else {}
    if not params_path.exists():
        print(f"[WARN] {params_path} not found, using defaults.")

    data_cfg = dict(cfg.get("data") or {})
    split_cfg = dict(cfg.get("split") or {})
    train_cfg = dict(cfg.get("train") or {})
    report_cfg = dict(cfg.get("reports") or {})

    feature_config = FeatureConfig.from_dict(
        {k: v for k, v in data_cfg.items() if k in {"label", "id_columns", "label_values", "feature_columns"}}
    )

    model_types = tuple(train_cfg.get("model_types") or DEFAULT_MODEL_TYPES)
    model_settings = {kind: ModelSettings.from_dict(train_cfg.get(kind)) for kind in model_types}

    seed = env.get("SEED") or split_cfg.get("seed", 1)
    fraction = env.get("N_JOBS_FRACTION") or train_cfg.get("n_jobs_fraction", DEFAULT_N_JOBS_FRACTION)
    try:
        seed = int(seed)
        fraction = float(fraction)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid seed or n_jobs_fraction: {e}") from e

    use_mlflow = env.get("USE_MLFLOW")
    if use_mlflow is None or str(use_mlflow).strip() == "":
        use_mlflow = report_cfg.get("use_mlflow", False)

    return RunConfig(
        base_dir=base_dir,
        data_path=Path(data_cfg.get("path", DEFAULT_DATA_REL_PATH)),
        sep=str(data_cfg.get("sep", ",")),
        feature_config=feature_config,
        train_fraction=split_cfg.get("train_fraction", 0.7),
        seed=seed,
        stratify=_as_bool(split_cfg.get("stratify", False)),
        model_types=model_types,
        model_settings=model_settings,
        cv_folds=train_cfg.get("cv_folds"),
        scoring=train_cfg.get("scoring"),
        n_jobs=resolve_n_jobs(fraction),
        reports_dir=Path(report_cfg.get("dir", "reports")),
        models_dir=Path(report_cfg.get("models_dir", "models")),
        use_mlflow=_as_bool(use_mlflow),
        experiment_name=env.get("EXPERIMENT_NAME") or "pokemon-evolution",
        mlflow_tracking_uri=env.get("MLFLOW_TRACKING_URI"),
    )
