"""Column roles of the sample table and helpers to locate and load it."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

import pandas as pd

from evotrees.errors import ConfigError, ParseError

DEFAULT_DATA_REL_PATH = Path("data/raw/pokemon_sounds.csv")


@dataclass(frozen=True)
class FeatureConfig:
    """Captures which columns are the label, identifiers and features."""

    label: str = "evolution"
    id_columns: Tuple[str, ...] = ("name", "designation")
    # orden de categorias: la primera es la clase positiva en las metricas
    label_values: Optional[Tuple[str, ...]] = None
    feature_columns: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if not self.label:
            raise ConfigError("The label column name must not be empty.")
        if self.label in self.id_columns:
            raise ConfigError(f"Label column '{self.label}' cannot also be an identifier column.")
        if self.label_values is not None and len(set(self.label_values)) != 2:
            raise ConfigError(f"label_values must hold exactly two distinct values, got {list(self.label_values)}")
        if self.feature_columns is not None:
            overlap = sorted(set(self.feature_columns) & ({self.label} | set(self.id_columns)))
            if overlap:
                raise ConfigError(f"Feature columns overlap label/identifier columns: {overlap}")

    @property
    def excluded_columns(self) -> list[str]:
        return [self.label, *self.id_columns]

    def resolve_features(self, df: pd.DataFrame) -> list[str]:
        """Feature columns of ``df``: explicit list, or every non label/id column."""
        if self.feature_columns is not None:
            missing = [c for c in self.feature_columns if c not in df.columns]
            if missing:
                raise ParseError(f"Missing feature columns: {missing}")
            return list(self.feature_columns)

        excluded = set(self.excluded_columns)
        features = [c for c in df.columns if c not in excluded]
        if not features:
            raise ParseError("The table has no feature columns besides the label and identifiers.")
        return features

    def to_dict(self) -> Dict[str, object]:
        return {
            "label": self.label,
            "id_columns": list(self.id_columns),
            "label_values": list(self.label_values) if self.label_values is not None else None,
            "feature_columns": list(self.feature_columns) if self.feature_columns is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FeatureConfig":
        data = dict(data or {})
        unknown = sorted(set(data) - {"label", "id_columns", "label_values", "feature_columns"})
        if unknown:
            raise ConfigError(f"Unknown data settings: {unknown}")

        def _as_tuple(key: str) -> Optional[Tuple[str, ...]]:
            value = data.get(key)
            if value is None:
                return None
            if isinstance(value, str) or not isinstance(value, Sequence):
                raise ConfigError(f"'{key}' must be a list of column names, got {value!r}")
            return tuple(str(v) for v in value)

        return cls(
            label=str(data.get("label", cls.label)),
            id_columns=_as_tuple("id_columns") if "id_columns" in data else cls.id_columns,
            label_values=_as_tuple("label_values"),
            feature_columns=_as_tuple("feature_columns"),
        )


DEFAULT_FEATURE_CONFIG = FeatureConfig()


def infer_project_root(start: Optional[Path] = None) -> Path:
    """Walk upwards until we find the repository root."""
    search_path = start or Path.cwd()
    for candidate in [search_path, *search_path.parents]:
        if (candidate / "params.yaml").exists() or (
            (candidate / "data").exists() and (candidate / "evotrees").exists()
        ):
            return candidate
    raise FileNotFoundError("Could not infer project root (missing params.yaml or data/ + evotrees/).")


def resolve_data_path(data_path: Optional[Path] = None, base_dir: Optional[Path] = None) -> Path:
    """Resolve ``data_path`` against ``base_dir``; absolute paths are kept as is."""
    root = Path(base_dir) if base_dir is not None else infer_project_root()
    path = Path(data_path) if data_path is not None else DEFAULT_DATA_REL_PATH
    return path if path.is_absolute() else root / path


def build_feature_frame(
    df: pd.DataFrame, config: FeatureConfig = DEFAULT_FEATURE_CONFIG
) -> Tuple[pd.DataFrame, pd.Series]:
    """Return the feature matrix (identifiers dropped) and the label series."""
    if config.label not in df.columns:
        raise ParseError(f"Missing label column: {config.label}")
    features = config.resolve_features(df)
    return df[features], df[config.label]
