import os
import warnings
from typing import Optional

import numpy as np
import pandas as pd

from evotrees.errors import DataFileNotFoundError, ParseError
from evotrees.pipelines.data_setup import DEFAULT_FEATURE_CONFIG, FeatureConfig


class DataLoader:
    """
    Handles loading and validation of the Pokémon sound-count dataset.
    """

    def __init__(self, input_path: str, feature_config: Optional[FeatureConfig] = None, sep: str = ","):
        self.input_path = str(input_path)
        self.feature_config = feature_config or DEFAULT_FEATURE_CONFIG
        self.sep = sep

    def load_data(self) -> pd.DataFrame:
        """
        Read the delimited file and check that the label and identifier columns exist.
        """
        if not os.path.exists(self.input_path):
            raise DataFileNotFoundError(f"File not found: {self.input_path}")

        try:
            # index_col=False: una fila con un campo de mas no se convierte en indice
            with warnings.catch_warnings():
                warnings.simplefilter("error", pd.errors.ParserWarning)
                df = pd.read_csv(self.input_path, sep=self.sep, index_col=False)
        except pd.errors.EmptyDataError as e:
            raise ParseError(f"Empty data file: {self.input_path}") from e
        except pd.errors.ParserError as e:
            # filas con mas campos que la cabecera
            raise ParseError(f"Malformed data file {self.input_path}: {e}") from e
        except pd.errors.ParserWarning as e:
            raise ParseError(f"Rows do not match the header of {self.input_path}: {e}") from e
        except UnicodeDecodeError as e:
            raise ParseError(f"Data file is not valid text: {self.input_path}") from e

        print(f"[INFO] Loaded dataset: Rows: {df.shape[0]}, Columns: {df.shape[1]}")

        expected_columns = self.feature_config.excluded_columns
        missing_cols = [c for c in expected_columns if c not in df.columns]
        if missing_cols:
            raise ParseError(f"Missing expected columns: {missing_cols}")
        if df.empty:
            raise ParseError(f"Data file has a header but no rows: {self.input_path}")

        print("[INFO] Column validation passed.")
        return df

    def validate(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Enforce the sample-table invariants:
        - every feature value present, numeric and non-negative
        - label coerced to a categorical with exactly two values
        """
        df = df.copy()
        cfg = self.feature_config
        features = cfg.resolve_features(df)

        for column in features:
            numeric = pd.to_numeric(df[column], errors="coerce")
            bad = df[column].notna() & numeric.isna()
            if bad.any():
                rows = self._row_numbers(bad)
                raise ParseError(f"Non-numeric values in feature '{column}' at rows {rows}")
            df[column] = numeric

        missing = df[features].isna().any(axis=1)
        if missing.any():
            rows = self._row_numbers(missing)
            raise ParseError(f"Missing feature values at rows {rows}")

        negative = (df[features] < 0).any(axis=1)
        if negative.any():
            rows = self._row_numbers(negative)
            raise ParseError(f"Negative feature values at rows {rows}")

        df[cfg.label] = self.to_categorical_label(df[cfg.label])
        return df

    def to_categorical_label(self, labels: pd.Series) -> pd.Categorical:
        """Coerce the label column to a two-category ``Categorical``."""
        cfg = self.feature_config
        if labels.isna().any():
            rows = self._row_numbers(labels.isna())
            raise ParseError(f"Missing label values at rows {rows}")

        as_text = labels.astype(str).str.strip()
        observed = sorted(as_text.unique())
        if cfg.label_values is not None:
            unknown = sorted(set(observed) - set(cfg.label_values))
            if unknown:
                raise ParseError(f"Label '{cfg.label}' has values outside {list(cfg.label_values)}: {unknown}")
            categories = list(cfg.label_values)
        else:
            categories = observed

        if len(categories) != 2:
            raise ParseError(
                f"Label '{cfg.label}' must have exactly two categories, found {len(categories)}: {categories}"
            )
        return pd.Categorical(as_text, categories=categories)

    def summarize(self, df: pd.DataFrame) -> None:
        """
        Print class balance and descriptive statistics of the features.
        """
        cfg = self.feature_config
        features = cfg.resolve_features(df)
        print(f"[INFO] Features: {len(features)} | Identifiers: {list(cfg.id_columns)}")
        counts = df[cfg.label].value_counts(sort=False)
        for value, count in counts.items():
            print(f"   {cfg.label}={value}: {count} ({count / len(df):.1%})")
        print(df[features].describe().T[["mean", "std", "min", "max"]])

    def run(self) -> pd.DataFrame:
        """
        Execute the full load → validate → summarize pipeline.
        """
        df = self.load_data()
        df = self.validate(df)
        self.summarize(df)
        return df

    @staticmethod
    def _row_numbers(mask: pd.Series, limit: int = 10) -> list[int]:
        # numero de fila en el fichero (cabecera = 1)
        rows = (np.flatnonzero(mask.to_numpy()) + 2).tolist()
        return rows[:limit]
