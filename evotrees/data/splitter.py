import math
from typing import Optional

import pandas as pd
from sklearn.model_selection import train_test_split

from evotrees.errors import InvalidFractionError
from evotrees.pipelines.data_setup import DEFAULT_FEATURE_CONFIG, FeatureConfig


class DataSplitter:
    """
    Partitions the sample table into a training subset and a holdout subset
    with a seeded permutation of the rows.
    """

    def __init__(
        self,
        train_fraction: float = 0.7,
        seed: int = 1,
        stratify: bool = False,
        feature_config: Optional[FeatureConfig] = None,
    ):
        if isinstance(train_fraction, bool) or not isinstance(train_fraction, (int, float)):
            raise InvalidFractionError(f"Split fraction must be a number, got {train_fraction!r}")
        if not 0 < train_fraction < 1:
            raise InvalidFractionError(f"Split fraction must lie in (0, 1), got {train_fraction}")
        self.train_fraction = float(train_fraction)
        self.seed = seed
        self.stratify = stratify
        self.feature_config = feature_config or DEFAULT_FEATURE_CONFIG

    def train_size(self, n_rows: int) -> int:
        # floor con tolerancia: 0.29 * 100 da 28.999999999999996
        return int(math.floor(n_rows * self.train_fraction + 1e-9))

    def split(self, df: pd.DataFrame):
        """
        Split rows into (train, test). Same seed and fraction give the same partition.
        """
        n_rows = len(df)
        n_train = self.train_size(n_rows)
        if n_train == 0 or n_train == n_rows:
            raise InvalidFractionError(
                f"Fraction {self.train_fraction} leaves an empty subset for {n_rows} rows "
                f"(train={n_train}, test={n_rows - n_train})"
            )

        print("[INFO] Splitting data into train/test sets...")
        stratify_on = df[self.feature_config.label] if self.stratify else None
        try:
            train, test = train_test_split(
                df,
                train_size=n_train,
                random_state=self.seed,
                shuffle=True,
                stratify=stratify_on,
            )
        except ValueError as e:
            # p.ej. una clase con menos de 2 filas al estratificar
            raise InvalidFractionError(f"Cannot split {n_rows} rows with fraction {self.train_fraction}: {e}") from e
        print(f"[INFO] train: {train.shape}, test: {test.shape} (seed={self.seed}, fraction={self.train_fraction})")
        return train, test

    def select_features(self, df: pd.DataFrame):
        """
        Select feature and label columns; identifier columns are dropped.
        """
        features = self.feature_config.resolve_features(df)
        X = df[features]
        y = df[self.feature_config.label]
        return X, y

    def run(self, df: pd.DataFrame):
        """
        Split the table, then separate features from labels in both subsets.
        Returns X_train, X_test, y_train, y_test.
        """
        train, test = self.split(df)
        X_train, y_train = self.select_features(train)
        X_test, y_test = self.select_features(test)
        print(f"[INFO] X_train: {X_train.shape}, X_test: {X_test.shape}")
        return X_train, X_test, y_train, y_test
