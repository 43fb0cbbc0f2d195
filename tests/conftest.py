import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Ensure project root is on sys.path for imports like `evotrees.*`
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture
def make_sample_table():
    """Factory for sound-count tables whose first feature separates the two stages."""

    def _make(n_rows=60, n_features=4, seed=0, labels=("pre", "post")):
        rng = np.random.default_rng(seed)
        stage = np.where(np.arange(n_rows) % 2 == 0, labels[0], labels[1])
        data = {
            "name": [f"mon{i:03d}" for i in range(n_rows)],
            "designation": [f"#{i:03d}" for i in range(n_rows)],
        }
        for j in range(n_features):
            counts = rng.poisson(2, n_rows)
            if j == 0:
                counts = counts + (stage == labels[1]) * 6
            data[f"sound_{j}"] = counts
        data["evolution"] = stage
        return pd.DataFrame(data)

    return _make


@pytest.fixture
def sample_table(make_sample_table):
    return make_sample_table()
