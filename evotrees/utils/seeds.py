# evotrees/utils/seeds.py

"""
Utilidades para fijar semillas aleatorias y hacer reproducibles
los particionados y entrenamientos.
"""

import os
import random
import numpy as np

DEFAULT_SEED = int(os.getenv("SEED", 1))


def set_global_seed(seed: int = DEFAULT_SEED) -> int:
    """
    Seed the Python and NumPy generators used outside the estimators.

    The estimators themselves receive ``random_state`` explicitly; this only
    covers helper code that draws from the global generators.

    Parameters
    ----------
    seed : int
        Seed value.

    Returns
    -------
    int
        The seed actually used, so it can be logged alongside the run.
    """
    random.seed(seed)
    np.random.seed(seed)
    return seed
