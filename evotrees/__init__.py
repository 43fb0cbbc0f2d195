"""Decision tree, random forest and gradient boosting classifiers for Pokémon evolution stage."""

__version__ = "0.1.0"
