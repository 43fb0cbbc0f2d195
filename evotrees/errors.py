"""Error taxonomy for the evotrees pipeline.

Every error also derives from the builtin exception raised for the same
situation elsewhere in the code base (``ValueError``, ``FileNotFoundError``,
``RuntimeError``) so callers that only know the builtin still catch it.
"""


class EvoTreesError(Exception):
    """Base class for all pipeline errors."""


class InputError(EvoTreesError, ValueError):
    """The input data file is missing or malformed."""


class DataFileNotFoundError(InputError, FileNotFoundError):
    """The data file does not exist."""


class ParseError(InputError):
    """The data file exists but cannot be turned into a valid sample table."""


class ConfigError(EvoTreesError, ValueError):
    """Invalid run configuration, model kind, scoring or hyperparameter grid."""


class InvalidFractionError(ConfigError):
    """Split fraction outside (0, 1) or leaving one subset empty."""


class TrainingError(EvoTreesError, RuntimeError):
    """The external fitting routine failed or rejected the configuration."""


# nombre usado en la documentacion del pipeline
DelegateFailure = TrainingError


class EvaluationError(EvoTreesError, ValueError):
    """A fitted model was applied to rows that do not match its schema."""
