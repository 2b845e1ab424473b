"""
Exception taxonomy for the HBC-ML pipeline.

- SchemaError: malformed input (missing/unsupported columns, missing values)
- DegenerateFeatureError: a feature that cannot be encoded or scaled
- FitFailure: a single model configuration failed to fit or score
- SearchExhaustedError: no configuration produced a usable score

SchemaError and SearchExhaustedError are fatal to the current stage.
FitFailure is recovered by the search harness and only escalates as
SearchExhaustedError when no candidate survives.
"""


class HBCError(Exception):
    """Base class for pipeline errors."""


class SchemaError(HBCError):
    """Input data does not match the declared feature schema."""


class DegenerateFeatureError(HBCError):
    """A feature cannot be encoded (no levels, non-finite values)."""


class FitFailure(HBCError):
    """A model configuration failed to fit, predict or score."""


class SearchExhaustedError(HBCError):
    """Every configuration in a hyperparameter search failed."""
