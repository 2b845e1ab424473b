"""
HBC-ML: Machine Learning Pipeline for Hotel Booking Cancellation Prediction

A modular, reproducible ML pipeline that cleans a hotel-bookings file, fits a
shared preprocessing recipe, tunes several classifier families with repeated
stratified cross-validation and explains the selected model.
"""

# Copy-on-Write is always on from pandas 3.0, where setting the option is deprecated
# See: https://pandas.pydata.org/docs/user_guide/copy_on_write.html
import pandas as pd

if int(pd.__version__.split(".")[0]) < 3:
    pd.options.mode.copy_on_write = True

__version__ = "1.0.0"
__license__ = "MIT"

from hbc_ml import (  # noqa: E402
    config,
    data,
    evaluation,
    explain,
    features,
    metrics,
    models,
    utils,
)

__all__ = [
    "__version__",
    "config",
    "data",
    "evaluation",
    "explain",
    "features",
    "metrics",
    "models",
    "utils",
]
