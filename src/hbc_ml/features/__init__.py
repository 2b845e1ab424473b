"""Feature engineering: the shared preprocessing recipe."""

from hbc_ml.features.recipe import (
    BINARY_LEVELS,
    FittedRecipe,
    Recipe,
    RecipeSpec,
    RecipeTransformer,
    validate_frame,
)

__all__ = [
    "BINARY_LEVELS",
    "FittedRecipe",
    "Recipe",
    "RecipeSpec",
    "RecipeTransformer",
    "validate_frame",
]
