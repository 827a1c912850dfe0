"""Math functions extending the core torch set."""
# List exported symbols for doc generation
__all__ = (
    "abs_squared",
    "dagger",
    "Transform",
    "mat_add",
)

from ._linalg import abs_squared, dagger
from ._mat_add import Transform, mat_add
