"""DIIS extrapolation engine and the scalar fields and solvers it builds on."""
# List exported symbols for doc generation
__all__ = (
    "ScalarField",
    "REAL",
    "COMPLEX",
    "get_field",
    "LinearSystemSolver",
    "DenseSolver",
    "ResidualHistory",
    "DIIS",
)

from ._field import ScalarField, REAL, COMPLEX, get_field
from ._linear_system import LinearSystemSolver, DenseSolver
from ._history import ResidualHistory
from ._diis import DIIS
