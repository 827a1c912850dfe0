from __future__ import annotations
from dataclasses import dataclass
from typing import Callable

import torch

from diispy.io import InvalidInputException
from ._linear_system import LinearSystemSolver, DenseSolver


@dataclass(frozen=True)
class ScalarField:
    """Scalar field (real or complex) over which extrapolation is performed.
    Bundles the dtype with matching conjugation, inner product and dense solver,
    so that one engine never mixes real and complex arithmetic."""

    name: str  #: Label used in logs and errors
    dtype: torch.dtype  #: Storage type of residuals, matrices and coefficients
    conjugate: Callable[[torch.Tensor], torch.Tensor]  #: Complex conjugation
    inner_product: Callable[[torch.Tensor, torch.Tensor], torch.Tensor]
    """Inner product of flat vectors, conjugating the first argument."""

    def make_solver(self) -> LinearSystemSolver:
        """Dense linear-system solver matching this field."""
        return DenseSolver(self.dtype)


REAL = ScalarField(
    name="real",
    dtype=torch.float64,
    conjugate=lambda x: x,
    inner_product=torch.dot,
)  #: Real double-precision field

COMPLEX = ScalarField(
    name="complex",
    dtype=torch.complex128,
    conjugate=torch.conj,
    inner_product=torch.vdot,
)  #: Complex double-precision field

_FIELDS: dict[torch.dtype, ScalarField] = {
    field.dtype: field for field in (REAL, COMPLEX)
}


def get_field(dtype: torch.dtype) -> ScalarField:
    """Get the scalar field with storage type `dtype`."""
    field = _FIELDS.get(dtype)
    if field is None:
        supported = ", ".join(str(key) for key in _FIELDS)
        raise InvalidInputException(
            f"Unsupported scalar type {dtype} (must be one of {supported})"
        )
    return field
