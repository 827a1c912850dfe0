from typing import Sequence

import torch

from diispy.math import Transform, abs_squared, mat_add


def commutator_error(F: torch.Tensor, D: torch.Tensor, S: torch.Tensor) -> torch.Tensor:
    """Commutator error metric F D S - S D F of the SCF equations.
    Vanishes at self-consistency, where the Fock matrix `F` and density
    matrix `D` commute in the metric of the overlap matrix `S`.
    Since `F`, `D` and `S` are Hermitian, S D F is the conjugate transpose
    of F D S; leading dimensions (e.g. spin) are batched over."""
    FDS = F @ D @ S
    return mat_add(Transform.N, Transform.C, 1.0, FDS, -1.0, FDS)


def error_norm(error: Sequence[torch.Tensor]) -> float:
    """Frobenius norm of the error metrics of all tracks combined."""
    return sum(abs_squared(e).sum().item() for e in error) ** 0.5
