from __future__ import annotations
from abc import ABC, abstractmethod

import torch

from diispy import log
from diispy.io import InvalidInputException


class LinearSystemSolver(ABC):
    """Dense linear-system solve capability used by :class:`DIIS`.
    Implementations solve `matrix` @ x = `rhs` and report success,
    instead of raising, so that callers can cheaply fall back on failure."""

    @abstractmethod
    def solve(self, matrix: torch.Tensor, rhs: torch.Tensor) -> bool:
        """Solve `matrix` @ x = `rhs`, overwriting `rhs` with x on success.
        Return False if `matrix` is singular or the solution is not finite,
        in which case the contents of `rhs` are unspecified."""


class DenseSolver(LinearSystemSolver):
    """LU solve with partial pivoting (LAPACK gesv via torch.linalg)."""

    __slots__ = ("dtype",)
    dtype: torch.dtype  #: Scalar type of the systems solved

    def __init__(self, dtype: torch.dtype) -> None:
        self.dtype = dtype

    def solve(self, matrix: torch.Tensor, rhs: torch.Tensor) -> bool:
        if (matrix.dtype != self.dtype) or (rhs.dtype != self.dtype):
            raise InvalidInputException(
                f"{self.__class__.__name__} for {self.dtype} cannot solve"
                f" {matrix.dtype} system with {rhs.dtype} right-hand side"
            )
        result, info = torch.linalg.solve_ex(matrix, rhs)
        if info.item():
            i_zero = info.item() - 1  # LAPACK info is 1-based
            log.debug(f"LU factorization failed: U[{i_zero}, {i_zero}] is zero")
            return False
        if not torch.isfinite(result).all():
            log.debug("Linear solve produced non-finite solution")
            return False
        rhs.copy_(result)
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.dtype})"
