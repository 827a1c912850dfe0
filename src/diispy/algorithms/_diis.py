from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator, Optional, Sequence, Union

import torch

from diispy import log
from diispy.io import InvalidInputException, fmt
from ._field import ScalarField, get_field
from ._history import ResidualHistory
from ._linear_system import LinearSystemSolver


class DIIS:
    """Direct inversion in the iterative subspace (DIIS) extrapolation.

    Given `n_extrap` slots of error metrics (residuals), each consisting of
    `n_mat` tensors (tracks) of `o_size` elements, :meth:`extrapolate` finds
    coefficients c, summing to one, that minimize the norm of the combined
    residual. This amounts to solving the bordered normal equations

        [ B   -1 ] [ c      ]   [  0 ]
        [ -1   0 ] [ lambda ] = [ -1 ]

    where B[k, j] = sum over tracks of <r_k, r_j>. The caller then forms the
    next iterate as the c-weighted combination of its trial solutions.

    The engine only borrows the residuals (see :class:`ResidualHistory`) and
    owns the coefficients and the scratch matrix, which are overwritten on
    every call. It cannot be copied or pickled.
    """

    __slots__ = (
        "n_extrap",
        "n_mat",
        "o_size",
        "field",
        "solver",
        "error_metric",
        "coeffs",
        "B",
    )
    n_extrap: int  #: Size of extrapolation space (number of history slots)
    n_mat: int  #: Number of tracks summed in each element of `B`
    o_size: int  #: Number of elements in each error metric
    field: ScalarField  #: Scalar field of residuals and coefficients
    solver: LinearSystemSolver  #: Solver for the bordered normal equations
    error_metric: ResidualHistory  #: Borrowed error metrics [slot][track]
    coeffs: torch.Tensor  #: Solution vector: weights, then Lagrange multiplier
    B: torch.Tensor  #: Bordered normal-equations matrix of the latest call

    def __init__(
        self,
        *,
        n_extrap: int,
        n_mat: int,
        o_size: int,
        error_metric: Union[ResidualHistory, Sequence[Sequence[torch.Tensor]]],
        field: Optional[ScalarField] = None,
        solver: Optional[LinearSystemSolver] = None,
    ) -> None:
        """Set up extrapolation over borrowed `error_metric`.

        Parameters
        ----------
        n_extrap
            Size of extrapolation space, at least 1.
        n_mat
            Number of error metrics (tracks) per slot, at least 1.
            For example 2 for the alpha and beta Fock matrices of an
            unrestricted calculation.
        o_size
            Number of elements of each error metric, at least 1.
        error_metric
            Error metrics indexed [slot][track]. Only references are kept.
        field
            Scalar field; inferred from the dtype of `error_metric` if None.
        solver
            Linear-system solver; default is the dense solver of `field`.
        """
        if min(n_extrap, n_mat, o_size) < 1:
            raise InvalidInputException(
                f"n_extrap, n_mat and o_size must be >= 1"
                f" (got {n_extrap}, {n_mat}, {o_size})"
            )
        if not isinstance(error_metric, ResidualHistory):
            error_metric = ResidualHistory(error_metric)
        error_metric.validate(n_extrap, n_mat, o_size)
        if field is None:
            field = get_field(error_metric.dtype)
        elif error_metric.dtype != field.dtype:
            raise InvalidInputException(
                f"Residuals of type {error_metric.dtype} cannot be"
                f" extrapolated in the {field.name} field"
            )
        self.n_extrap = n_extrap
        self.n_mat = n_mat
        self.o_size = o_size
        self.field = field
        self.solver = field.make_solver() if (solver is None) else solver
        self.error_metric = error_metric
        N = n_extrap + 1
        kwargs = dict(dtype=field.dtype, device=error_metric.device)
        self.coeffs = torch.zeros(N, **kwargs)
        self.B = torch.zeros((N, N), **kwargs)

    @classmethod
    @contextmanager
    def borrow(
        cls,
        error_metric: Sequence[Sequence[torch.Tensor]],
        *,
        field: Optional[ScalarField] = None,
        solver: Optional[LinearSystemSolver] = None,
    ) -> Iterator[DIIS]:
        """Engine over `error_metric` that may only be used within a `with` block.
        Dimensions are inferred from `error_metric`, and the references to it
        are dropped when the block exits."""
        history = ResidualHistory(error_metric)
        n_extrap, n_mat, o_size = history.shape()
        diis = cls(
            n_extrap=n_extrap,
            n_mat=n_mat,
            o_size=o_size,
            error_metric=history,
            field=field,
            solver=solver,
        )
        try:
            yield diis
        finally:
            history.release()

    @property
    def weights(self) -> torch.Tensor:
        """Extrapolation weights (view of `coeffs` without the multiplier)."""
        return self.coeffs[:-1]

    def build_matrix(self) -> torch.Tensor:
        """Build bordered normal-equations matrix `B` from the error metrics."""
        if self.error_metric.released:
            raise InvalidInputException("Residual history was released")
        n = self.n_extrap
        B = self.B
        B.zero_()
        inner_product = self.field.inner_product
        flat = [[r.reshape(-1) for r in slot] for slot in self.error_metric]
        for i_mat in range(self.n_mat):
            for j in range(n):
                r_j = flat[j][i_mat]
                for k in range(j + 1):
                    B[k, j] += inner_product(flat[k][i_mat], r_j)
        # Hermitian lower triangle:
        for j in range(n):
            for k in range(j):
                B[j, k] = self.field.conjugate(B[k, j])
        # Border enforcing sum of weights = 1:
        B[n, :n] = -1.0
        B[:n, n] = -1.0
        B[n, n] = 0.0
        return B

    def extrapolate(self) -> bool:
        """Compute extrapolation coefficients into `coeffs`.
        Return True on success. On failure (singular normal equations, e.g.
        due to linearly dependent error metrics), return False and leave
        `coeffs` unspecified; the caller should then fall back to a
        non-extrapolated update."""
        B = self.build_matrix()
        log.debug(f"DIIS B matrix:\n{fmt(B)}")
        self.coeffs.zero_()
        self.coeffs[-1] = -1.0
        success = self.solver.solve(B, self.coeffs)
        if success:
            log.debug(f"DIIS coefficients: {fmt(self.weights)}")
        else:
            log.debug(f"DIIS solve failed for n_extrap = {self.n_extrap}")
        return success

    def __copy__(self):
        raise TypeError(f"{self.__class__.__name__} cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{self.__class__.__name__} cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError(f"{self.__class__.__name__} cannot be pickled")
