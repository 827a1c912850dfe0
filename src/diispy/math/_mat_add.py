from __future__ import annotations
from enum import Enum
from typing import Optional, Union

import torch

from diispy.io import InvalidInputException, ShapeMismatchException, AliasingException
from ._linalg import dagger


Scalar = Union[float, complex]


class Transform(str, Enum):
    """Operation applied to an operand of :func:`mat_add`.
    Same convention as the TRANS arguments of BLAS GEMM, with the addition
    of `R` for a pure conjugation (without transpose)."""

    N = "N"  #: Identity
    T = "T"  #: Transpose
    C = "C"  #: Conjugate transpose
    R = "R"  #: Conjugate, without transpose

    @classmethod
    def get(cls, trans: Union[Transform, str]) -> Transform:
        """Convert `trans` (member or case-insensitive character) to Transform."""
        if isinstance(trans, Transform):
            return trans
        try:
            return cls(trans.upper())
        except ValueError:
            raise InvalidInputException(
                f"Transform must be one of N, T, C or R (got '{trans}')"
            ) from None

    @property
    def transposes(self) -> bool:
        return self in (Transform.T, Transform.C)

    def apply(self, x: torch.Tensor) -> torch.Tensor:
        """Apply transform to `x`, batched over all but the last two dimensions.
        Returns a view of `x`; no data is copied."""
        if self.transposes and x.dim() < 2:
            raise InvalidInputException(
                f"Transform '{self.value}' needs a matrix, got {x.dim()} dimension(s)"
            )
        if self is Transform.T:
            return x.transpose(-2, -1)
        if self is Transform.C:
            return dagger(x)
        if self is Transform.R:
            return x.conj()
        return x


def mat_add(
    trans_a: Union[Transform, str],
    trans_b: Union[Transform, str],
    alpha: Scalar,
    A: torch.Tensor,
    beta: Scalar,
    B: torch.Tensor,
    out: Optional[torch.Tensor] = None,
) -> torch.Tensor:
    """Compute `alpha` op(`A`) + `beta` op(`B`).

    The operands may have distinct dtypes, e.g. a real `A` combined with a
    complex `B`. The result always has the dtype of `B`, so a complex
    result cannot be produced with a real `B`. Sub-matrices of larger
    arrays (leading dimensions in BLAS terms) are passed as torch views,
    e.g. `H[:n, :n]`, and may be written to in place through `out`.

    Parameters
    ----------
    trans_a
        Transform op applied to `A`: N, T, C or R (see :class:`Transform`).
    trans_b
        Transform op applied to `B`.
    alpha
        Scale factor of op(`A`). Complex values with zero imaginary part
        are treated as real, so they may be used with a real `B`.
    A
        First operand; transforms act on the last two dimensions.
    beta
        Scale factor of op(`B`).
    B
        Second operand. op(`B`) must have the same shape as op(`A`).
    out
        Optional output with the shape of op(`B`) and the dtype of `B`.
        Its memory may overlap that of `A` (resp. `B`) only if `trans_a`
        (resp. `trans_b`) is N. Disjoint views into one array are allowed,
        e.g. writing op(`H[:n, :n]`) into `H[n:, n:]`.

    Returns
    -------
    `out` if specified, else a newly allocated tensor.
    """
    trans_a = Transform.get(trans_a)
    trans_b = Transform.get(trans_b)
    op_A = trans_a.apply(A)
    op_B = trans_b.apply(B)
    if op_A.shape != op_B.shape:
        raise ShapeMismatchException("op(A)", tuple(op_B.shape), tuple(op_A.shape))
    if out is not None:
        if out.shape != op_B.shape:
            raise ShapeMismatchException("out", tuple(op_B.shape), tuple(out.shape))
        if out.dtype != B.dtype:
            raise InvalidInputException(f"out must have dtype {B.dtype} of B")
        if trans_a is not Transform.N and _shares_memory(out, A):
            raise AliasingException("A", trans_a.value)
        if trans_b is not Transform.N and _shares_memory(out, B):
            raise AliasingException("B", trans_b.value)

    alpha = _real_if_exact(alpha)
    beta = _real_if_exact(beta)
    result = alpha * op_A + beta * op_B
    if result.is_complex() and not B.is_complex():
        raise InvalidInputException("Complex result cannot be stored in real B type")
    if out is None:
        return result.to(B.dtype)
    return out.copy_(result)


def _real_if_exact(x: Scalar) -> Scalar:
    """Drop an exactly-zero imaginary part of scale factor `x`."""
    if isinstance(x, complex) and not x.imag:
        return x.real
    return x


def _byte_range(x: torch.Tensor) -> tuple[int, int]:
    """Address range [start, stop) spanned by the elements of view `x`."""
    extent = 1 + sum((size - 1) * stride for size, stride in zip(x.shape, x.stride()))
    start = x.data_ptr()
    return start, start + extent * x.element_size()


def _shares_memory(x: torch.Tensor, y: torch.Tensor) -> bool:
    """Whether the memory spanned by views `x` and `y` overlaps."""
    if not (x.numel() and y.numel()):
        return False
    if x.untyped_storage().data_ptr() != y.untyped_storage().data_ptr():
        return False
    x_start, x_stop = _byte_range(x)
    y_start, y_stop = _byte_range(y)
    return (x_start < y_stop) and (y_start < x_stop)
