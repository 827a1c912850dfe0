from __future__ import annotations
from typing import Iterator, Sequence

import torch

from diispy.io import InvalidInputException, ShapeMismatchException


class ResidualHistory:
    """Non-owning `[slot][track]` view of caller-owned residual tensors.
    Only references are stored: the caller keeps the tensors alive and must
    not modify them while an extrapolation using this view is in progress.
    Rotating slots between iterations is up to the caller."""

    __slots__ = ("_slots",)
    _slots: tuple[tuple[torch.Tensor, ...], ...]

    def __init__(self, error_metric: Sequence[Sequence[torch.Tensor]]) -> None:
        self._slots = tuple(tuple(slot) for slot in error_metric)

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, i_slot: int) -> tuple[torch.Tensor, ...]:
        return self._slots[i_slot]

    def __iter__(self) -> Iterator[tuple[torch.Tensor, ...]]:
        return iter(self._slots)

    @property
    def released(self) -> bool:
        """Whether the references have been dropped by :meth:`release`."""
        return not self._slots

    @property
    def dtype(self) -> torch.dtype:
        return self._slots[0][0].dtype

    @property
    def device(self) -> torch.device:
        return self._slots[0][0].device

    def shape(self) -> tuple[int, int, int]:
        """Inferred (n_extrap, n_mat, o_size) of the history."""
        if self.released or not self._slots[0]:
            raise InvalidInputException("Residual history is empty")
        return len(self._slots), len(self._slots[0]), self._slots[0][0].numel()

    def release(self) -> None:
        """Drop all references to the caller's tensors."""
        self._slots = tuple()

    def validate(self, n_extrap: int, n_mat: int, o_size: int) -> None:
        """Check that the history has `n_extrap` slots of `n_mat` tensors,
        each with `o_size` elements, all of the same dtype and device."""
        if len(self._slots) != n_extrap:
            raise ShapeMismatchException(
                "residual history slots", (n_extrap,), (len(self._slots),)
            )
        for i_slot, slot in enumerate(self._slots):
            if len(slot) != n_mat:
                raise ShapeMismatchException(
                    f"tracks in residual slot {i_slot}", (n_mat,), (len(slot),)
                )
        dtype = self.dtype
        device = self.device
        for i_slot, slot in enumerate(self._slots):
            for i_mat, residual in enumerate(slot):
                name = f"residual[{i_slot}][{i_mat}]"
                if residual.numel() != o_size:
                    raise ShapeMismatchException(name, (o_size,), (residual.numel(),))
                if residual.dtype != dtype:
                    raise InvalidInputException(
                        f"{name} has dtype {residual.dtype} instead of {dtype}"
                    )
                if residual.device != device:
                    raise InvalidInputException(
                        f"{name} is on {residual.device} instead of {device}"
                    )
