from __future__ import annotations
from collections import deque
from typing import Deque, Optional, Sequence

import torch

from diispy import log, rc
from diispy.io import InvalidInputException
from diispy.math import Transform, mat_add
from diispy.algorithms import DIIS
from ._controls import SCFControls
from ._error_metric import error_norm


class Extrapolator:
    """Convergence acceleration of an SCF loop by DIIS with damping fallback.
    Keeps the most recent trial solutions and error metrics (one tensor per
    track, e.g. per spin channel) and proposes the next iterate in each step.
    DIIS is used once two iterations are available; when it is disabled or
    its normal equations are singular, the update is damped while the error
    is still large, and is otherwise passed through unchanged."""

    controls: SCFControls  #: Acceleration settings
    n_mat: int  #: Number of tracks in each trial / error metric
    name: str  #: Line prefix in log for progress reports
    n_steps: int  #: Number of steps taken
    error_norm: float  #: Combined error norm of latest step
    last_weights: Optional[torch.Tensor]  #: DIIS weights of latest step, if used
    _trials: Deque[list[torch.Tensor]]  #: History of trial solutions
    _errors: Deque[list[torch.Tensor]]  #: History of error metrics
    _previous: Optional[list[torch.Tensor]]  #: Iterate proposed in previous step

    def __init__(
        self, *, controls: SCFControls, n_mat: int = 1, name: str = "DIIS"
    ) -> None:
        if n_mat < 1:
            raise InvalidInputException(f"n_mat must be >= 1 (got {n_mat})")
        self.controls = controls
        self.n_mat = n_mat
        self.name = name
        self.n_steps = 0
        self.error_norm = 0.0
        self.last_weights = None
        self._trials = deque(maxlen=controls.n_keep)
        self._errors = deque(maxlen=controls.n_keep)
        self._previous = None

    @property
    def n_history(self) -> int:
        """Number of iterations currently stored."""
        return len(self._errors)

    def reset(self) -> None:
        """Forget all stored iterations, e.g. after a change of geometry."""
        self._trials.clear()
        self._errors.clear()
        self._previous = None
        self.last_weights = None

    def step(
        self, trial: Sequence[torch.Tensor], error: Sequence[torch.Tensor]
    ) -> list[torch.Tensor]:
        """Record `trial` solution and its `error` metric (one tensor per track),
        and return the next iterate. Inputs are copied and may be reused."""
        if len(trial) != self.n_mat or len(error) != self.n_mat:
            raise InvalidInputException(
                f"Expected {self.n_mat} track(s), got {len(trial)} trial(s)"
                f" and {len(error)} error metric(s)"
            )
        self.error_norm = error_norm(error)
        self.last_weights = None
        result: Optional[list[torch.Tensor]] = None
        method = "none"
        if self.controls.extrap:
            self._trials.append([t.detach().clone() for t in trial])
            self._errors.append([e.detach().clone() for e in error])
            if self.controls.use_diis and (self.n_history >= 2):
                result = self._extrapolate()
                method = "diis"
            if (result is None) and self._should_damp():
                result = self._damp(trial)
                method = "damp"
        if result is None:
            result = [t.detach().clone() for t in trial]
            method = "none"

        log.info(
            f"{self.name}: {self.n_steps}  n_hist: {self.n_history}"
            f"  |error|: {self.error_norm:.3e}  step: {method}"
            f"  t[s]: {rc.clock():.2f}"
        )
        self.n_steps += 1
        self._previous = [r.clone() for r in result]
        return result

    def _extrapolate(self) -> Optional[list[torch.Tensor]]:
        """Combine stored trials with DIIS weights, or None if the solve fails."""
        with DIIS.borrow(self._errors) as diis:
            if not diis.extrapolate():
                log.warning(
                    f"{self.name}: singular DIIS equations with"
                    f" {diis.n_extrap} iterations; falling back"
                )
                return None
            weights = diis.weights.clone()
        self.last_weights = weights
        result = [torch.zeros_like(t) for t in self._trials[-1]]
        for weight, trials in zip(weights.tolist(), self._trials):
            for accumulated, trial in zip(result, trials):
                mat_add(
                    Transform.N, Transform.N, weight, trial, 1.0, accumulated,
                    out=accumulated,
                )
        return result

    def _should_damp(self) -> bool:
        return (
            self.controls.use_damp
            and (self._previous is not None)
            and (self.error_norm > self.controls.damp_error)
        )

    def _damp(self, trial: Sequence[torch.Tensor]) -> list[torch.Tensor]:
        """Mix `damp_param` of the previous iterate into `trial`."""
        assert self._previous is not None
        damp_param = self.controls.damp_param
        return [
            mat_add(Transform.N, Transform.N, 1.0 - damp_param, t, damp_param, prev)
            for t, prev in zip(trial, self._previous)
        ]
