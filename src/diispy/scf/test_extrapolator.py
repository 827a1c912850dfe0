from __future__ import annotations
import logging

import pytest
import torch

from diispy import rc
from diispy.io import InvalidInputException, log_config
from . import SCFControls, Extrapolator, commutator_error, error_norm


def vector(*values: float) -> torch.Tensor:
    return torch.tensor(values, dtype=torch.float64)


def test_commutator_error() -> None:
    torch.manual_seed(0)
    X = torch.randn((5, 5), dtype=torch.complex128)
    F = X + X.conj().T
    S = torch.eye(5, dtype=torch.complex128)
    D = torch.randn((5, 5), dtype=torch.complex128)
    D = D @ D.conj().T
    E = commutator_error(F, D, S)
    assert torch.allclose(E, F @ D @ S - S @ D @ F)
    assert torch.allclose(E.conj().T, -E)  # anti-Hermitian
    # Density from eigenvectors of F commutes with it:
    _, V = torch.linalg.eigh(F)
    D_occ = V[:, :2] @ V[:, :2].conj().T
    assert error_norm([commutator_error(F, D_occ, S)]) < 1e-12


def test_no_extrapolation() -> None:
    extrapolator = Extrapolator(controls=SCFControls(extrap=False))
    trial = [vector(0.0, 1.0, 2.0)]
    for _ in range(3):
        result = extrapolator.step(trial, [vector(1.0, 1.0, 1.0)])
        assert torch.equal(result[0], trial[0])
        assert result[0] is not trial[0]
    assert extrapolator.n_history == 0


def test_diis_step() -> None:
    """Orthogonal errors of equal norm average the trials."""
    extrapolator = Extrapolator(controls=SCFControls(damp=False))
    x1 = vector(1.0, 2.0)
    x2 = vector(3.0, 6.0)
    first = extrapolator.step([x1], [vector(1.0, 0.0)])
    assert torch.equal(first[0], x1)
    assert extrapolator.last_weights is None
    second = extrapolator.step([x2], [vector(0.0, 1.0)])
    assert torch.allclose(extrapolator.last_weights, vector(0.5, 0.5))
    assert torch.allclose(second[0], 0.5 * (x1 + x2))


def test_multiple_tracks() -> None:
    extrapolator = Extrapolator(controls=SCFControls(damp=False), n_mat=2)
    kwargs = dict(dtype=torch.float64)
    zeros = torch.zeros((2, 2), **kwargs)
    ones = torch.ones((2, 2), **kwargs)
    eye = torch.eye(2, **kwargs)
    extrapolator.step([zeros, ones], [eye, zeros])
    result = extrapolator.step([ones, 3 * ones], [zeros, eye])
    assert torch.allclose(result[0], torch.full((2, 2), 0.5, **kwargs))
    assert torch.allclose(result[1], torch.full((2, 2), 2.0, **kwargs))
    with pytest.raises(InvalidInputException):
        extrapolator.step([ones], [eye])


def test_singular_fallback(caplog) -> None:
    """Identical errors make DIIS fail; the update is damped instead."""
    extrapolator = Extrapolator(controls=SCFControls(damp_param=0.7))
    x1 = vector(1.0, 0.0)
    x2 = vector(0.0, 1.0)
    error = vector(1.0, 1.0)
    extrapolator.step([x1], [error])
    with caplog.at_level(logging.WARNING, logger="diispy"):
        result = extrapolator.step([x2], [error])
    assert "singular" in caplog.text
    assert extrapolator.last_weights is None
    assert torch.allclose(result[0], 0.3 * x2 + 0.7 * x1)


def test_damping_stops_when_converged() -> None:
    controls = SCFControls(diis=False, damp_param=0.5, damp_error=1e-3)
    extrapolator = Extrapolator(controls=controls)
    x1 = vector(1.0)
    x2 = vector(3.0)
    extrapolator.step([x1], [vector(1.0)])
    damped = extrapolator.step([x2], [vector(1.0)])
    assert torch.allclose(damped[0], vector(2.0))
    plain = extrapolator.step([x2], [vector(1e-4)])
    assert torch.equal(plain[0], x2)


def test_history_bounded() -> None:
    extrapolator = Extrapolator(controls=SCFControls(n_keep=3, damp=False))
    generator = torch.Generator().manual_seed(1)
    for i_step in range(5):
        trial, error = torch.randn((2, 4), dtype=torch.float64, generator=generator)
        extrapolator.step([trial], [error])
        assert extrapolator.n_history == min(i_step + 1, 3)
    assert extrapolator.last_weights is not None
    assert len(extrapolator.last_weights) == 3
    extrapolator.reset()
    assert extrapolator.n_history == 0


class LinearProblem:
    """Fixed-point problem x = M x + b with a contracting symmetric M."""

    def __init__(self, n: int, seed: int = 0) -> None:
        generator = torch.Generator().manual_seed(seed)
        kwargs = dict(dtype=torch.float64, generator=generator)
        Q, _ = torch.linalg.qr(torch.randn((n, n), **kwargs))
        eigs = 0.9 * torch.rand(n, **kwargs)
        self.M = Q @ torch.diag(eigs) @ Q.T
        self.b = torch.randn(n, **kwargs)

    def solve(self, extrapolator: Extrapolator, n_iterations: int) -> int:
        """Return number of iterations to converge the residual to 1e-6."""
        x = torch.zeros_like(self.b)
        for i_iter in range(n_iterations):
            trial = self.M @ x + self.b
            error = trial - x
            if error_norm([error]) < 1e-6:
                return i_iter
            (x,) = extrapolator.step([trial], [error])
        return n_iterations


def test_convergence_acceleration() -> None:
    problem = LinearProblem(20)
    n_plain = problem.solve(
        Extrapolator(controls=SCFControls(extrap=False)), n_iterations=200
    )
    n_diis = problem.solve(
        Extrapolator(controls=SCFControls(n_keep=8, damp=False)), n_iterations=200
    )
    assert n_diis < 80
    assert n_diis < n_plain


def main():
    """Manually run an accelerated fixed-point iteration with full output."""
    log_config()
    rc.init()
    problem = LinearProblem(20)
    problem.solve(Extrapolator(controls=SCFControls(n_keep=8)), n_iterations=200)
    rc.report_end()


if __name__ == "__main__":
    main()
