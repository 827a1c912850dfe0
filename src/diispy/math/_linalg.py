import torch


def dagger(x: torch.Tensor) -> torch.Tensor:
    """Conjugate transpose of a batch of matrices (last two dimensions).
    Returns a lazily-conjugated view without copying data."""
    return x.conj().transpose(-2, -1)


def abs_squared(x: torch.Tensor) -> torch.Tensor:
    """Elementwise |x|^2 of a real or complex tensor, returned as real.
    Lazily-conjugated views (e.g. from `dagger`) are accepted."""
    if x.is_complex():
        return torch.view_as_real(x.resolve_conj()).square().sum(dim=-1)
    return x.square()
