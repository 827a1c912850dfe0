"""SCF-side use of DIIS: acceleration controls, error metrics and extrapolator."""
# List exported symbols for doc generation
__all__ = (
    "DIISAlgorithm",
    "SCFControls",
    "commutator_error",
    "error_norm",
    "Extrapolator",
)

from ._controls import DIISAlgorithm, SCFControls
from ._error_metric import commutator_error, error_norm
from ._extrapolator import Extrapolator
