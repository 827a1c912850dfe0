"""DiisPy: DIIS extrapolation for self-consistent field iterations"""
# List exported symbols for doc generation
__all__ = (
    "log",
    "rc",
    "io",
    "math",
    "algorithms",
    "scf",
)

__version__: str = "0.1.0"

# Module import definition
from ._log import log
from . import rc, io, math, algorithms, scf
