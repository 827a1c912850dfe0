"""I/O functionality including logging and input files."""
# List exported symbols for doc generation
__all__ = (
    "log_config",
    "fmt",
    "InvalidInputException",
    "check_only_one_specified",
    "ShapeMismatchException",
    "AliasingException",
    "dict",
    "yaml",
)

from ._log_config import log_config, fmt
from ._error import (
    InvalidInputException,
    check_only_one_specified,
    ShapeMismatchException,
    AliasingException,
)
from . import dict, yaml
