from typing import Optional, Union
import logging
import sys

import numpy as np
import torch

from diispy import log


def log_config(
    *, output_file: Optional[str] = None, append: bool = True, verbose: bool = False
):
    """Configure logging globally for the diispy library. It should typically
    only be necessary to call this once during start-up. Note that the default
    log configuration before calling this function is to print only warnings
    and errors to stderr.

    For further customization, directly modify the :class:`logging.Logger`
    object :attr:`~diispy.log`, as required.

    Parameters
    ----------
    output_file
        Output file to write the log to.
        Default = None implies log to stdout.
    append
        Whether log files should be appended or overwritten.
    verbose
        Whether to log debug information including module/line numbers of code.
        This includes the normal-equations matrix and coefficients of every
        DIIS extrapolation.
    """
    handler = get_handler(output_file, "a" if append else "w")

    # Set log format:
    handler.setFormatter(
        logging.Formatter(
            ("[%(module)s:%(lineno)d] " if verbose else "") + "%(message)s"
        )
    )

    # Set handler:
    log.handlers.clear()
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if verbose else logging.INFO)


def fmt(tensor: Union[torch.Tensor, np.ndarray], **kwargs) -> str:
    """Standardized conversion of torch tensors and numpy arrays for logging.
    Keyword arguments are forwarded to `numpy.array2string`."""
    # Set some defaults in formatter:
    kwargs.setdefault("precision", 8)
    kwargs.setdefault("suppress_small", True)
    kwargs.setdefault("separator", ", ")
    return np.array2string(
        tensor.detach().cpu().numpy() if isinstance(tensor, torch.Tensor) else tensor,
        **kwargs,
    )


def get_handler(filename: Optional[str], filemode: str) -> logging.Handler:
    if filename:
        return logging.FileHandler(filename, mode=filemode)
    else:
        return logging.StreamHandler(sys.stdout)
