"""Run configuration / hardware resources. This includes the CPU cores (torch threads)
and the torch device used for scratch tensors created by diispy.
The import-time configuration uses a single CPU thread.

Call `init` to select the number of cores based on an explicit override,
or on environment variable SLURM_CPUS_PER_TASK if available.
"""

import os
import time
import datetime
from typing import Optional

import torch
from psutil import cpu_count

from diispy import log


# List exported symbols for doc generation
__all__ = (
    "cpu",
    "device",
    "n_threads",
    "init",
    "clock",
    "report_end",
)

cpu: torch.device = torch.device("cpu")  #: CPU torch device
device: torch.device = cpu  #: Preferred torch device for new tensors
n_threads: int = 1  #: Number of torch threads in use
t_start: float = time.time()  #: Start time used for `clock` (set by `init`)

# Set reasonable pre-init defaults for torch:
torch.set_num_threads(n_threads)


def init(*, cores_override: Optional[int] = None) -> None:
    """Initialize overall hardware resources to be used by diispy.

    Parameters
    ----------
    cores_override
        If specified, override number of CPU cores (torch threads) to use.
        Before `init`, only a single core will be used.
        If `cores_override` is not specified, `init` will set the thread count
        based on environment variable SLURM_CPUS_PER_TASK (set by slurm) if
        available, and if not, use all physical cores."""

    # Reset and report start time:
    global t_start, n_threads
    t_start = time.time()
    log.info("Start time: " + time.ctime(t_start))

    # --- First priority: override argument
    n_threads = cores_override if cores_override else 0
    # --- Second priority: SLURM environment
    if not n_threads:
        slurm_threads = os.environ.get("SLURM_CPUS_PER_TASK")
        if slurm_threads:
            n_threads = int(slurm_threads)
    # --- Lowest priority: physical cores
    if not n_threads:
        n_threads = cpu_count(logical=False) or 1
    assert n_threads >= 1
    torch.set_num_threads(n_threads)
    log.info(f"Run totals: {n_threads} threads on {device}")


def clock() -> float:
    """Time in seconds since start of this run."""
    return time.time() - t_start


def report_end() -> None:
    """Report end time and duration."""
    t_stop = time.time()
    duration = datetime.timedelta(seconds=(t_stop - t_start))
    log.info(f"\nEnd time: {time.ctime(t_stop)} (Duration: {duration})")
