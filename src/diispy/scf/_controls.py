from __future__ import annotations
from enum import Enum
from typing import Union
import inspect

from diispy import log
from diispy.io import InvalidInputException, yaml
from diispy.io.dict import key_cleanup


class DIISAlgorithm(str, Enum):
    """Extrapolation algorithm used in the SCF."""

    NONE = "none"  #: No DIIS extrapolation
    CDIIS = "cdiis"  #: Commutator DIIS (Pulay)

    @classmethod
    def get(cls, diis: Union[DIISAlgorithm, bool, str]) -> DIISAlgorithm:
        """Interpret boolean switch or (case-insensitive) algorithm name."""
        if isinstance(diis, DIISAlgorithm):
            return diis
        if isinstance(diis, bool):
            return cls.CDIIS if diis else cls.NONE
        try:
            return cls(str(diis).lower())
        except ValueError:
            names = ", ".join(member.value for member in cls)
            raise InvalidInputException(
                f"diis must be a boolean or one of {names} (got '{diis}')"
            ) from None


class SCFControls:
    """Convergence-acceleration controls of the SCF procedure.
    Equivalent settings are resolved on construction: a zero damping
    parameter turns damping off, and turning off both damping and DIIS
    turns off extrapolation entirely."""

    extrap: bool  #: Whether any extrapolation (DIIS or damping) is done
    diis: DIISAlgorithm  #: DIIS algorithm (NONE if disabled)
    n_keep: int  #: Number of previous iterations kept for DIIS
    damp: bool  #: Whether damping is done
    damp_param: float  #: Fraction of the previous iterate mixed in by damping
    damp_error: float  #: Damping stops once error norm falls below this
    n_iterations: int  #: Maximum number of SCF iterations
    energy_threshold: float  #: Convergence threshold on energy change
    density_threshold: float  #: Convergence threshold on density change

    def __init__(
        self,
        *,
        extrap: bool = True,
        diis: Union[DIISAlgorithm, bool, str] = DIISAlgorithm.CDIIS,
        n_keep: int = 10,
        damp: bool = True,
        damp_param: float = 0.7,
        damp_error: float = 1e-3,
        n_iterations: int = 128,
        energy_threshold: float = 1e-10,
        density_threshold: float = 1e-8,
    ) -> None:
        """Initialize SCF acceleration controls.

        Parameters
        ----------
        extrap
            :yaml:`Whether to extrapolate (DIIS and/or damping) at all.`
        diis
            :yaml:`DIIS algorithm, or a boolean to switch commutator DIIS on/off.`
        n_keep
            :yaml:`Number of previous iterations kept in the DIIS history.`
            Larger histories may converge faster, but make the DIIS
            normal equations more prone to linear dependence.
        damp
            :yaml:`Whether to damp the update until the error is small.`
        damp_param
            :yaml:`Fraction of the previous iterate mixed into the new one.`
            Setting this to 0 is equivalent to switching damping off.
        damp_error
            :yaml:`Error norm below which damping is no longer applied.`
        n_iterations
            :yaml:`Maximum number of SCF iterations.`
        energy_threshold
            :yaml:`Energy convergence threshold in Hartrees.`
        density_threshold
            :yaml:`Convergence threshold on the change in density.`
        """
        self.extrap = bool(extrap)
        self.diis = DIISAlgorithm.get(diis)
        self.n_keep = int(n_keep)
        self.damp = bool(damp)
        self.damp_param = float(damp_param)
        self.damp_error = float(damp_error)
        self.n_iterations = int(n_iterations)
        self.energy_threshold = float(energy_threshold)
        self.density_threshold = float(density_threshold)
        if self.n_keep < 1:
            raise InvalidInputException(f"n_keep must be >= 1 (got {self.n_keep})")
        if not (0.0 <= self.damp_param < 1.0):
            raise InvalidInputException(
                f"damp_param must be in [0, 1) (got {self.damp_param})"
            )
        if self.n_iterations < 1:
            raise InvalidInputException("n_iterations must be >= 1")

        # Resolve equivalences:
        if self.damp_param == 0.0:
            self.damp = False
        if (not self.damp) and (self.diis is DIISAlgorithm.NONE):
            self.extrap = False

    @property
    def use_diis(self) -> bool:
        """Whether DIIS extrapolation is active."""
        return self.extrap and (self.diis is not DIISAlgorithm.NONE)

    @property
    def use_damp(self) -> bool:
        """Whether damping is active."""
        return self.extrap and self.damp

    @classmethod
    def from_dict(cls, params: dict) -> SCFControls:
        """Construct from `params`, such as the `scf` section of a YAML input.
        Hyphens in keys are treated as underscores."""
        params = key_cleanup(params)
        known = set(inspect.signature(cls.__init__).parameters) - {"self"}
        unknown = sorted(set(params) - known)
        if unknown:
            raise InvalidInputException(
                f"Unknown SCF parameter(s): {', '.join(unknown)}"
            )
        return cls(**params)

    @classmethod
    def load(cls, filename: str, section: str = "scf") -> SCFControls:
        """Construct from the `section` of YAML input file `filename`."""
        controls = cls.from_dict(yaml.load_section(filename, section))
        log.info(f"Loaded SCF controls from {filename}: {controls}")
        return controls

    def as_dict(self) -> dict:
        return {
            "extrap": self.extrap,
            "diis": self.diis.value,
            "n-keep": self.n_keep,
            "damp": self.damp,
            "damp-param": self.damp_param,
            "damp-error": self.damp_error,
            "n-iterations": self.n_iterations,
            "energy-threshold": self.energy_threshold,
            "density-threshold": self.density_threshold,
        }

    def __repr__(self) -> str:
        return yaml.dump(self.as_dict()).strip()
