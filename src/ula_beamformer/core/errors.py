"""
Error types for the beamforming pipeline.

Every failure is raised at the stage that detects it and carries the
stage name and offending parameter so callers can report it directly.
"""

from typing import Optional

import numpy as np


class ConfigValidationError(ValueError):
    """Raised when configuration values are invalid."""

    pass


class BeamformerError(ConfigValidationError):
    """
    Base class for typed pipeline failures.

    Attributes:
        stage: Pipeline stage that raised the error (e.g. "covariance")
        parameter: Name of the offending parameter, if any
    """

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        parameter: Optional[str] = None,
    ) -> None:
        self.stage = stage
        self.parameter = parameter
        self.message = message

        context = []
        if stage:
            context.append(f"stage={stage}")
        if parameter:
            context.append(f"parameter={parameter}")
        if context:
            message = f"{message} [{', '.join(context)}]"
        super().__init__(message)


class InvalidGeometry(BeamformerError):
    """Sensor count below one or non-positive element spacing."""

    pass


class InvalidSampleRate(BeamformerError):
    """Sampling rate is zero or negative."""

    pass


class EmptySignal(BeamformerError):
    """Signal or observation matrix has no samples."""

    pass


class DegenerateSteeringVector(BeamformerError):
    """Steering vector norm is too small to normalize."""

    pass


class NumericalInstability(BeamformerError):
    """NaN or Inf detected in an intermediate or final result."""

    pass


def check_finite(values, stage: str, parameter: str) -> None:
    """
    Raise NumericalInstability if any element is NaN or Inf.

    Args:
        values: Scalar or numpy array to check
        stage: Pipeline stage name for the error context
        parameter: Name of the checked quantity
    """
    if not np.all(np.isfinite(values)):
        raise NumericalInstability(
            f"non-finite values in {parameter}", stage=stage, parameter=parameter
        )
