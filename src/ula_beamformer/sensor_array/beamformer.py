"""
Delay-and-sum beamforming for uniform linear arrays.

Provides covariance estimation, conventional (data-independent)
weight computation, beamformer output and the three equivalent
spatial power estimators.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.errors import (
    DegenerateSteeringVector,
    EmptySignal,
    InvalidGeometry,
    check_finite,
)
from .array_config import ArrayGeometry

logger = logging.getLogger(__name__)

# Steering vectors with a smaller 2-norm cannot be normalized
MIN_STEERING_NORM = 1e-12


def validate_observations(observations: np.ndarray, stage: str) -> np.ndarray:
    """Validate an (M, N) observation matrix."""
    observations = np.asarray(observations)
    if observations.ndim == 1:
        observations = observations[np.newaxis, :]
    if observations.ndim != 2:
        raise ValueError(
            f"observations must be 2-D (sensors x samples), got shape {observations.shape}"
        )
    if observations.shape[1] == 0:
        raise EmptySignal("observation matrix has no samples", stage=stage, parameter="N")
    check_finite(observations, stage=stage, parameter="observations")
    return observations


def estimate_covariance(observations: np.ndarray) -> np.ndarray:
    """
    Estimate the sample spatial covariance matrix.

    Args:
        observations: Observation matrix X of shape (M, N)

    Returns:
        Hermitian matrix Rx = X X^H / N of shape (M, M)
    """
    x = validate_observations(observations, stage="covariance")
    num_samples = x.shape[1]

    R = (x @ x.conj().T) / num_samples
    # Remove floating-point asymmetry
    R = (R + R.conj().T) / 2

    check_finite(R, stage="covariance", parameter="Rx")
    return R.astype(np.complex128)


def compute_weights(steering: np.ndarray) -> np.ndarray:
    """
    Unit-norm delay-and-sum weights w = a / ||a||.

    Args:
        steering: Steering vector a

    Returns:
        Complex weight vector with ||w|| = 1
    """
    steering = np.asarray(steering, dtype=np.complex128)
    check_finite(steering, stage="weights", parameter="steering_vector")

    norm = np.linalg.norm(steering)
    if norm < MIN_STEERING_NORM:
        raise DegenerateSteeringVector(
            f"steering vector norm {norm:.3e} is too small to normalize",
            stage="weights",
            parameter="steering_vector",
        )
    return steering / norm


def apply_weights(
    weights: np.ndarray, observations: np.ndarray, gain: float = 1.0
) -> np.ndarray:
    """
    Beamformer output Y = gain * w^H X.

    Args:
        weights: Weight vector w of length M
        observations: Observation matrix X of shape (M, N)
        gain: Amplitude calibration factor

    Returns:
        Complex output signal of length N
    """
    x = validate_observations(observations, stage="output")
    weights = np.asarray(weights, dtype=np.complex128)
    if len(weights) != x.shape[0]:
        raise ValueError(
            f"weight vector length {len(weights)} does not match {x.shape[0]} sensors"
        )
    return gain * (weights.conj() @ x)


def covariance_power(steering: np.ndarray, covariance: np.ndarray) -> float:
    """Spatial power real(a^H Rx a / a^H a) from the unnormalized steering vector."""
    steering = np.asarray(steering, dtype=np.complex128)
    norm_sq = np.vdot(steering, steering)
    if abs(norm_sq) < MIN_STEERING_NORM**2:
        raise DegenerateSteeringVector(
            "steering vector has zero energy",
            stage="power_spectrum",
            parameter="steering_vector",
        )
    power = np.real(np.vdot(steering, covariance @ steering) / norm_sq)
    check_finite(power, stage="power_spectrum", parameter="covariance_power")
    return float(power)


def weight_power(weights: np.ndarray, covariance: np.ndarray) -> float:
    """Spatial power real(w^H Rx w) from unit-norm weights."""
    weights = np.asarray(weights, dtype=np.complex128)
    power = np.real(np.vdot(weights, covariance @ weights))
    check_finite(power, stage="power_spectrum", parameter="weight_power")
    return float(power)


def output_power(output: np.ndarray) -> float:
    """Mean output power |Y| |Y|^H / N of an uncalibrated beamformer output."""
    output = np.asarray(output)
    if len(output) == 0:
        raise EmptySignal(
            "beamformer output has no samples", stage="power_spectrum", parameter="Y"
        )
    magnitude = np.abs(output)
    power = (magnitude @ magnitude) / len(output)
    check_finite(power, stage="power_spectrum", parameter="output_power")
    return float(power)


@dataclass
class PowerEstimates:
    """The three equivalent spatial power estimates for one look direction."""

    covariance_based: float  # real(a^H Rx a / a^H a)
    weight_based: float  # real(w^H Rx w)
    output_based: float  # |Y0| |Y0|^H / N

    def max_relative_error(self) -> float:
        """Largest pairwise relative disagreement between the estimates."""
        values = np.array([self.covariance_based, self.weight_based, self.output_based])
        scale = np.max(np.abs(values))
        if scale == 0:
            return 0.0
        return float((np.max(values) - np.min(values)) / scale)

    def is_consistent(self, rtol: float = 1e-6) -> bool:
        """True if all three estimates agree within rtol."""
        return self.max_relative_error() <= rtol


@dataclass
class BeamformerOutput:
    """Output from beamformer processing."""

    output_signal: np.ndarray  # Calibrated output gain * w^H X
    raw_output: np.ndarray  # Uncalibrated output w^H X
    theta: float  # Look direction in radians
    gain: float  # Calibration factor applied
    weights_used: np.ndarray  # Unit-norm weights
    beam_power: float  # Output power of the raw output

    @property
    def theta_deg(self) -> float:
        """Look direction in degrees."""
        return float(np.degrees(self.theta))


class Beamformer:
    """
    Conventional delay-and-sum beamformer for a uniform linear array.

    The weights depend only on the geometry and the look direction,
    never on the data.

    Example:
        geometry = ArrayGeometry(num_elements=8, spacing_ratio=0.5)
        beamformer = Beamformer(geometry, theta=np.radians(20))

        result = beamformer.beamform(X, gain=2 / np.sqrt(8))
        powers = beamformer.power_spectrum(X)
        assert powers.is_consistent()
    """

    def __init__(self, geometry: ArrayGeometry, theta: float = 0.0) -> None:
        """
        Initialize beamformer.

        Args:
            geometry: Array geometry
            theta: Look direction in radians (0 = broadside)
        """
        self._geometry = geometry
        self._theta = theta

    @property
    def geometry(self) -> ArrayGeometry:
        """Get array geometry."""
        return self._geometry

    @property
    def num_elements(self) -> int:
        """Get number of sensors."""
        return self._geometry.num_elements

    @property
    def theta(self) -> float:
        """Get look direction in radians."""
        return self._theta

    @theta.setter
    def theta(self, value: float) -> None:
        """Re-steer the beamformer."""
        self._theta = value

    @property
    def steering_vector(self) -> np.ndarray:
        """Steering vector for the current look direction."""
        return self._geometry.steering_vector(self._theta)

    @property
    def weights(self) -> np.ndarray:
        """Unit-norm weights for the current look direction."""
        return compute_weights(self.steering_vector)

    def beamform(self, observations: np.ndarray, gain: float = 1.0) -> BeamformerOutput:
        """
        Apply the beamformer to an observation matrix.

        Args:
            observations: Observation matrix X of shape (M, N)
            gain: Amplitude calibration factor for the output

        Returns:
            BeamformerOutput with calibrated and raw outputs
        """
        weights = self.weights
        raw = apply_weights(weights, observations)
        output = gain * raw

        result = BeamformerOutput(
            output_signal=output,
            raw_output=raw,
            theta=self._theta,
            gain=gain,
            weights_used=weights,
            beam_power=output_power(raw),
        )
        logger.debug(
            f"Beamformed {self.num_elements} sensors toward {result.theta_deg:.1f} deg, "
            f"power {result.beam_power:.4g}"
        )
        return result

    def power_spectrum(
        self,
        observations: np.ndarray,
        covariance: Optional[np.ndarray] = None,
    ) -> PowerEstimates:
        """
        Compute the three spatial power estimates for the look direction.

        Args:
            observations: Observation matrix X of shape (M, N)
            covariance: Precomputed Rx, estimated from X if omitted

        Returns:
            PowerEstimates holding all three formulations
        """
        if covariance is None:
            covariance = estimate_covariance(observations)

        steering = self.steering_vector
        weights = compute_weights(steering)
        estimates = PowerEstimates(
            covariance_based=covariance_power(steering, covariance),
            weight_based=weight_power(weights, covariance),
            output_based=output_power(apply_weights(weights, observations)),
        )
        if not estimates.is_consistent(rtol=1e-6):
            logger.warning(
                f"Power estimates disagree (relative error "
                f"{estimates.max_relative_error():.2e})"
            )
        return estimates


def calibration_gain(num_elements: int) -> float:
    """
    Reference output gain 2/sqrt(M).

    Scales w^H X to twice the weighted sensor average. A real tone off
    broadside splits into two complex exponentials and only one of them
    adds coherently across the weights, so this gain restores its
    amplitude.
    """
    if num_elements < 1:
        raise InvalidGeometry(
            f"calibration gain undefined for {num_elements} sensors",
            stage="output",
            parameter="num_elements",
        )
    return 2.0 / np.sqrt(num_elements)
