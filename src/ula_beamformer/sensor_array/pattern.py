"""
Beam pattern and directional power scans.

Both sweeps treat every angle independently, so angles are evaluated
in vectorized batches. Results do not depend on the batch size.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..core.errors import DegenerateSteeringVector, EmptySignal, check_finite
from .array_config import ArrayGeometry
from .beamformer import MIN_STEERING_NORM, validate_observations

logger = logging.getLogger(__name__)

DEFAULT_PATTERN_POINTS = 1000
DEFAULT_SCAN_POINTS = 10000
DEFAULT_BATCH_SIZE = 256


def angle_grid(num_points: int) -> np.ndarray:
    """Uniform DOA grid over [-pi/2, pi/2] in radians."""
    if num_points < 2:
        raise ValueError(f"angle grid needs at least 2 points, got {num_points}")
    return np.linspace(-np.pi / 2, np.pi / 2, num_points)


def _normalize(values: np.ndarray) -> np.ndarray:
    magnitude = np.abs(values)
    peak = np.max(magnitude)
    if peak == 0:
        return magnitude
    return magnitude / peak


@dataclass
class BeamPattern:
    """Array response relative to a fixed look direction."""

    angles: np.ndarray  # DOA grid in radians
    response: np.ndarray  # Complex array factor G(theta)

    def normalized(self) -> np.ndarray:
        """|G(theta)| divided by its maximum."""
        return _normalize(self.response)

    def to_db(self, floor_db: float = -100.0) -> np.ndarray:
        """Normalized power pattern in dB, clipped at floor_db."""
        pattern = self.normalized()
        with np.errstate(divide="ignore"):
            pattern_db = 20 * np.log10(pattern)
        return np.maximum(pattern_db, floor_db)

    @property
    def peak_angle(self) -> float:
        """Angle of the mainlobe peak in radians."""
        return float(self.angles[np.argmax(np.abs(self.response))])

    @property
    def first_null(self) -> float:
        """Angular distance from the peak to the first null on its right."""
        magnitude = np.abs(self.response)
        peak_idx = int(np.argmax(magnitude))

        for i in range(peak_idx + 1, len(magnitude) - 1):
            if magnitude[i] < magnitude[i - 1] and magnitude[i] <= magnitude[i + 1]:
                return float(self.angles[i] - self.angles[peak_idx])

        return float(np.pi / 2)


@dataclass
class PowerScan:
    """Output power versus steering angle."""

    angles: np.ndarray  # DOA grid in radians
    power: np.ndarray  # Output power per angle

    def normalized(self) -> np.ndarray:
        """P(theta) divided by its maximum."""
        return _normalize(self.power)

    @property
    def peak_angle(self) -> float:
        """Steering angle with maximum output power in radians."""
        return float(self.angles[np.argmax(self.power)])

    @property
    def peak_power(self) -> float:
        """Maximum output power."""
        return float(np.max(self.power))


def beam_pattern(
    reference_steering: np.ndarray,
    geometry: ArrayGeometry,
    angles: Optional[np.ndarray] = None,
) -> BeamPattern:
    """
    Compute the beam pattern G(theta) = a_ref^H a(theta) / M.

    Args:
        reference_steering: Steering vector of the look direction
        geometry: Array geometry
        angles: DOA grid in radians, default 1000 points over [-pi/2, pi/2]

    Returns:
        BeamPattern with the complex array factor per angle
    """
    if angles is None:
        angles = angle_grid(DEFAULT_PATTERN_POINTS)
    angles = np.asarray(angles, dtype=np.float64)

    reference_steering = np.asarray(reference_steering, dtype=np.complex128)
    if len(reference_steering) != geometry.num_elements:
        raise ValueError(
            f"reference steering vector has {len(reference_steering)} elements, "
            f"geometry has {geometry.num_elements}"
        )

    steering = geometry.steering_vector(angles)  # (K, M)
    response = (steering @ reference_steering.conj()) / geometry.num_elements

    check_finite(response, stage="beam_pattern", parameter="G")
    return BeamPattern(angles=angles, response=response)


def power_scan(
    observations: np.ndarray,
    geometry: ArrayGeometry,
    angles: Optional[np.ndarray] = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> PowerScan:
    """
    Brute-force output power versus angle.

    For every angle a fresh unit-norm weight vector is derived and the
    output power |Y| |Y|^H / N of w^H X is measured.

    Args:
        observations: Observation matrix X of shape (M, N)
        geometry: Array geometry
        angles: DOA grid in radians, default 10000 points over [-pi/2, pi/2]
        batch_size: Number of angles evaluated per vectorized batch

    Returns:
        PowerScan with output power per angle
    """
    x = validate_observations(observations, stage="power_scan")
    if x.shape[0] != geometry.num_elements:
        raise ValueError(
            f"observations have {x.shape[0]} sensors, geometry has {geometry.num_elements}"
        )
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    if angles is None:
        angles = angle_grid(DEFAULT_SCAN_POINTS)
    angles = np.asarray(angles, dtype=np.float64)
    if len(angles) == 0:
        raise EmptySignal("angle grid is empty", stage="power_scan", parameter="angles")

    num_samples = x.shape[1]
    power = np.empty(len(angles), dtype=np.float64)

    for start in range(0, len(angles), batch_size):
        stop = min(start + batch_size, len(angles))
        steering = geometry.steering_vector(angles[start:stop])  # (B, M)

        norms = np.linalg.norm(steering, axis=1)
        if np.any(norms < MIN_STEERING_NORM):
            raise DegenerateSteeringVector(
                "steering vector norm too small during scan",
                stage="power_scan",
                parameter="angles",
            )
        weights = steering / norms[:, np.newaxis]

        outputs = weights.conj() @ x  # (B, N)
        power[start:stop] = np.sum(np.abs(outputs) ** 2, axis=1) / num_samples

    check_finite(power, stage="power_scan", parameter="P")
    logger.debug(
        f"Power scan over {len(angles)} angles, peak at "
        f"{np.degrees(angles[np.argmax(power)]):.2f} deg"
    )
    return PowerScan(angles=angles, power=power)
