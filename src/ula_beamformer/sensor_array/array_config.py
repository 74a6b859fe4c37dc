"""
Geometry model for uniform linear sensor arrays.

Defines the array geometry, steering vectors, angular resolution
and propagation constants used by the beamformer.
"""

import logging
import math
from dataclasses import dataclass
from typing import Union

import numpy as np

from ..core.errors import InvalidGeometry, NumericalInstability

logger = logging.getLogger(__name__)

# Speed of sound in dry air at 20 degrees C, m/s
SPEED_OF_SOUND = 343.21

# Largest spacing ratio free of grating lobes over the full visible region
GRATING_LOBE_LIMIT = 0.5


def speed_of_sound(temperature_c: float = 20.0) -> float:
    """
    Speed of sound in dry air.

    Args:
        temperature_c: Air temperature in degrees Celsius

    Returns:
        Propagation speed in m/s
    """
    kelvin = 273.15 + temperature_c
    if kelvin <= 0:
        raise ValueError(f"temperature must be above absolute zero, got {temperature_c}")
    return 331.3 * math.sqrt(kelvin / 273.15)


def _validate_geometry(num_elements: int, spacing_ratio: float) -> None:
    if num_elements < 1:
        raise InvalidGeometry(
            f"num_elements must be at least 1, got {num_elements}",
            stage="array_model",
            parameter="num_elements",
        )
    if not spacing_ratio > 0:
        raise InvalidGeometry(
            f"spacing_ratio must be positive, got {spacing_ratio}",
            stage="array_model",
            parameter="spacing_ratio",
        )


def steering_vector(
    num_elements: int,
    spacing_ratio: float,
    theta: Union[float, np.ndarray],
) -> np.ndarray:
    """
    Compute ULA steering vector(s).

    Element m of the steering vector is exp(j*2*pi*d*sin(theta)*m),
    with element 0 as the phase reference.

    Args:
        num_elements: Number of sensors M
        spacing_ratio: Element spacing in wavelengths d = D/lambda
        theta: Direction of arrival in radians (0 = broadside), scalar
            or 1-D array of angles

    Returns:
        Complex array of shape (M,) for a scalar angle or (K, M) for
        K angles
    """
    _validate_geometry(num_elements, spacing_ratio)

    m = np.arange(num_elements)
    if np.ndim(theta) == 0:
        phase = 2 * np.pi * spacing_ratio * np.sin(theta) * m
    else:
        theta = np.asarray(theta, dtype=np.float64)
        phase = 2 * np.pi * spacing_ratio * np.outer(np.sin(theta), m)

    return np.exp(1j * phase)


def rayleigh_bandwidth(num_elements: int, spacing_ratio: float, theta: float) -> float:
    """
    Approximate angular width between the first two nulls of the mainlobe.

    Two sources closer than half of this value cannot be reliably
    separated by the array.

    Args:
        num_elements: Number of sensors M
        spacing_ratio: Element spacing in wavelengths
        theta: Look direction in radians

    Returns:
        Rayleigh bandwidth in radians, 2 / |M * d * cos(theta)|
    """
    _validate_geometry(num_elements, spacing_ratio)

    denominator = abs(num_elements * spacing_ratio * math.cos(theta))
    if denominator < 1e-12:
        raise NumericalInstability(
            f"Rayleigh bandwidth undefined at endfire (theta={theta:.4f} rad)",
            stage="array_model",
            parameter="theta",
        )
    return 2.0 / denominator


@dataclass(frozen=True)
class ArrayGeometry:
    """
    Uniform linear array geometry.

    Spacing is expressed relative to the evaluation wavelength, so the
    same geometry can be reused for any carrier. A spacing ratio above
    0.5 is allowed but flagged, since grating lobes make the DOA
    ambiguous.
    """

    num_elements: int = 8
    spacing_ratio: float = 0.5  # D / lambda

    def __post_init__(self) -> None:
        """Validate geometry and report grating lobe risk."""
        _validate_geometry(self.num_elements, self.spacing_ratio)
        if self.grating_lobe_risk:
            logger.warning(
                f"Element spacing ratio d={self.spacing_ratio:.3f} > {GRATING_LOBE_LIMIT}. "
                "Grating lobes may appear in the beam pattern and create DOA ambiguity."
            )

    @property
    def grating_lobe_risk(self) -> bool:
        """True when spacing exceeds half a wavelength."""
        return self.spacing_ratio > GRATING_LOBE_LIMIT

    @property
    def element_indices(self) -> np.ndarray:
        """Sensor indices 0..M-1."""
        return np.arange(self.num_elements)

    def element_spacing(self, wavelength: float) -> float:
        """Physical element spacing D in meters for a given wavelength."""
        if wavelength <= 0:
            raise InvalidGeometry(
                f"wavelength must be positive, got {wavelength}",
                stage="array_model",
                parameter="wavelength",
            )
        return self.spacing_ratio * wavelength

    def aperture(self, wavelength: float) -> float:
        """Distance between first and last sensor in meters."""
        return (self.num_elements - 1) * self.element_spacing(wavelength)

    def steering_vector(self, theta: Union[float, np.ndarray]) -> np.ndarray:
        """Steering vector(s) for this geometry."""
        return steering_vector(self.num_elements, self.spacing_ratio, theta)

    def rayleigh_bandwidth(self, theta: float = 0.0) -> float:
        """Rayleigh bandwidth in radians at look direction theta."""
        return rayleigh_bandwidth(self.num_elements, self.spacing_ratio, theta)

    def min_separation(self, theta: float = 0.0) -> float:
        """Smallest resolvable DOA separation in radians."""
        return self.rayleigh_bandwidth(theta) / 2

    @classmethod
    def from_physical(
        cls, num_elements: int, element_spacing: float, wavelength: float
    ) -> "ArrayGeometry":
        """Create geometry from physical spacing D and wavelength lambda."""
        if wavelength <= 0:
            raise InvalidGeometry(
                f"wavelength must be positive, got {wavelength}",
                stage="array_model",
                parameter="wavelength",
            )
        return cls(num_elements=num_elements, spacing_ratio=element_spacing / wavelength)
