"""
Sensor Array Module.

Provides uniform linear array processing:
- Array geometry and steering vectors
- Spatial covariance estimation
- Delay-and-sum beamforming and spatial power estimation
- Beam pattern and power-vs-angle scans

Example:
    from ula_beamformer.sensor_array import (
        ArrayGeometry,
        Beamformer,
        beam_pattern,
        power_scan,
    )

    geometry = ArrayGeometry(num_elements=8, spacing_ratio=0.5)
    beamformer = Beamformer(geometry, theta=0.0)

    result = beamformer.beamform(X)
    pattern = beam_pattern(beamformer.steering_vector, geometry)
    scan = power_scan(X, geometry)
"""

from .array_config import (
    GRATING_LOBE_LIMIT,
    SPEED_OF_SOUND,
    ArrayGeometry,
    rayleigh_bandwidth,
    speed_of_sound,
    steering_vector,
)
from .beamformer import (
    Beamformer,
    BeamformerOutput,
    PowerEstimates,
    apply_weights,
    calibration_gain,
    compute_weights,
    covariance_power,
    estimate_covariance,
    output_power,
    weight_power,
)
from .pattern import (
    DEFAULT_PATTERN_POINTS,
    DEFAULT_SCAN_POINTS,
    BeamPattern,
    PowerScan,
    angle_grid,
    beam_pattern,
    power_scan,
)

__all__ = [
    # Constants
    "SPEED_OF_SOUND",
    "GRATING_LOBE_LIMIT",
    "DEFAULT_PATTERN_POINTS",
    "DEFAULT_SCAN_POINTS",
    # Geometry
    "ArrayGeometry",
    "steering_vector",
    "rayleigh_bandwidth",
    "speed_of_sound",
    # Beamformer
    "Beamformer",
    "BeamformerOutput",
    "PowerEstimates",
    "estimate_covariance",
    "compute_weights",
    "apply_weights",
    "calibration_gain",
    "covariance_power",
    "weight_power",
    "output_power",
    # Patterns
    "BeamPattern",
    "PowerScan",
    "angle_grid",
    "beam_pattern",
    "power_scan",
]
