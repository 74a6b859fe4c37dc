"""
ULA Beamformer - Delay-and-Sum Array Processing

Narrow-band time-domain delay-and-sum beamforming for uniform linear
sensor arrays, with separation quality evaluation against known
sources.

Components:
    - ArrayGeometry: ULA steering vectors, Rayleigh bandwidth, grating lobes
    - fractional_delay: Band-limited sub-sample delay
    - synthesize_observations: Sensor signals from far-field sources
    - Beamformer: Covariance, weights, output and spatial power
    - beam_pattern / power_scan: Angular response and power sweeps
    - decompose / separation_criteria: SDR, SIR and SAR metrics
    - run_scenario: End-to-end evaluation
"""

__version__ = "0.1.0"
__author__ = "ULA Beamformer Team"

from .core.config import LocalEvaluationConfig, ScenarioConfig, SourceConfig
from .core.errors import (
    BeamformerError,
    ConfigValidationError,
    DegenerateSteeringVector,
    EmptySignal,
    InvalidGeometry,
    InvalidSampleRate,
    NumericalInstability,
)
from .evaluation.scenario import ScenarioResult, run_scenario
from .sensor_array.array_config import ArrayGeometry
from .sensor_array.beamformer import Beamformer

__all__ = [
    # Configuration
    "ScenarioConfig",
    "SourceConfig",
    "LocalEvaluationConfig",
    # Errors
    "BeamformerError",
    "ConfigValidationError",
    "InvalidGeometry",
    "InvalidSampleRate",
    "EmptySignal",
    "DegenerateSteeringVector",
    "NumericalInstability",
    # Processing
    "ArrayGeometry",
    "Beamformer",
    "run_scenario",
    "ScenarioResult",
    # Version
    "__version__",
]
