"""
Core module - Configuration and error types.
"""

from .config import (
    SCENARIO_PRESETS,
    LocalEvaluationConfig,
    ScenarioConfig,
    SourceConfig,
    create_reference_scenario,
    create_steered_scenario,
    get_scenario_preset,
    list_scenario_presets,
)
from .errors import (
    BeamformerError,
    ConfigValidationError,
    DegenerateSteeringVector,
    EmptySignal,
    InvalidGeometry,
    InvalidSampleRate,
    NumericalInstability,
    check_finite,
)

__all__ = [
    # Configuration
    "ScenarioConfig",
    "SourceConfig",
    "LocalEvaluationConfig",
    # Presets
    "SCENARIO_PRESETS",
    "create_reference_scenario",
    "create_steered_scenario",
    "get_scenario_preset",
    "list_scenario_presets",
    # Errors
    "ConfigValidationError",
    "BeamformerError",
    "InvalidGeometry",
    "InvalidSampleRate",
    "EmptySignal",
    "DegenerateSteeringVector",
    "NumericalInstability",
    "check_finite",
]
