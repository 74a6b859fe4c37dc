"""
Evaluation module - Separation metrics and end-to-end scenarios.
"""

from .bss_eval import (
    WINDOW_NAMES,
    DecomposedSignal,
    LocalSeparationMetrics,
    SeparationMetrics,
    decompose,
    frame_signal,
    input_sir,
    local_separation_criteria,
    make_window,
    separation_criteria,
)
from .scenario import ScenarioResult, build_scenario_sources, run_scenario

__all__ = [
    # Separation metrics
    "DecomposedSignal",
    "SeparationMetrics",
    "LocalSeparationMetrics",
    "WINDOW_NAMES",
    "decompose",
    "separation_criteria",
    "local_separation_criteria",
    "input_sir",
    "frame_signal",
    "make_window",
    # Scenarios
    "ScenarioResult",
    "build_scenario_sources",
    "run_scenario",
]
