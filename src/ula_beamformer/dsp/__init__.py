"""
DSP module - Fractional delay and array signal synthesis.
"""

from .delay import delay_in_samples, fractional_delay
from .synthesis import (
    SourceSignal,
    build_sources,
    generate_tone,
    geometric_delays,
    random_phases,
    source_matrix,
    synthesize_observations,
)

__all__ = [
    "fractional_delay",
    "delay_in_samples",
    "SourceSignal",
    "generate_tone",
    "build_sources",
    "random_phases",
    "source_matrix",
    "geometric_delays",
    "synthesize_observations",
]
