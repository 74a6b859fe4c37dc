"""
Synthesis of sensor observations from far-field sources.

Each source reaches sensor m with the geometric delay m*D/c*sin(doa)
relative to the reference sensor 0. Sources superpose linearly with no
attenuation model.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from ..core.errors import EmptySignal, InvalidGeometry, InvalidSampleRate
from ..sensor_array.array_config import ArrayGeometry
from .delay import delay_in_samples, fractional_delay

logger = logging.getLogger(__name__)


@dataclass
class SourceSignal:
    """A real source waveform tagged with its carrier and direction."""

    samples: np.ndarray  # Real waveform, length N
    frequency: float  # Carrier frequency in Hz
    doa: float  # Direction of arrival in radians (0 = broadside)
    phase: float = 0.0  # Initial phase in radians

    @property
    def doa_deg(self) -> float:
        """Direction of arrival in degrees."""
        return float(np.degrees(self.doa))

    @property
    def num_samples(self) -> int:
        """Signal length N."""
        return len(self.samples)


def random_phases(count: int, rng: np.random.Generator) -> np.ndarray:
    """Draw initial phases uniformly in [0, pi) from the given generator."""
    return rng.random(count) * np.pi


def generate_tone(
    frequency: float,
    doa: float,
    num_samples: int,
    sample_rate: float,
    phase: float = 0.0,
) -> SourceSignal:
    """
    Generate a narrow-band cosine source.

    Args:
        frequency: Carrier frequency in Hz
        doa: Direction of arrival in radians
        num_samples: Signal length N
        sample_rate: Sampling rate in Hz
        phase: Initial phase in radians

    Returns:
        SourceSignal with samples cos(2*pi*f*t + phase)
    """
    if sample_rate <= 0:
        raise InvalidSampleRate(
            f"sample_rate must be positive, got {sample_rate}",
            stage="synthesis",
            parameter="sample_rate",
        )
    if num_samples <= 0:
        raise EmptySignal(
            f"num_samples must be positive, got {num_samples}",
            stage="synthesis",
            parameter="num_samples",
        )

    t = np.arange(num_samples) / sample_rate
    samples = np.cos(2 * np.pi * frequency * t + phase)
    return SourceSignal(samples=samples, frequency=frequency, doa=doa, phase=phase)


def source_matrix(sources: Sequence[SourceSignal]) -> np.ndarray:
    """Stack source waveforms into a (num_sources, N) matrix."""
    if not sources:
        raise EmptySignal("no sources given", stage="synthesis", parameter="sources")

    lengths = {src.num_samples for src in sources}
    if len(lengths) != 1:
        raise EmptySignal(
            f"sources must share one length, got {sorted(lengths)}",
            stage="synthesis",
            parameter="sources",
        )
    if 0 in lengths:
        raise EmptySignal("sources have no samples", stage="synthesis", parameter="sources")

    return np.vstack([np.asarray(src.samples, dtype=np.float64) for src in sources])


def geometric_delays(
    geometry: ArrayGeometry,
    element_spacing: float,
    speed_of_sound: float,
    doa: float,
) -> np.ndarray:
    """Per-sensor arrival delays in seconds for a plane wave from doa."""
    if element_spacing <= 0:
        raise InvalidGeometry(
            f"element_spacing must be positive, got {element_spacing}",
            stage="synthesis",
            parameter="element_spacing",
        )
    if speed_of_sound <= 0:
        raise ValueError(f"speed_of_sound must be positive, got {speed_of_sound}")
    return geometry.element_indices * element_spacing / speed_of_sound * np.sin(doa)


def synthesize_observations(
    sources: Sequence[SourceSignal],
    geometry: ArrayGeometry,
    element_spacing: float,
    speed_of_sound: float,
    sample_rate: float,
    pad: int = 0,
) -> np.ndarray:
    """
    Build the sensor observation matrix.

    Row 0 is the undelayed sum of all sources. Row m is the sum over
    sources of each waveform delayed by m*D/c*sin(doa).

    Args:
        sources: Source signals, all of the same length N
        geometry: Array geometry (M sensors)
        element_spacing: Physical sensor spacing D in meters
        speed_of_sound: Propagation speed c in m/s
        sample_rate: Sampling rate in Hz
        pad: Zero padding passed to the fractional delay

    Returns:
        Real observation matrix X of shape (M, N)
    """
    if sample_rate <= 0:
        raise InvalidSampleRate(
            f"sample_rate must be positive, got {sample_rate}",
            stage="synthesis",
            parameter="sample_rate",
        )

    waveforms = source_matrix(sources)
    num_samples = waveforms.shape[1]
    observations = np.zeros((geometry.num_elements, num_samples), dtype=np.float64)

    for src, waveform in zip(sources, waveforms):
        delays = geometric_delays(geometry, element_spacing, speed_of_sound, src.doa)
        logger.debug(
            f"Source {src.frequency:.1f} Hz at {src.doa_deg:.1f} deg: "
            f"max delay {delay_in_samples(delays[-1], sample_rate):.3f} samples"
        )
        observations[0] += waveform
        for m in range(1, geometry.num_elements):
            observations[m] += fractional_delay(waveform, delays[m], sample_rate, pad=pad)

    return observations


def build_sources(
    frequencies: Sequence[float],
    doas: Sequence[float],
    num_samples: int,
    sample_rate: float,
    phases: Optional[Sequence[float]] = None,
) -> List[SourceSignal]:
    """Generate one cosine source per (frequency, doa) pair."""
    if len(frequencies) != len(doas):
        raise ValueError(
            f"got {len(frequencies)} frequencies but {len(doas)} directions"
        )
    if phases is None:
        phases = [0.0] * len(frequencies)
    if len(phases) != len(frequencies):
        raise ValueError(f"got {len(phases)} phases for {len(frequencies)} sources")

    return [
        generate_tone(freq, doa, num_samples, sample_rate, phase)
        for freq, doa, phase in zip(frequencies, doas, phases)
    ]
