"""
Fractional-sample delay.

Shifts a real signal by an arbitrary time offset using a linear-phase
term in the frequency domain, which is equivalent to band-limited
interpolation over one period of the signal.
"""

import logging

import numpy as np

from ..core.errors import EmptySignal, InvalidSampleRate

logger = logging.getLogger(__name__)


def fractional_delay(
    signal: np.ndarray,
    delay: float,
    sample_rate: float,
    pad: int = 0,
) -> np.ndarray:
    """
    Delay a real signal by a possibly fractional number of samples.

    The spectrum of the signal is multiplied by exp(-j*2*pi*f*delay)
    and transformed back. The operation is circular: samples shifted
    past the end wrap around to the start. Use ``pad`` to append zeros
    before delaying when the wraparound is not acceptable.

    Args:
        signal: Real 1-D input signal
        delay: Delay in seconds (positive delays the signal)
        sample_rate: Sampling rate in Hz
        pad: Number of zeros appended before the delay and trimmed after

    Returns:
        Delayed signal with the same length as the input
    """
    if sample_rate <= 0:
        raise InvalidSampleRate(
            f"sample_rate must be positive, got {sample_rate}",
            stage="fractional_delay",
            parameter="sample_rate",
        )

    signal = np.asarray(signal, dtype=np.float64)
    n = len(signal)
    if n == 0:
        raise EmptySignal(
            "cannot delay an empty signal",
            stage="fractional_delay",
            parameter="signal",
        )

    if delay == 0:
        return signal.copy()

    if pad < 0:
        raise ValueError(f"pad must be non-negative, got {pad}")
    if pad == 0 and abs(delay) * sample_rate >= 1:
        logger.debug(
            f"Delay of {delay * sample_rate:.2f} samples wraps around a "
            f"{n}-sample signal"
        )

    padded = np.concatenate([signal, np.zeros(pad)]) if pad else signal
    freqs = np.fft.fftfreq(len(padded), d=1.0 / sample_rate)

    spectrum = np.fft.fft(padded)
    spectrum *= np.exp(-2j * np.pi * freqs * delay)
    delayed = np.real(np.fft.ifft(spectrum))

    return delayed[:n]


def delay_in_samples(delay: float, sample_rate: float) -> float:
    """Convert a delay in seconds to (fractional) samples."""
    if sample_rate <= 0:
        raise InvalidSampleRate(
            f"sample_rate must be positive, got {sample_rate}",
            stage="fractional_delay",
            parameter="sample_rate",
        )
    return delay * sample_rate
