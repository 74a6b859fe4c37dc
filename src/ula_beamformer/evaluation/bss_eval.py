"""
Source separation quality metrics.

Decomposes an estimated source into target, interference and artifact
components by orthogonal projection onto the true sources, then scores
it with the Signal-to-Distortion, Signal-to-Interference and
Signal-to-Artifact ratios (all in dB).

Zero or rounding-level components produce infinite or extreme ratios.
These are reported as flagged boundary values rather than clamped; a 0/0
ratio in the global criteria raises NumericalInstability.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ..core.config import WINDOW_NAMES
from ..core.errors import EmptySignal, NumericalInstability, check_finite

logger = logging.getLogger(__name__)

# Energy ratios beyond +/-200 dB come from zero or rounding-level components
BOUNDARY_ENERGY_RATIO = 1e-20


@dataclass
class DecomposedSignal:
    """Estimate split into target, interference and artifact parts."""

    target: np.ndarray
    interference: np.ndarray
    artifact: np.ndarray

    @property
    def num_samples(self) -> int:
        """Signal length N."""
        return len(self.target)

    def reconstruct(self) -> np.ndarray:
        """Sum of the three components (equals the decomposed estimate)."""
        return self.target + self.interference + self.artifact


@dataclass
class SeparationMetrics:
    """Global SDR/SIR/SAR in dB."""

    sdr: float
    sir: float
    sar: float
    snr: Optional[float] = None
    boundary: List[str] = field(default_factory=list)  # Flagged metric names

    @property
    def has_boundary_values(self) -> bool:
        """True if any metric came from a zero or near-zero energy."""
        return bool(self.boundary)

    def __repr__(self) -> str:
        text = f"SeparationMetrics(SDR={self.sdr:.2f}dB, SIR={self.sir:.2f}dB, SAR={self.sar:.2f}dB"
        if self.snr is not None:
            text += f", SNR={self.snr:.2f}dB"
        return text + ")"


@dataclass
class LocalSeparationMetrics:
    """Frame-wise SDR/SIR/SAR in dB."""

    sdr: np.ndarray
    sir: np.ndarray
    sar: np.ndarray
    frame_starts: np.ndarray  # First sample index of each frame
    frame_length: int
    hop: int
    snr: Optional[np.ndarray] = None
    boundary: Dict[str, np.ndarray] = field(default_factory=dict)  # Flagged frame masks

    @property
    def num_frames(self) -> int:
        """Number of evaluated frames."""
        return len(self.frame_starts)

    @property
    def frame_centers(self) -> np.ndarray:
        """Centre sample index of each frame."""
        return self.frame_starts + self.frame_length / 2

    @property
    def has_boundary_values(self) -> bool:
        """True if any frame produced a flagged metric."""
        return any(mask.any() for mask in self.boundary.values())


def make_window(name: str, length: int) -> np.ndarray:
    """
    Create an analysis window.

    "hann" follows the convention without zero endpoints, so every
    sample of a frame carries weight.

    Args:
        name: One of "hann", "hamming", "blackman", "rect"
        length: Window length in samples

    Returns:
        Window of the given length
    """
    if length < 1:
        raise ValueError(f"window length must be positive, got {length}")

    if name == "hann":
        return np.hanning(length + 2)[1:-1]
    elif name == "hamming":
        return np.hamming(length)
    elif name == "blackman":
        return np.blackman(length)
    elif name == "rect":
        return np.ones(length)
    else:
        raise ValueError(f"window must be one of {WINDOW_NAMES}, got {name!r}")


def _energy_ratio_db(numerator, denominator):
    """10*log10(numerator/denominator) allowing infinite results."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return 10 * np.log10(np.divide(numerator, denominator))


def _near_zero_ratio(numerator, denominator):
    """True where one energy is negligible next to the other."""
    numerator = np.asarray(numerator, dtype=np.float64)
    denominator = np.asarray(denominator, dtype=np.float64)
    larger = np.maximum(numerator, denominator)
    return np.minimum(numerator, denominator) <= BOUNDARY_ENERGY_RATIO * larger


def _lagged_copies(signal: np.ndarray, filter_length: int) -> np.ndarray:
    """Rows are the signal delayed by 0..filter_length-1 samples (zero filled)."""
    n = len(signal)
    copies = np.zeros((filter_length, n), dtype=np.float64)
    for lag in range(filter_length):
        copies[lag, lag:] = signal[: n - lag]
    return copies


def _project(estimate: np.ndarray, basis: np.ndarray) -> np.ndarray:
    """Orthogonal projection of estimate onto the row span of basis."""
    coefficients, *_ = np.linalg.lstsq(basis.T, estimate, rcond=None)
    return basis.T @ coefficients


def decompose(
    estimate: np.ndarray,
    target_index: int,
    sources: np.ndarray,
    filter_length: int = 1,
) -> DecomposedSignal:
    """
    Decompose an estimated source relative to the true sources.

    With filter_length = 1 the target is the best time-invariant gain
    applied to the true target source. Larger filter lengths also allow
    delayed copies (up to filter_length - 1 samples) of every source.

    Args:
        estimate: Estimated source (real part is used), length N
        target_index: Row of ``sources`` holding the target (0-based)
        sources: True sources, shape (num_sources, N)
        filter_length: Number of lags in the projection subspaces

    Returns:
        DecomposedSignal whose components sum to the estimate
    """
    estimate = np.real(np.asarray(estimate)).astype(np.float64)
    sources = np.atleast_2d(np.asarray(sources, dtype=np.float64))

    num_sources, num_samples = sources.shape
    if num_samples == 0 or len(estimate) == 0:
        raise EmptySignal("cannot decompose empty signals", stage="bss_decomp", parameter="N")
    if len(estimate) != num_samples:
        raise ValueError(
            f"estimate has {len(estimate)} samples, sources have {num_samples}"
        )
    if not 0 <= target_index < num_sources:
        raise IndexError(f"target_index {target_index} out of range for {num_sources} sources")
    if filter_length < 1 or filter_length > num_samples:
        raise ValueError(
            f"filter_length must be in [1, {num_samples}], got {filter_length}"
        )
    check_finite(estimate, stage="bss_decomp", parameter="estimate")
    check_finite(sources, stage="bss_decomp", parameter="sources")

    target_basis = _lagged_copies(sources[target_index], filter_length)
    all_basis = np.vstack([_lagged_copies(src, filter_length) for src in sources])

    s_target = _project(estimate, target_basis)
    projection = _project(estimate, all_basis)

    e_interf = projection - s_target
    e_artif = estimate - projection

    return DecomposedSignal(target=s_target, interference=e_interf, artifact=e_artif)


def separation_criteria(
    target: np.ndarray,
    interference: np.ndarray,
    artifact: np.ndarray,
    noise: Optional[np.ndarray] = None,
) -> SeparationMetrics:
    """
    Compute global SDR, SIR and SAR (and SNR when noise is given).

    Args:
        target: Target component
        interference: Interference component
        artifact: Artifact component
        noise: Optional noise component

    Returns:
        SeparationMetrics with ratios in dB
    """
    target = np.asarray(target, dtype=np.float64)
    interference = np.asarray(interference, dtype=np.float64)
    artifact = np.asarray(artifact, dtype=np.float64)
    if len(target) == 0:
        raise EmptySignal("cannot score empty signals", stage="bss_crit", parameter="N")
    noise_part = np.zeros_like(target) if noise is None else np.asarray(noise, dtype=np.float64)

    distortion = interference + noise_part + artifact
    energies = {
        "sdr": (np.sum(target**2), np.sum(distortion**2)),
        "sir": (np.sum(target**2), np.sum(interference**2)),
        "sar": (np.sum((target + interference + noise_part) ** 2), np.sum(artifact**2)),
    }
    if noise is not None:
        energies["snr"] = (np.sum((target + interference) ** 2), np.sum(noise_part**2))

    metrics = {}
    boundary = []
    for name, (numerator, denominator) in energies.items():
        value = _energy_ratio_db(numerator, denominator)
        if np.isnan(value):
            raise NumericalInstability(
                f"{name.upper()} is undefined (zero energy in numerator and denominator)",
                stage="bss_crit",
                parameter=name,
            )
        if _near_zero_ratio(numerator, denominator):
            boundary.append(name)
            logger.warning(
                f"{name.upper()} is {value:.2f} dB (zero or near-zero energy component)"
            )
        metrics[name] = value

    return SeparationMetrics(
        sdr=float(metrics["sdr"]),
        sir=float(metrics["sir"]),
        sar=float(metrics["sar"]),
        snr=float(metrics["snr"]) if "snr" in metrics else None,
        boundary=boundary,
    )


def input_sir(target_index: int, sources: np.ndarray) -> float:
    """
    SIR of the raw mixture: target source against the sum of all others.

    Args:
        target_index: Row of ``sources`` holding the target (0-based)
        sources: True sources, shape (num_sources, N)

    Returns:
        Input SIR in dB
    """
    sources = np.atleast_2d(np.asarray(sources, dtype=np.float64))
    if not 0 <= target_index < sources.shape[0]:
        raise IndexError(
            f"target_index {target_index} out of range for {sources.shape[0]} sources"
        )
    if sources.shape[1] == 0:
        raise EmptySignal("sources have no samples", stage="bss_crit", parameter="N")

    target = sources[target_index]
    interference = np.sum(sources, axis=0) - target

    target_energy = np.sum(target**2)
    interference_energy = np.sum(interference**2)
    sir = _energy_ratio_db(target_energy, interference_energy)
    if np.isnan(sir):
        raise NumericalInstability(
            "input SIR is undefined (silent sources)", stage="bss_crit", parameter="sir"
        )
    if _near_zero_ratio(target_energy, interference_energy):
        logger.warning(f"Input SIR is {sir:.2f} dB (zero or near-zero energy component)")
    return float(sir)


def frame_signal(signal: np.ndarray, window: np.ndarray, hop: int) -> np.ndarray:
    """
    Split a signal into windowed, overlapping frames.

    Frames of len(window) samples start every ``hop`` samples. The tail
    is zero-padded so the last frame reaches past the end of the signal.

    Returns:
        Array of shape (num_frames, len(window))
    """
    frame_length = len(window)
    if hop < 1 or hop > frame_length:
        raise ValueError(f"hop must be in [1, {frame_length}], got {hop}")

    overlap = frame_length - hop
    num_frames = max(1, int(np.ceil((len(signal) - overlap) / hop)))
    padded_length = num_frames * hop + overlap

    padded = np.zeros(padded_length, dtype=np.float64)
    padded[: len(signal)] = signal

    index = np.arange(num_frames)[:, np.newaxis] * hop + np.arange(frame_length)
    return padded[index] * window


def local_separation_criteria(
    target: np.ndarray,
    interference: np.ndarray,
    artifact: np.ndarray,
    window: np.ndarray,
    hop: int,
    noise: Optional[np.ndarray] = None,
) -> LocalSeparationMetrics:
    """
    Frame-wise SDR, SIR and SAR.

    Every component is cut into the same windowed frames and the energy
    ratios are evaluated per frame. Frames are independent of each other.

    Args:
        target: Target component
        interference: Interference component
        artifact: Artifact component
        window: Analysis window; its length is the frame length
        hop: Frame advance in samples (overlap = len(window) - hop)
        noise: Optional noise component

    Returns:
        LocalSeparationMetrics with one value per frame
    """
    window = np.asarray(window, dtype=np.float64)
    target = np.asarray(target, dtype=np.float64)
    if len(target) == 0:
        raise EmptySignal("cannot score empty signals", stage="bss_crit_local", parameter="N")
    noise_part = np.zeros_like(target) if noise is None else np.asarray(noise, dtype=np.float64)

    t_frames = frame_signal(target, window, hop)
    i_frames = frame_signal(interference, window, hop)
    a_frames = frame_signal(artifact, window, hop)
    n_frames = frame_signal(noise_part, window, hop)

    def energy(frames):
        return np.sum(frames**2, axis=1)

    energies = {
        "sdr": (energy(t_frames), energy(i_frames + n_frames + a_frames)),
        "sir": (energy(t_frames), energy(i_frames)),
        "sar": (energy(t_frames + i_frames + n_frames), energy(a_frames)),
    }
    if noise is not None:
        energies["snr"] = (energy(t_frames + i_frames), energy(n_frames))

    metrics = {}
    boundary = {}
    for name, (numerator, denominator) in energies.items():
        values = _energy_ratio_db(numerator, denominator)
        metrics[name] = values
        boundary[name] = ~np.isfinite(values) | _near_zero_ratio(numerator, denominator)

    flagged = {name: int(mask.sum()) for name, mask in boundary.items() if mask.any()}
    if flagged:
        logger.warning(f"Infinite or near-zero-denominator local metrics in frames: {flagged}")

    num_frames = t_frames.shape[0]
    return LocalSeparationMetrics(
        sdr=metrics["sdr"],
        sir=metrics["sir"],
        sar=metrics["sar"],
        snr=metrics.get("snr"),
        frame_starts=np.arange(num_frames) * hop,
        frame_length=len(window),
        hop=hop,
        boundary=boundary,
    )
