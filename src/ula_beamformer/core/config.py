"""
Configuration management for beamforming scenarios.

Handles source definitions, array and evaluation settings, and
persistence to JSON.
"""

import copy
import json
import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from .errors import (
    ConfigValidationError,
    EmptySignal,
    InvalidGeometry,
    InvalidSampleRate,
)

logger = logging.getLogger(__name__)

WINDOW_NAMES = ("hann", "hamming", "blackman", "rect")


@dataclass
class SourceConfig:
    """Definition of one narrow-band source."""

    frequency: float = 1000.0  # Carrier frequency in Hz
    doa_deg: float = 0.0  # Direction of arrival in degrees (0 = broadside)
    phase: Optional[float] = None  # Initial phase in radians, None = drawn from seed

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        if self.frequency <= 0:
            raise ConfigValidationError(
                f"source frequency must be positive, got {self.frequency}"
            )
        if not (-90.0 <= self.doa_deg <= 90.0):
            raise ConfigValidationError(
                f"doa_deg must be between -90 and 90 degrees, got {self.doa_deg}"
            )

    @property
    def doa(self) -> float:
        """Direction of arrival in radians."""
        return math.radians(self.doa_deg)


@dataclass
class LocalEvaluationConfig:
    """Frame settings for time-localized separation metrics."""

    window_length: int = 128  # Frame length in samples
    hop: int = 96  # Frame advance in samples
    window: str = "hann"  # "hann", "hamming", "blackman", "rect"

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        if self.window_length < 1:
            raise ConfigValidationError(
                f"window_length must be positive, got {self.window_length}"
            )
        if not (1 <= self.hop <= self.window_length):
            raise ConfigValidationError(
                f"hop must be between 1 and window_length ({self.window_length}), got {self.hop}"
            )
        if self.window not in WINDOW_NAMES:
            raise ConfigValidationError(
                f"window must be one of {WINDOW_NAMES}, got {self.window}"
            )

    @property
    def overlap(self) -> int:
        """Samples shared by consecutive frames."""
        return self.window_length - self.hop


def default_sources() -> List[SourceConfig]:
    """1 kHz tone at 20 deg and 100 Hz tone at broadside."""
    return [
        SourceConfig(frequency=1000.0, doa_deg=20.0),
        SourceConfig(frequency=100.0, doa_deg=0.0),
    ]


@dataclass
class ScenarioConfig:
    """
    Complete configuration for one beamforming evaluation run.

    The element spacing is spacing_ratio wavelengths at
    reference_frequency; the beamformer looks toward the target source
    and steers with the spacing measured in target wavelengths.
    """

    sample_rate: float = 44100.0  # Sampling rate in Hz
    sources: List[SourceConfig] = field(default_factory=default_sources)
    num_sensors: int = 8  # Number of array sensors M
    num_samples: int = 2048  # Signal duration N in samples
    target_index: int = 0  # Source to separate (0-based)
    speed_of_sound: float = 343.21  # m/s, dry air at 20 degrees C
    spacing_ratio: float = 0.5  # D / lambda at reference_frequency
    reference_frequency: Optional[float] = None  # Hz, None = target source frequency
    output_gain: float = 1.0  # Beamformer output calibration factor
    pattern_points: int = 1000  # Beam pattern grid size
    scan_points: int = 10000  # Power scan grid size
    filter_length: int = 1  # Lags allowed in the separation decomposition
    local: Optional[LocalEvaluationConfig] = None  # None disables local metrics
    seed: Optional[int] = None  # Seed for random source phases

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate all configuration fields."""
        if self.sample_rate <= 0:
            raise InvalidSampleRate(
                f"sample_rate must be positive, got {self.sample_rate}",
                stage="config",
                parameter="sample_rate",
            )
        if self.num_sensors < 2:
            raise InvalidGeometry(
                f"num_sensors must be at least 2, got {self.num_sensors}",
                stage="config",
                parameter="num_sensors",
            )
        if self.spacing_ratio <= 0:
            raise InvalidGeometry(
                f"spacing_ratio must be positive, got {self.spacing_ratio}",
                stage="config",
                parameter="spacing_ratio",
            )
        if self.num_samples <= 0:
            raise EmptySignal(
                f"num_samples must be positive, got {self.num_samples}",
                stage="config",
                parameter="num_samples",
            )
        if not self.sources:
            raise ConfigValidationError("at least one source is required")
        if not (0 <= self.target_index < len(self.sources)):
            raise ConfigValidationError(
                f"target_index must be in [0, {len(self.sources)}), got {self.target_index}"
            )
        if self.speed_of_sound <= 0:
            raise ConfigValidationError(
                f"speed_of_sound must be positive, got {self.speed_of_sound}"
            )
        if self.reference_frequency is not None and self.reference_frequency <= 0:
            raise ConfigValidationError(
                f"reference_frequency must be positive, got {self.reference_frequency}"
            )
        if self.pattern_points < 2 or self.scan_points < 2:
            raise ConfigValidationError("angle grids need at least 2 points")
        if not (1 <= self.filter_length <= self.num_samples):
            raise ConfigValidationError(
                f"filter_length must be in [1, {self.num_samples}], got {self.filter_length}"
            )

    @property
    def target(self) -> SourceConfig:
        """Target source definition."""
        return self.sources[self.target_index]

    @property
    def wavelength(self) -> float:
        """Evaluation wavelength in meters."""
        frequency = self.reference_frequency or self.target.frequency
        return self.speed_of_sound / frequency

    @property
    def element_spacing(self) -> float:
        """Physical sensor spacing D in meters."""
        return self.spacing_ratio * self.wavelength

    @property
    def target_wavelength(self) -> float:
        """Wavelength of the target source in meters."""
        return self.speed_of_sound / self.target.frequency

    @property
    def target_spacing_ratio(self) -> float:
        """Element spacing in target wavelengths, D / lambda_target."""
        return self.element_spacing / self.target_wavelength

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScenarioConfig":
        """Create configuration from dictionary."""
        data = dict(data)
        if "sources" in data:
            data["sources"] = [SourceConfig(**src) for src in data["sources"]]
        if data.get("local") is not None:
            data["local"] = LocalEvaluationConfig(**data["local"])
        return cls(**data)

    def save(self, path: str) -> bool:
        """Save configuration to JSON file.

        Args:
            path: File path to save configuration to

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            with open(path, "w") as f:
                json.dump(self.to_dict(), f, indent=2)
            logger.info(f"Scenario configuration saved to {path}")
            return True
        except (OSError, IOError) as e:
            logger.error(f"Failed to save scenario configuration to {path}: {e}")
            return False
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize scenario configuration: {e}")
            return False

    @classmethod
    def load(cls, path: str) -> Optional["ScenarioConfig"]:
        """Load configuration from JSON file.

        Args:
            path: File path to load configuration from

        Returns:
            ScenarioConfig instance or None if loading failed
        """
        try:
            with open(path, "r") as f:
                data = json.load(f)
            config = cls.from_dict(data)
            logger.info(f"Scenario configuration loaded from {path}")
            return config
        except FileNotFoundError:
            logger.warning(f"Scenario configuration file not found: {path}")
            return None
        except (OSError, IOError) as e:
            logger.error(f"Failed to read scenario configuration from {path}: {e}")
            return None
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in scenario configuration file {path}: {e}")
            return None
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Invalid scenario configuration format in {path}: {e}")
            return None


# Preset scenarios
def create_reference_scenario(seed: Optional[int] = 0) -> ScenarioConfig:
    """
    Two tones at 1 kHz / 20 deg and 100 Hz / 0 deg on an 8-sensor
    half-wavelength array, separating the broadside source.
    """
    num_sensors = 8
    return ScenarioConfig(
        sample_rate=44100.0,
        sources=default_sources(),
        num_sensors=num_sensors,
        num_samples=2048,
        target_index=1,
        speed_of_sound=343.21,
        spacing_ratio=0.5,
        reference_frequency=1000.0,
        output_gain=2.0 / math.sqrt(num_sensors),
        local=LocalEvaluationConfig(window_length=128, hop=96, window="hann"),
        seed=seed,
    )


def create_steered_scenario(seed: Optional[int] = 0) -> ScenarioConfig:
    """Same sources as the reference scenario, separating the 20 deg source."""
    config = create_reference_scenario(seed)
    config.target_index = 0
    return config


SCENARIO_PRESETS: Dict[str, ScenarioConfig] = {
    "reference": create_reference_scenario(),
    "steered": create_steered_scenario(),
}


def get_scenario_preset(name: str) -> Optional[ScenarioConfig]:
    """Get a copy of a preset scenario by name."""
    preset = SCENARIO_PRESETS.get(name)
    return copy.deepcopy(preset) if preset is not None else None


def list_scenario_presets() -> List[str]:
    """List available preset names."""
    return list(SCENARIO_PRESETS.keys())
