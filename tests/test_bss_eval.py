"""Tests for separation decomposition and SDR/SIR/SAR metrics."""

import logging

import numpy as np
import pytest

from ula_beamformer.core.errors import EmptySignal, NumericalInstability
from ula_beamformer.evaluation import (
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

N = 1024


def tone(cycles: int, kind: str = "cos") -> np.ndarray:
    """Tone with an integer number of cycles over N samples."""
    n = np.arange(N)
    func = np.cos if kind == "cos" else np.sin
    return func(2 * np.pi * cycles * n / N)


def db(ratio: float) -> float:
    return 10 * np.log10(ratio)


class TestDecompose:
    """Test decompose function."""

    def setup_method(self):
        """Set up test fixtures."""
        # Mutually orthogonal over N samples
        self.s1 = tone(4, "cos")
        self.s2 = tone(7, "sin")
        self.residual = tone(13, "sin")
        self.sources = np.vstack([self.s1, self.s2])

    def test_pure_mixture(self):
        """Test scaled sources split into target and interference."""
        estimate = 2.0 * self.s1 + 0.5 * self.s2
        parts = decompose(estimate, 0, self.sources)

        assert isinstance(parts, DecomposedSignal)
        np.testing.assert_allclose(parts.target, 2.0 * self.s1, atol=1e-10)
        np.testing.assert_allclose(parts.interference, 0.5 * self.s2, atol=1e-10)
        np.testing.assert_allclose(parts.artifact, np.zeros(N), atol=1e-10)

    def test_artifact_is_residual(self):
        """Test energy outside the source span is artifact."""
        estimate = self.s1 + 0.5 * self.s2 + 0.1 * self.residual
        parts = decompose(estimate, 0, self.sources)

        np.testing.assert_allclose(parts.artifact, 0.1 * self.residual, atol=1e-10)

    def test_components_reconstruct_estimate(self):
        """Test target + interference + artifact equals the estimate."""
        rng = np.random.default_rng(7)
        estimate = rng.standard_normal(N)
        parts = decompose(estimate, 1, self.sources)

        np.testing.assert_allclose(parts.reconstruct(), estimate, atol=1e-10)
        assert parts.num_samples == N

    def test_target_index_selects_source(self):
        """Test the target role follows target_index."""
        estimate = 2.0 * self.s1 + 0.5 * self.s2
        parts = decompose(estimate, 1, self.sources)

        np.testing.assert_allclose(parts.target, 0.5 * self.s2, atol=1e-10)
        np.testing.assert_allclose(parts.interference, 2.0 * self.s1, atol=1e-10)

    def test_complex_estimate_uses_real_part(self):
        """Test the real part of a complex estimate is decomposed."""
        estimate = self.s1 + 1j * self.s2
        parts = decompose(estimate, 0, self.sources)
        np.testing.assert_allclose(parts.target, self.s1, atol=1e-10)
        np.testing.assert_allclose(parts.interference, np.zeros(N), atol=1e-10)

    def test_filter_length_captures_delays(self):
        """Test delayed target copies count as target with filter_length > 1."""
        delayed = np.zeros(N)
        delayed[2:] = self.s1[:-2]

        gain_only = decompose(delayed, 0, self.sources, filter_length=1)
        filtered = decompose(delayed, 0, self.sources, filter_length=3)

        np.testing.assert_allclose(filtered.target, delayed, atol=1e-8)
        assert np.sum(filtered.artifact**2) < np.sum(gain_only.artifact**2)

    def test_invalid_target_index(self):
        """Test out of range target index."""
        with pytest.raises(IndexError):
            decompose(self.s1, 2, self.sources)

    def test_length_mismatch(self):
        """Test estimate and sources must have the same length."""
        with pytest.raises(ValueError):
            decompose(self.s1[:-1], 0, self.sources)

    def test_invalid_filter_length(self):
        """Test filter length must be positive."""
        with pytest.raises(ValueError):
            decompose(self.s1, 0, self.sources, filter_length=0)

    def test_empty(self):
        """Test empty signals fail with EmptySignal."""
        with pytest.raises(EmptySignal):
            decompose(np.array([]), 0, np.zeros((2, 0)))

    def test_non_finite_estimate(self):
        """Test NaN in the estimate is surfaced."""
        estimate = self.s1.copy()
        estimate[10] = np.inf
        with pytest.raises(NumericalInstability):
            decompose(estimate, 0, self.sources)


class TestSeparationCriteria:
    """Test global SDR/SIR/SAR."""

    def setup_method(self):
        """Set up test fixtures."""
        self.s1 = tone(4, "cos")
        self.s2 = tone(7, "sin")
        self.residual = tone(13, "sin")

    def test_known_ratios(self):
        """Test ratios for orthogonal components of known energy."""
        target = self.s1
        interference = 0.5 * self.s2
        artifact = 0.1 * self.residual

        metrics = separation_criteria(target, interference, artifact)

        assert isinstance(metrics, SeparationMetrics)
        assert metrics.sir == pytest.approx(db(1 / 0.25))
        assert metrics.sdr == pytest.approx(db(1 / (0.25 + 0.01)))
        assert metrics.sar == pytest.approx(db(1.25 / 0.01))
        assert metrics.snr is None
        assert not metrics.has_boundary_values

    def test_sdr_never_exceeds_sir(self):
        """Test SDR <= SIR for decompositions of arbitrary estimates."""
        rng = np.random.default_rng(11)
        sources = rng.standard_normal((3, N))
        for _ in range(5):
            estimate = sources.T @ rng.standard_normal(3) + rng.standard_normal(N)
            parts = decompose(estimate, 0, sources)
            metrics = separation_criteria(parts.target, parts.interference, parts.artifact)
            assert metrics.sdr <= metrics.sir + 1e-9

    def test_noise_term(self):
        """Test SNR and noise share of SDR and SAR."""
        metrics = separation_criteria(
            self.s1, 0.5 * self.s2, 0.1 * self.residual, noise=0.2 * tone(20, "cos")
        )
        assert metrics.snr == pytest.approx(db(1.25 / 0.04))
        assert metrics.sdr == pytest.approx(db(1 / (0.25 + 0.04 + 0.01)))
        assert metrics.sar == pytest.approx(db(1.29 / 0.01))

    def test_zero_interference_is_flagged(self, caplog):
        """Test infinite SIR is reported as a boundary value."""
        with caplog.at_level(logging.WARNING):
            metrics = separation_criteria(self.s1, np.zeros(N), 0.1 * self.residual)

        assert metrics.sir == np.inf
        assert "sir" in metrics.boundary
        assert metrics.has_boundary_values
        assert "SIR" in caplog.text

    def test_silent_target_is_flagged(self):
        """Test SDR = -inf is flagged rather than raised."""
        metrics = separation_criteria(np.zeros(N), self.s2, self.residual)
        assert metrics.sdr == -np.inf
        assert metrics.sir == -np.inf
        assert "sdr" in metrics.boundary

    def test_negligible_interference_is_flagged(self, caplog):
        """Test a rounding-level denominator is flagged while its value is kept."""
        with caplog.at_level(logging.WARNING):
            metrics = separation_criteria(self.s1, 1e-12 * self.s2, 0.1 * self.residual)

        assert metrics.sir == pytest.approx(240.0)
        assert metrics.boundary == ["sir"]
        assert metrics.sdr == pytest.approx(20.0)
        assert "near-zero" in caplog.text

    def test_exact_scaling_is_flagged(self, caplog):
        """Test a scaled copy of the target flags its leftover-energy ratios."""
        sources = np.vstack([self.s1, self.s2])
        parts = decompose(0.7 * self.s1, 0, sources)

        with caplog.at_level(logging.WARNING):
            metrics = separation_criteria(parts.target, parts.interference, parts.artifact)

        assert metrics.sir > 200.0
        assert set(metrics.boundary) == {"sdr", "sir", "sar"}
        assert "SIR" in caplog.text

    def test_all_silent_is_unstable(self):
        """Test 0/0 ratios raise NumericalInstability."""
        with pytest.raises(NumericalInstability) as exc_info:
            separation_criteria(np.zeros(N), np.zeros(N), np.zeros(N))
        assert exc_info.value.stage == "bss_crit"

    def test_empty(self):
        """Test empty components fail with EmptySignal."""
        with pytest.raises(EmptySignal):
            separation_criteria(np.array([]), np.array([]), np.array([]))


class TestInputSIR:
    """Test input SIR of the raw mixture."""

    def test_equal_energy_sources(self):
        """Test equal-energy orthogonal sources give 0 dB."""
        sources = np.vstack([tone(4, "cos"), tone(7, "sin")])
        assert input_sir(0, sources) == pytest.approx(0.0, abs=1e-9)

    def test_sums_other_sources(self):
        """Test interference is the sum of all non-target sources."""
        sources = np.vstack([tone(4, "cos"), tone(7, "sin"), tone(9, "cos")])
        assert input_sir(0, sources) == pytest.approx(db(1 / 2))

    def test_negligible_interference_warns(self, caplog):
        """Test a rounding-level interferer is logged."""
        sources = np.vstack([tone(4, "cos"), 1e-12 * tone(7, "sin")])
        with caplog.at_level(logging.WARNING):
            sir = input_sir(0, sources)

        assert sir == pytest.approx(240.0)
        assert "Input SIR" in caplog.text

    def test_invalid_target(self):
        """Test out of range target index."""
        with pytest.raises(IndexError):
            input_sir(3, np.ones((2, 8)))

    def test_all_silent(self):
        """Test silent sources raise NumericalInstability."""
        with pytest.raises(NumericalInstability):
            input_sir(0, np.zeros((2, 8)))


class TestWindows:
    """Test analysis windows and framing."""

    def test_hann_has_no_zero_endpoints(self):
        """Test hann window without zero endpoints."""
        window = make_window("hann", 128)
        assert len(window) == 128
        assert np.all(window > 0)
        np.testing.assert_allclose(window, window[::-1])

    def test_hann_values(self):
        """Test hann samples 0.5*(1 - cos(2*pi*k/(L+1)))."""
        k = np.arange(1, 9)
        expected = 0.5 * (1 - np.cos(2 * np.pi * k / 9))
        np.testing.assert_allclose(make_window("hann", 8), expected, atol=1e-12)

    def test_other_windows(self):
        """Test remaining window names."""
        assert len(make_window("hamming", 16)) == 16
        assert len(make_window("blackman", 16)) == 16
        np.testing.assert_array_equal(make_window("rect", 4), np.ones(4))

    def test_unknown_window(self):
        """Test unknown window name is rejected."""
        with pytest.raises(ValueError):
            make_window("kaiser", 16)

    def test_frame_layout(self):
        """Test frame starts every hop samples."""
        x = np.arange(10.0)
        frames = frame_signal(x, np.ones(4), hop=2)

        assert frames.shape == (4, 4)
        np.testing.assert_array_equal(frames[0], [0, 1, 2, 3])
        np.testing.assert_array_equal(frames[-1], [6, 7, 8, 9])

    def test_frame_tail_zero_padded(self):
        """Test the last frame is zero padded past the end."""
        x = np.arange(1.0, 12.0)
        frames = frame_signal(x, np.ones(4), hop=2)

        assert frames.shape == (5, 4)
        np.testing.assert_array_equal(frames[-1], [9, 10, 11, 0])

    def test_frame_applies_window(self):
        """Test each frame is multiplied by the window."""
        window = np.array([0.5, 1.0, 0.5])
        frames = frame_signal(np.ones(6), window, hop=3)
        np.testing.assert_array_equal(frames, np.tile(window, (2, 1)))

    def test_short_signal_single_frame(self):
        """Test signals shorter than a frame give one padded frame."""
        frames = frame_signal(np.ones(3), np.ones(8), hop=4)
        assert frames.shape == (1, 8)

    def test_invalid_hop(self):
        """Test hop must be in [1, frame length]."""
        with pytest.raises(ValueError):
            frame_signal(np.ones(16), np.ones(4), hop=0)
        with pytest.raises(ValueError):
            frame_signal(np.ones(16), np.ones(4), hop=5)


class TestLocalSeparationCriteria:
    """Test frame-wise SDR/SIR/SAR."""

    def test_constant_ratios(self):
        """Test proportional components give the same ratios in every frame."""
        target = tone(4, "cos") + 2.0
        metrics = local_separation_criteria(
            target, 0.1 * target, 0.01 * target, window=make_window("hann", 128), hop=96
        )

        assert isinstance(metrics, LocalSeparationMetrics)
        np.testing.assert_allclose(metrics.sir, db(1 / 0.01))
        np.testing.assert_allclose(metrics.sdr, db(1 / 0.11**2))
        np.testing.assert_allclose(metrics.sar, db(1.1**2 / 0.0001))
        assert not metrics.has_boundary_values

    def test_frame_count(self):
        """Test number of frames for N=1024, window 128, hop 96."""
        target = tone(4, "cos") + 2.0
        metrics = local_separation_criteria(
            target, 0.1 * target, 0.01 * target, window=make_window("hann", 128), hop=96
        )
        # ceil((1024 - 32) / 96) = 11
        assert metrics.num_frames == 11
        np.testing.assert_array_equal(metrics.frame_starts, np.arange(11) * 96)
        assert metrics.frame_centers[0] == pytest.approx(64.0)
        assert metrics.frame_length == 128
        assert metrics.hop == 96

    def test_silent_frames_flagged(self, caplog):
        """Test frames with a silent target are flagged, not raised."""
        target = tone(4, "cos") + 2.0
        target[N // 2 :] = 0.0
        interference = 0.1 * np.ones(N)
        artifact = 0.01 * np.ones(N)

        with caplog.at_level(logging.WARNING):
            metrics = local_separation_criteria(
                target, interference, artifact, window=make_window("rect", 128), hop=128
            )

        assert metrics.num_frames == 8
        assert metrics.has_boundary_values
        assert np.all(metrics.boundary["sdr"][4:])
        assert not np.any(metrics.boundary["sdr"][:4])
        assert np.all(metrics.sdr[4:] == -np.inf)
        assert "local metrics in frames" in caplog.text

    def test_negligible_interference_frames_flagged(self, caplog):
        """Test frames with rounding-level interference are flagged."""
        target = tone(4, "cos") + 2.0

        with caplog.at_level(logging.WARNING):
            metrics = local_separation_criteria(
                target, 1e-12 * target, 0.01 * target, window=make_window("rect", 128), hop=128
            )

        assert np.all(metrics.boundary["sir"])
        assert not np.any(metrics.boundary["sdr"])
        np.testing.assert_allclose(metrics.sir, 240.0)
        assert "local metrics in frames" in caplog.text

    def test_noise_term(self):
        """Test local SNR is produced when noise is given."""
        target = tone(4, "cos") + 2.0
        metrics = local_separation_criteria(
            target,
            0.1 * target,
            0.01 * target,
            window=make_window("rect", 256),
            hop=256,
            noise=0.1 * target,
        )
        np.testing.assert_allclose(metrics.snr, db(1.1**2 / 0.01))

    def test_empty(self):
        """Test empty components fail with EmptySignal."""
        with pytest.raises(EmptySignal):
            local_separation_criteria(
                np.array([]), np.array([]), np.array([]), window=np.ones(4), hop=2
            )
