"""
Unit tests for the spectrum model, transform and aggregation.
"""
import dataclasses

import numpy as np
import pytest

from spectrascan import (
    AlignmentError, EmptyInput, EmptySignal, RawSignal, Spectrum, XY,
    accumulate, analyze, average, band, tone)


def flat(freqs, mags, label=''):
    return Spectrum(np.array(freqs, float), np.array(mags, float), label)


class TestSpectrum:
    """Tests for the Spectrum data model."""

    def test_length_mismatch_rejected(self):
        with pytest.raises(ValueError):
            flat([0, 1, 2], [1, 2])

    def test_unsorted_frequencies_rejected(self):
        with pytest.raises(ValueError):
            flat([0, 2, 1], [1, 2, 3])

    def test_negative_frequencies_rejected(self):
        with pytest.raises(ValueError):
            flat([-1, 0], [1, 2])

    @pytest.mark.parametrize('freqs, mags', [
        ([0, np.nan], [1, 2]),
        ([0, np.inf], [1, 2]),
        ([0, 1], [1, np.nan]),
        ([0, 1], [np.inf, 2]),
    ])
    def test_non_finite_values_rejected(self, freqs, mags):
        with pytest.raises(ValueError):
            flat(freqs, mags)

    def test_negative_magnitudes_rejected(self):
        with pytest.raises(ValueError):
            flat([0, 1], [1, -2])

    def test_arrays_are_read_only(self, spectrum):
        with pytest.raises(ValueError):
            spectrum.magnitudes[0] = 0
        with pytest.raises(dataclasses.FrozenInstanceError):
            spectrum.label = 'other'

    def test_stored_as_float32(self, spectrum):
        assert spectrum.frequencies.dtype == np.float32
        assert spectrum.magnitudes.dtype == np.float32

    def test_equality_includes_label(self, spectrum):
        same = flat([0, 250, 500, 750], [1.5, 0.25, 8, 3], 'mic 1 ♪')
        assert spectrum == same
        assert spectrum != dataclasses.replace(same, label='mic 2')

    def test_points_are_index_aligned(self):
        s = flat([0, 10], [1, 2])
        assert list(s.points()) == [(0.0, 1.0), (10.0, 2.0)]
        assert len(s) == 2

    def test_xy(self, spectrum):
        x, y = spectrum.xy()
        assert x is spectrum.frequencies
        assert y is spectrum.magnitudes


class TestAnalyze:
    """Tests for the spectral transform."""

    def test_bin_count_is_half_the_samples(self):
        for n in [1, 2, 7, 8, 9, 100]:
            spectrum = analyze(RawSignal(np.ones(n), 1000))
            assert len(spectrum) == n // 2

    def test_empty_signal(self):
        with pytest.raises(EmptySignal):
            analyze(RawSignal(np.zeros(0), 8000))

    @pytest.mark.parametrize('rate', [0, -8000])
    def test_invalid_rate(self, rate):
        with pytest.raises(ValueError, match='sample rate'):
            analyze(RawSignal(np.ones(8), rate))

    def test_bin_frequencies(self):
        spectrum = analyze(RawSignal(np.arange(8), 8000))
        np.testing.assert_allclose(
            spectrum.frequencies, [0.0, 1000.0, 2000.0, 3000.0])

    def test_constant_signal_is_dc_only(self):
        spectrum = analyze(RawSignal(np.full(8, 3.0), 8000))
        np.testing.assert_allclose(
            spectrum.magnitudes, [24.0, 0, 0, 0], atol=1e-5)

    def test_pure_tone_peaks_at_its_bin(self, sample_rate):
        n = 1024
        f = 10 * sample_rate / n
        spectrum = analyze(RawSignal(tone(f, n, sample_rate), sample_rate))
        mags = spectrum.magnitudes
        assert int(mags.argmax()) == 10
        assert spectrum.frequencies[10] == pytest.approx(f)
        assert mags[10] == pytest.approx(n / 2, rel=1e-4)
        others = np.delete(mags, 10)
        assert others.max() < 1e-3

    def test_magnitudes_keep_sample_units(self):
        loud = analyze(RawSignal(1000 * tone(1000, 8, 8000), 8000))
        soft = analyze(RawSignal(tone(1000, 8, 8000), 8000))
        np.testing.assert_allclose(
            loud.magnitudes, 1000 * soft.magnitudes, rtol=1e-5, atol=1e-3)

    def test_label(self):
        spectrum = analyze(RawSignal(np.ones(4), 4), 'one')
        assert spectrum.label == 'one'


class TestAverage:
    """Tests for spectrum aggregation."""

    def test_empty_input(self):
        with pytest.raises(EmptyInput):
            average([])

    def test_identical_spectra(self, spectrum):
        result = average([spectrum, spectrum, spectrum])
        assert result == dataclasses.replace(spectrum, label='average')

    def test_two_spectra(self):
        a = flat([0, 100], [2, 4], 'a')
        b = flat([0, 100], [4, 8], 'b')
        result = average([a, b])
        np.testing.assert_array_equal(result.magnitudes, [3, 6])
        np.testing.assert_array_equal(result.frequencies, [0, 100])
        assert result.label == 'average'

    def test_single_spectrum(self, spectrum):
        result = average([spectrum])
        np.testing.assert_array_equal(result.magnitudes, spectrum.magnitudes)

    def test_strict_rejects_different_lengths(self):
        a = flat([0, 1], [2, 4])
        b = flat([0, 1, 2], [4, 8, 6])
        with pytest.raises(AlignmentError):
            average([a, b])

    def test_strict_rejects_different_axes(self):
        a = flat([0, 1], [2, 4])
        b = flat([0, 2], [4, 8])
        with pytest.raises(AlignmentError):
            average([a, b], 'strict')

    def test_pad_with_longer_spectrum_later(self):
        a = flat([0, 1], [2, 4])
        b = flat([0, 1, 2], [4, 8, 6])
        result = average([a, b], 'pad')
        np.testing.assert_array_equal(result.magnitudes, [3, 6, 3])
        np.testing.assert_array_equal(result.frequencies, [0, 1, 2])

    def test_pad_with_longer_spectrum_first(self):
        a = flat([0, 1, 2], [2, 4, 6])
        b = flat([0, 1], [4, 8])
        result = average([a, b], 'pad')
        np.testing.assert_array_equal(result.magnitudes, [3, 6, 3])
        np.testing.assert_array_equal(result.frequencies, [0, 1, 2])

    def test_resample_onto_first_axis(self):
        a = flat([0, 10, 20, 30], [1, 1, 1, 1])
        b = flat([0, 20], [3, 3])
        result = average([a, b], 'resample')
        np.testing.assert_array_equal(result.frequencies, [0, 10, 20, 30])
        np.testing.assert_allclose(result.magnitudes, [2, 2, 2, 1])

    def test_resample_interpolates(self):
        a = flat([0, 10, 20], [0, 0, 0])
        b = flat([0, 20], [0, 4])
        result = average([a, b], 'resample')
        np.testing.assert_allclose(result.magnitudes, [0, 1, 2])

    def test_invalid_alignment(self, spectrum):
        with pytest.raises(ValueError):
            average([spectrum], 'nearest')

    def test_non_finite_magnitude_never_averaged(self):
        b = flat([0, 1], [4, 8])
        with pytest.raises(ValueError):
            average([flat([0, 1], [2, np.nan]), b], 'pad')

    def test_inputs_unchanged(self):
        a = flat([0, 1], [2, 4])
        b = flat([0, 1], [4, 8])
        average([a, b])
        np.testing.assert_array_equal(a.magnitudes, [2, 4])
        np.testing.assert_array_equal(b.magnitudes, [4, 8])


def test_accumulate_uses_coverage_mask():
    rows = np.array([[1.0, 0.0, 5.0], [2.0, 3.0, 0.0]])
    covered = np.array([[True, False, True], [True, True, False]])
    sums, counts = accumulate(rows, covered)
    np.testing.assert_array_equal(sums, [3, 3, 5])
    np.testing.assert_array_equal(counts, [2, 1, 1])


def test_accumulate_keeps_covered_nan():
    rows = np.array([[2.0, np.nan], [4.0, 8.0]])
    covered = np.ones(rows.shape, dtype=bool)
    sums, counts = accumulate(rows, covered)
    assert sums[0] == 6
    assert np.isnan(sums[1])
    np.testing.assert_array_equal(counts, [2, 2])


def test_band_is_inclusive():
    s = flat([0, 100, 200, 300], [1, 2, 3, 4])
    result = band(s, 100, 200)
    assert isinstance(result, XY)
    np.testing.assert_array_equal(result.x, [100, 200])
    np.testing.assert_array_equal(result.y, [2, 3])


def test_band_outside_range_is_empty():
    s = flat([0, 100], [1, 2])
    assert band(s, 500, 1000).x.size == 0


def test_tone():
    sine = tone(1000, 8, 8000)
    assert sine.size == 8
    np.testing.assert_allclose(sine[:3], [0, np.sqrt(0.5), 1], atol=1e-12)
