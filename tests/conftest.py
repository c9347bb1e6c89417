"""
Pytest fixtures for spectrascan tests.
"""
import numpy as np
import pytest

from spectrascan import RawSignal, Spectrum, write_wav


@pytest.fixture
def sample_rate():
    """Sample rate for synthetic signals."""
    return 8000


@pytest.fixture
def make_wav(tmp_path):
    """Factory that writes samples to a mono WAV file in a temp dir."""

    def make(name, samples, rate=8000, width=2):
        path = tmp_path / name
        write_wav(path, RawSignal(np.asarray(samples), rate), width)
        return path

    return make


@pytest.fixture
def spectrum():
    """Small spectrum with a non-ASCII label."""
    return Spectrum(
        np.array([0.0, 250.0, 500.0, 750.0]),
        np.array([1.5, 0.25, 8.0, 3.0]),
        'mic 1 ♪')
