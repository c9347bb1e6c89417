import logging
from dataclasses import dataclass
from typing import Iterator, NamedTuple, Sequence, Tuple

import numpy as np
from numba import njit

log = logging.getLogger('spectrascan')


class SpectrumError(Exception):
    """Base class of all errors raised by spectrascan."""


class EmptySignal(SpectrumError):
    """A signal without samples can't be transformed."""


class EmptyInput(SpectrumError):
    """There are no spectra to aggregate."""


class AlignmentError(SpectrumError):
    """Spectra don't share the same frequency axis."""


class XY(NamedTuple):
    """XY coordinate data of arrays of the same length."""

    x: np.ndarray
    y: np.ndarray


@dataclass(frozen=True, eq=False)
class Spectrum:
    """
    One-sided magnitude spectrum.

    The arrays are stored as read-only float32 arrays; a spectrum is
    never edited in place but replaced as a whole.
    """

    frequencies: np.ndarray
    magnitudes: np.ndarray
    label: str = ''

    def __post_init__(self):
        freqs = _frozen(self.frequencies)
        mags = _frozen(self.magnitudes)
        if freqs.ndim != 1 or mags.ndim != 1:
            raise ValueError('Spectrum arrays must be one-dimensional')
        if freqs.size != mags.size:
            raise ValueError(
                f'Length mismatch: {freqs.size} frequencies, '
                f'{mags.size} magnitudes')
        if not np.all(np.isfinite(freqs)) or not np.all(np.isfinite(mags)):
            raise ValueError('Spectrum values must be finite')
        if freqs.size and (freqs[0] < 0 or np.any(np.diff(freqs) < 0)):
            raise ValueError('Frequencies must be non-negative and sorted')
        if np.any(mags < 0):
            raise ValueError('Magnitudes must be non-negative')
        object.__setattr__(self, 'frequencies', freqs)
        object.__setattr__(self, 'magnitudes', mags)
        object.__setattr__(self, 'label', str(self.label))

    def __len__(self) -> int:
        return self.frequencies.size

    def __eq__(self, other) -> bool:
        if not isinstance(other, Spectrum):
            return NotImplemented
        return self.label == other.label \
            and np.array_equal(self.frequencies, other.frequencies) \
            and np.array_equal(self.magnitudes, other.magnitudes)

    __hash__ = None

    def points(self) -> Iterator[Tuple[float, float]]:
        """Iterate over the (frequency, magnitude) pairs."""
        return zip(self.frequencies.tolist(), self.magnitudes.tolist())

    def xy(self) -> XY:
        return XY(self.frequencies, self.magnitudes)


def _frozen(a) -> np.ndarray:
    arr = np.array(a, dtype='f')
    arr.flags.writeable = False
    return arr


def analyze(signal, label: str = '') -> Spectrum:
    """
    Calculate the one-sided magnitude spectrum of a real signal.

    For ``N`` samples the first ``N // 2`` bins of the discrete Fourier
    transform are kept, with bin ``i`` at frequency ``i * rate / N``.
    No window is applied.

    Args:
      signal: ``RawSignal`` or any ``(samples, rate)`` pair.
      label: Label for the resulting spectrum.
    """
    samples, rate = signal
    if rate <= 0:
        raise ValueError(f'Invalid sample rate: {rate}')
    samples = np.asarray(samples, dtype=np.float64)
    n = samples.size
    if not n:
        raise EmptySignal('Signal has no samples')
    size = n // 2
    X = np.fft.rfft(samples)[:size]
    freq = np.arange(size) * (rate / n)
    return Spectrum(freq, np.abs(X), label)


ALIGNMENTS = ('strict', 'pad', 'resample')


def average(spectra: Sequence[Spectrum], align: str = 'strict') -> Spectrum:
    """
    Calculate the per-bin average magnitude of the given spectra.

    Args:
      spectra: The spectra to average; must not be empty.
      align: How to deal with spectra that don't share the frequency
        axis of the first spectrum:

        * ``'strict'``: Raise ``AlignmentError``.
        * ``'pad'``: Average on bin index up to the longest spectrum,
          with missing bins contributing nothing while still counting
          in the divisor.
        * ``'resample'``: Interpolate every spectrum onto the frequency
          axis of the first one; each bin is averaged over the spectra
          that cover its frequency.
    """
    if align not in ALIGNMENTS:
        raise ValueError(f'Invalid alignment: {align}')
    spectra = list(spectra)
    if not spectra:
        raise EmptyInput('Need at least one spectrum to average')
    first = spectra[0]

    # First pass: lay all spectra on a common grid, with a mask of the
    # bins that each spectrum covers.
    if align == 'resample':
        freq = first.frequencies
        rows = np.zeros((len(spectra), freq.size))
        covered = np.zeros(rows.shape, dtype=np.bool_)
        for row, mask, s in zip(rows, covered, spectra):
            if len(s):
                mask[:] = (freq >= s.frequencies[0]) \
                    & (freq <= s.frequencies[-1])
                row[mask] = np.interp(
                    freq[mask], s.frequencies, s.magnitudes)
    else:
        if align == 'strict':
            for s in spectra[1:]:
                if len(s) != len(first) or not np.allclose(
                        s.frequencies, first.frequencies):
                    raise AlignmentError(
                        f'Frequency axis of {s.label!r} differs from '
                        f'that of {first.label!r}')
        longest = max(spectra, key=len)
        freq = first.frequencies if len(first) == len(longest) \
            else longest.frequencies
        rows = np.zeros((len(spectra), len(longest)))
        covered = np.zeros(rows.shape, dtype=np.bool_)
        for row, mask, s in zip(rows, covered, spectra):
            row[:len(s)] = s.magnitudes
            mask[:len(s)] = True

    # Second pass: sum and divide.
    sums, counts = accumulate(rows, covered)
    if align == 'resample':
        mags = sums / np.fmax(counts, 1)
    else:
        mags = sums / len(spectra)
    log.info('Averaged %d spectra (%s)', len(spectra), align)
    return Spectrum(freq, mags, 'average')


@njit
def accumulate(
        rows: np.ndarray, covered: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sum the rows of the 2-D array column-wise, using only the entries
    where ``covered`` is True. Return the sums and the number of
    covered entries per column.
    """
    sums = np.zeros(rows.shape[1])
    counts = np.zeros(rows.shape[1])
    for j in range(rows.shape[0]):
        for i in range(rows.shape[1]):
            if covered[j, i]:
                sums[i] += rows[j, i]
                counts[i] += 1
    return sums, counts


def band(spectrum: Spectrum, fmin: float, fmax: float) -> XY:
    """Return the part of the spectrum with ``fmin <= freq <= fmax``."""
    freq, mags = spectrum.xy()
    mask = (freq >= fmin) & (freq <= fmax)
    return XY(freq[mask], mags[mask])


def tone(f: float, n: int, rate: int, ampl: float = 1.0) -> np.ndarray:
    """Generate a sine wave of ``n`` samples."""
    t = np.arange(n) / rate
    sine = ampl * np.sin(2 * np.pi * f * t)
    return sine
