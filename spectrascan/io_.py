import dataclasses
import logging
import struct
import time
import wave
from enum import Enum
from pathlib import Path
from typing import List, NamedTuple, Tuple

import numpy as np

from spectrascan.analyzer import Spectrum, SpectrumError, analyze

log = logging.getLogger('spectrascan')


class DecodeError(SpectrumError):
    """The file can't be read or its container is malformed."""


class UnsupportedFormat(SpectrumError):
    """The file extension is not one of the known input formats."""


class CorruptRecord(SpectrumError):
    """The bytes don't form a valid spectrum record."""


class RawSignal(NamedTuple):
    samples: np.ndarray
    rate: int


Failures = List[Tuple[Path, SpectrumError]]


class InputKind(Enum):
    """Kind of input file, determined by its extension."""

    AUDIO = '.wav'
    CACHED_SPECTRUM = '.f'

    @classmethod
    def of(cls, path) -> 'InputKind':
        suffix = Path(path).suffix.lower()
        try:
            return cls(suffix)
        except ValueError:
            raise UnsupportedFormat(
                f'Unsupported file format: {path}') from None


def read_wav(path) -> RawSignal:
    """
    Read a mono PCM WAV file.

    The samples keep their integer values (converted to float64), they
    are not scaled to a fixed range. A trailing incomplete frame is
    skipped.
    """
    if InputKind.of(path) is not InputKind.AUDIO:
        raise UnsupportedFormat(f'Not a WAV file: {path}')
    try:
        with wave.open(str(path), 'rb') as wav:
            ch, width, rate, n, _, _ = wav.getparams()
            frames = wav.readframes(n)
    except (OSError, EOFError, wave.Error) as exc:
        raise DecodeError(f'Can not read {path}: {exc}') from exc
    if ch != 1:
        raise DecodeError(f'Expected mono, got {ch} channels: {path}')
    if rate <= 0:
        raise DecodeError(f'Invalid sample rate {rate}: {path}')
    if width not in [1, 2, 3, 4]:
        raise DecodeError(f'Invalid sample width {width}: {path}')

    excess = len(frames) % width
    if excess:
        log.debug('Skipping %d bytes of incomplete frame in %s',
                  excess, path)
        frames = frames[:-excess]
    if width == 4:
        buff = np.frombuffer(frames, '<i4')
    elif width == 3:
        buff = np.frombuffer(frames, np.uint8)
        uints = buff[0::3].astype(np.uint32) << 8 \
            | buff[1::3].astype(np.uint32) << 16 \
            | buff[2::3].astype(np.uint32) << 24
        buff = uints.view(np.int32) >> 8
    elif width == 2:
        buff = np.frombuffer(frames, '<i2')
    else:
        # 8-bit WAV is unsigned.
        buff = np.frombuffer(frames, np.uint8).astype(np.int16) - 128
    return RawSignal(buff.astype(np.float64), rate)


def write_wav(path, signal: RawSignal, width: int = 2):
    """
    Write a mono signal to a PCM WAV file.

    Params:
      path: Filename of WAV file.
      signal: Samples in integer units of the given width; they are
        rounded and clipped to the range of the width.
      width: Sample width in bytes.
    """
    if width not in [1, 2, 3, 4]:
        raise ValueError(f'Invalid sample width: {width}')
    samples, rate = signal
    bits = 8 * width
    data = np.clip(
        np.rint(np.asarray(samples, np.float64)),
        -2 ** (bits - 1), 2 ** (bits - 1) - 1).astype(np.int32)
    if width == 4:
        arr = data.astype('<i4')
    elif width == 3:
        # Drop every 4th (most significant) byte.
        arr = data.astype('<i4').view(np.uint8).reshape(-1, 4)[:, :3]
    elif width == 2:
        arr = data.astype('<i2')
    else:
        arr = (data + 128).astype(np.uint8)
    with wave.open(str(path), 'wb') as wav:
        wav.setnchannels(1)
        wav.setsampwidth(width)
        wav.setframerate(rate)
        wav.writeframes(arr.tobytes())


_LEN = struct.Struct('<Q')


def pack_spectrum(spectrum: Spectrum) -> bytes:
    """
    Encode spectrum as a binary record of three length-prefixed fields:
    float32 frequencies, float32 magnitudes and the UTF-8 label.
    Lengths are unsigned 64-bit, everything is little-endian.
    """
    label = spectrum.label.encode('utf-8')
    parts = []
    for arr in [spectrum.frequencies, spectrum.magnitudes]:
        parts += [_LEN.pack(arr.size), arr.astype('<f4').tobytes()]
    parts += [_LEN.pack(len(label)), label]
    return b''.join(parts)


def unpack_spectrum(data: bytes) -> Spectrum:
    """Decode a record made by ``pack_spectrum``."""
    buff = bytes(data)
    pos = 0

    def take(size: int) -> bytes:
        nonlocal pos
        if size > len(buff) - pos:
            raise CorruptRecord(
                f'Truncated record: {size} bytes needed at offset {pos}, '
                f'{len(buff) - pos} available')
        chunk = buff[pos:pos + size]
        pos += size
        return chunk

    def floats() -> bytes:
        size, = _LEN.unpack(take(_LEN.size))
        return take(size * 4)

    freqs = floats()
    mags = floats()
    size, = _LEN.unpack(take(_LEN.size))
    label = take(size)
    if pos != len(buff):
        raise CorruptRecord(f'{len(buff) - pos} trailing bytes in record')
    try:
        return Spectrum(
            np.frombuffer(freqs, '<f4'),
            np.frombuffer(mags, '<f4'),
            label.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as exc:
        raise CorruptRecord(f'Invalid record: {exc}') from exc


def read_spectrum(path) -> Spectrum:
    """Read a spectrum record from a ``.f`` file."""
    if InputKind.of(path) is not InputKind.CACHED_SPECTRUM:
        raise UnsupportedFormat(f'Not a spectrum file: {path}')
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as exc:
        raise DecodeError(f'Can not read {path}: {exc}') from exc
    return unpack_spectrum(data)


def write_spectrum(path, spectrum: Spectrum):
    with open(path, 'wb') as f:
        f.write(pack_spectrum(spectrum))


def _load_audio(path) -> Spectrum:
    return analyze(read_wav(path))


LOADERS = {
    InputKind.AUDIO: _load_audio,
    InputKind.CACHED_SPECTRUM: read_spectrum,
}


def load_spectrum(path) -> Spectrum:
    """
    Load the spectrum of a WAV file or a stored spectrum record.
    The spectrum is labeled with the path.
    """
    kind = InputKind.of(path)
    t0 = time.perf_counter()
    spectrum = LOADERS[kind](path)
    log.debug('Time taken for reading %s: %.3fs',
              path, time.perf_counter() - t0)
    return dataclasses.replace(spectrum, label=str(path))


def scan_folder(
        folder, strict: bool = False) -> Tuple[List[Spectrum], Failures]:
    """
    Load the spectra of all files in the folder, in order of name.
    Subdirectories are ignored.

    Args:
      folder: Directory to scan.
      strict: If True then the first failing file aborts the scan
        by raising its error. Otherwise failing files are skipped
        and returned as a list of (path, error) tuples.
    """
    try:
        paths = sorted(p for p in Path(folder).iterdir() if p.is_file())
    except OSError as exc:
        raise DecodeError(f'Can not list folder {folder}: {exc}') from exc
    spectra = []
    failures: Failures = []
    for path in paths:
        try:
            spectra.append(load_spectrum(path))
        except SpectrumError as exc:
            if strict:
                raise
            log.warning('Skipping %s: %s', path, exc)
            failures.append((path, exc))
    log.info('Loaded %d spectra from %s', len(spectra), folder)
    return spectra, failures
