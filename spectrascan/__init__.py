"""Compare the frequency spectra of recorded signals"""

from spectrascan.analyzer import (
    ALIGNMENTS, AlignmentError, EmptyInput, EmptySignal, Spectrum,
    SpectrumError, XY, accumulate, analyze, average, band, tone)
from spectrascan.io_ import (
    CorruptRecord, DecodeError, InputKind, RawSignal, UnsupportedFormat,
    load_spectrum, pack_spectrum, read_spectrum, read_wav, scan_folder,
    unpack_spectrum, write_spectrum, write_wav)
