"""
lazymzml - Lazy random access to indexed mzML files.

Opening a file reads the metadata of every spectrum and the byte-offset
index once. Spectra with their binary peak arrays are then read on demand by
seeking directly to them.
"""

__version__ = "0.1.0"

from .core.base_reader import FetchResult
from .core.base_scan import MassScan, MassSpectrumData
from .core.cv import ControlledVocabularyRecord
from .decoding.binary import decode_binary_array
from .exceptions import (
    ArrayLengthMismatchError,
    Base64DecodeError,
    BoundaryNotFoundError,
    CompressionError,
    DecodeError,
    FormatError,
    IndexMissingError,
    LazyMzMLError,
    MissingArrayError,
    ReadError,
    UnknownIdError,
    UnsupportedPrecisionError,
)
from .index.builder import IndexSection, Offset, build_offset_maps
from .readers.lazy_store import LazyMzML, open_mzml
from .scans.types import (
    AcquisitionEntry,
    BinaryArray,
    ChromatogramData,
    Precursor,
    ScanData,
    ScanMetadata,
)
from .utils.logging_config import setup_logging

__all__ = [
    "__version__",
    "open_mzml",
    "LazyMzML",
    "FetchResult",
    "MassScan",
    "MassSpectrumData",
    "ControlledVocabularyRecord",
    "AcquisitionEntry",
    "BinaryArray",
    "ChromatogramData",
    "Precursor",
    "ScanData",
    "ScanMetadata",
    "IndexSection",
    "Offset",
    "build_offset_maps",
    "decode_binary_array",
    "setup_logging",
    "LazyMzMLError",
    "FormatError",
    "IndexMissingError",
    "UnknownIdError",
    "BoundaryNotFoundError",
    "ReadError",
    "DecodeError",
    "Base64DecodeError",
    "CompressionError",
    "UnsupportedPrecisionError",
    "MissingArrayError",
    "ArrayLengthMismatchError",
]
