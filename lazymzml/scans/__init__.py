"""
Data model of spectra and chromatograms.

ScanMetadata is what the opening pass keeps for every spectrum. ScanData
wraps a ScanMetadata together with the binary arrays read on fetch.
"""
from .types import (
    AcquisitionEntry,
    BinaryArray,
    ChromatogramData,
    ChromatogramInfo,
    Precursor,
    ScanData,
    ScanMetadata,
    SoftwareInfo,
)

__all__ = [
    "AcquisitionEntry",
    "BinaryArray",
    "ChromatogramData",
    "ChromatogramInfo",
    "Precursor",
    "ScanData",
    "ScanMetadata",
    "SoftwareInfo",
]
