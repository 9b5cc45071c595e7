# lazymzml/scans/types.py
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from ..core.base_scan import MassScan, MassSpectrumData
from ..core.cv import ControlledVocabularyRecord, find_containing, has_name_containing
from ..decoding.binary import decode_binary_array
from ..exceptions import ArrayLengthMismatchError, MissingArrayError

CvRecords = Tuple[ControlledVocabularyRecord, ...]

MZ_ARRAY = "m/z array"
INTENSITY_ARRAY = "intensity array"
TIME_ARRAY = "time array"


@dataclass(frozen=True)
class AcquisitionEntry:
    """One ``<scan>`` of a spectrum's scan list."""

    cv_records: CvRecords = ()


@dataclass(frozen=True)
class Precursor:
    """Ion selection that produced a tandem spectrum."""

    spectrum_ref: Optional[str]
    isolation_window: CvRecords = ()
    selected_ions: Tuple[CvRecords, ...] = ()

    def selected_ion_mz(self) -> Optional[float]:
        """Return the m/z of the first selected ion, if declared."""
        for ion in self.selected_ions:
            record = find_containing(ion, "selected ion m/z")
            if record is not None:
                return record.as_float()
        return None


@dataclass(frozen=True)
class BinaryArray:
    """An encoded ``<binaryDataArray>`` as found in the file."""

    encoded_length: Optional[int]
    cv_records: CvRecords
    base64_text: str
    array_length: Optional[int] = None

    def has_kind(self, kind: str) -> bool:
        return has_name_containing(self.cv_records, kind)

    def decode(
        self, element_id: Optional[str] = None, array_kind: Optional[str] = None
    ) -> NDArray[np.float64]:
        return decode_binary_array(self, element_id=element_id, array_kind=array_kind)


def find_binary_array(
    arrays: Sequence[BinaryArray], kind: str
) -> Optional[BinaryArray]:
    """Return the first array carrying a cv record whose name contains ``kind``."""
    for array in arrays:
        if array.has_kind(kind):
            return array
    return None


def decode_array_pair(
    arrays: Sequence[BinaryArray],
    first_kind: str,
    second_kind: str,
    element_id: str,
    default_length: Optional[int],
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Decode two arrays that must have the same length.

    The expected length is the array's own ``arrayLength`` if present,
    otherwise ``default_length``.
    """
    decoded = []
    for kind in (first_kind, second_kind):
        array = find_binary_array(arrays, kind)
        if array is None:
            raise MissingArrayError(
                f"No binary array tagged {kind!r}",
                element_id=element_id,
                array_kind=kind,
            )
        values = array.decode(element_id=element_id, array_kind=kind)
        expected = (
            array.array_length if array.array_length is not None else default_length
        )
        if expected is not None and len(values) != expected:
            raise ArrayLengthMismatchError(
                f"Decoded {len(values)} values, expected {expected}",
                element_id=element_id,
                array_kind=kind,
            )
        decoded.append(values)

    first, second = decoded
    if len(first) != len(second):
        raise ArrayLengthMismatchError(
            f"{first_kind} has {len(first)} values but {second_kind} "
            f"has {len(second)}",
            element_id=element_id,
        )
    return first, second


@dataclass(frozen=True)
class ScanMetadata(MassScan):
    """Everything known about a spectrum without touching its binary arrays."""

    index: int
    id: str
    default_array_length: int
    cv_records: CvRecords = ()
    precursors: Optional[Tuple[Precursor, ...]] = None
    acquisition_entries: Tuple[AcquisitionEntry, ...] = ()

    def cvs(self) -> CvRecords:
        return self.cv_records

    def acquisition_cvs(self) -> Tuple[CvRecords, ...]:
        return tuple(entry.cv_records for entry in self.acquisition_entries)


@dataclass(frozen=True)
class ScanData(MassScan, MassSpectrumData):
    """A spectrum with its binary arrays, built per fetch."""

    metadata: ScanMetadata
    binary_arrays: Tuple[BinaryArray, ...] = field(default=())

    @property
    def index(self) -> int:
        return self.metadata.index

    @property
    def id(self) -> str:
        return self.metadata.id

    @property
    def default_array_length(self) -> int:
        return self.metadata.default_array_length

    @property
    def precursors(self) -> Optional[Tuple[Precursor, ...]]:
        return self.metadata.precursors

    @property
    def acquisition_entries(self) -> Tuple[AcquisitionEntry, ...]:
        return self.metadata.acquisition_entries

    def cvs(self) -> CvRecords:
        return self.metadata.cvs()

    def acquisition_cvs(self) -> Tuple[CvRecords, ...]:
        return self.metadata.acquisition_cvs()

    def arrays(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        return decode_array_pair(
            self.binary_arrays,
            MZ_ARRAY,
            INTENSITY_ARRAY,
            element_id=self.id,
            default_length=self.default_array_length,
        )


@dataclass(frozen=True)
class ChromatogramData:
    """A chromatogram with its binary arrays, built per fetch."""

    index: int
    id: str
    default_array_length: int
    cv_records: CvRecords = ()
    binary_arrays: Tuple[BinaryArray, ...] = ()

    def arrays(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Decode and return the time and intensity arrays."""
        return decode_array_pair(
            self.binary_arrays,
            TIME_ARRAY,
            INTENSITY_ARRAY,
            element_id=self.id,
            default_length=self.default_array_length,
        )


@dataclass(frozen=True)
class SoftwareInfo:
    id: str
    version: Optional[str] = None


@dataclass(frozen=True)
class ChromatogramInfo:
    id: str
    index: int
