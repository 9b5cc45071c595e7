# lazymzml/core/base_reader.py
from abc import ABC, abstractmethod
from typing import Iterator, NamedTuple, Optional

from ..exceptions import LazyMzMLError
from ..scans.types import ScanData, ScanMetadata


class FetchResult(NamedTuple):
    """Outcome of fetching one spectrum: either ``data`` or ``error`` is set."""

    scan_id: str
    data: Optional[ScanData] = None
    error: Optional[LazyMzMLError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BaseSpectrumReader(ABC):
    """Abstract base class for readers giving per-spectrum access to a file."""

    @abstractmethod
    def iter_metadata(self) -> Iterator[ScanMetadata]:
        """Iterate over spectrum metadata without reading binary arrays."""
        pass

    @abstractmethod
    def fetch(self, scan_id: str) -> ScanData:
        """
        Return the spectrum with id ``scan_id`` including its binary arrays.

        Raises:
            UnknownIdError: If ``scan_id`` is not known to the reader
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Close all open file handles."""
        pass

    def iter_results(self) -> Iterator[FetchResult]:
        """
        Fetch every spectrum in file order, one result per spectrum.

        A failing spectrum produces a result carrying the error; iteration
        always continues with the next spectrum.
        """
        for metadata in self.iter_metadata():
            try:
                yield FetchResult(metadata.id, data=self.fetch(metadata.id))
            except LazyMzMLError as e:
                yield FetchResult(metadata.id, error=e)

    @property
    def n_spectra(self) -> int:
        """
        Return the total number of spectra in the file.

        Returns:
            Total number of spectra
        """
        count = 0
        for _ in self.iter_metadata():
            count += 1
        return count

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
