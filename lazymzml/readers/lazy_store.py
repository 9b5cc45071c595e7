# lazymzml/readers/lazy_store.py
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import (
    Any,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from tqdm import tqdm

from ..core.base_reader import BaseSpectrumReader, FetchResult
from ..exceptions import FormatError, LazyMzMLError, ReadError, UnknownIdError
from ..index.builder import build_offset_maps
from ..scans.types import (
    ChromatogramData,
    ChromatogramInfo,
    ScanData,
    ScanMetadata,
    SoftwareInfo,
)
from .checksum import compute_file_checksum
from .elements import parse_chromatogram_data, parse_scan_data
from .envelope import Envelope, parse_envelope
from .extractor import (
    CHROMATOGRAM_CLOSING_TAG,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_ELEMENT_BYTES,
    SPECTRUM_CLOSING_TAG,
    BoundedElementExtractor,
)

logger = logging.getLogger(__name__)


class LazyMzML(BaseSpectrumReader):
    """
    Lazy reader for indexed mzML files.

    Opening the file runs one pass over the whole document that keeps the
    metadata of every spectrum and the byte-offset index. Binary arrays are
    only read when a spectrum is fetched.

    Each fetch opens its own read-only handle, seeks to the spectrum's offset
    and reads it with a bounded scan for ``</spectrum>``. Fetches share no file
    position and may run concurrently from any number of threads. The handle
    owned by the store is used for the opening pass and kept open until
    ``close()``.
    """

    def __init__(
        self,
        data_path: Union[str, Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_element_bytes: int = DEFAULT_MAX_ELEMENT_BYTES,
        **kwargs: Any,
    ) -> None:
        """
        Open an mzML file.

        Args:
            data_path: Path to the mzML file
            chunk_size: Size of each read while extracting an element
            max_element_bytes: Maximum bytes read for a single element
            **kwargs: Additional arguments

        Raises:
            FormatError: If the document is not well-formed mzML
            IndexMissingError: If an indexed file has no spectrum index
            OSError: If the file cannot be opened
        """
        self.path = Path(data_path)
        self.options = kwargs
        self._spectrum_extractor = BoundedElementExtractor(
            SPECTRUM_CLOSING_TAG, chunk_size=chunk_size, max_bytes=max_element_bytes
        )
        self._chromatogram_extractor = BoundedElementExtractor(
            CHROMATOGRAM_CLOSING_TAG,
            chunk_size=chunk_size,
            max_bytes=max_element_bytes,
        )

        logger.info(f"Opening mzML file {self.path}")
        self._handle = open(self.path, mode="rb")
        try:
            envelope = parse_envelope(self._handle)
            offset_maps = build_offset_maps(
                list(envelope.index_sections), indexed=envelope.indexed
            )
        except Exception:
            self._handle.close()
            raise

        self._envelope: Envelope = envelope
        self._metadata: Tuple[ScanMetadata, ...] = envelope.spectra
        self._by_id = {s.id: s for s in self._metadata}
        self.scan_offsets: Mapping[str, int] = offset_maps.scan_offsets
        self.chromatogram_offsets: Mapping[str, int] = (
            offset_maps.chromatogram_offsets
        )

        missing = [s.id for s in self._metadata if s.id not in self.scan_offsets]
        if missing and self.is_indexed:
            logger.warning(
                f"{len(missing)} spectra have no offset, first: {missing[0]!r}"
            )

        logger.info(
            f"Loaded metadata for {len(self._metadata)} spectra, "
            f"{len(self.scan_offsets)} spectrum offsets, "
            f"{len(self.chromatogram_offsets)} chromatogram offsets"
        )

    @property
    def is_indexed(self) -> bool:
        """Whether the file carried an offset index usable for lazy access."""
        return self._envelope.indexed and bool(self.scan_offsets)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    @property
    def spectrum_count(self) -> Optional[int]:
        """The ``count`` declared on ``<spectrumList>``."""
        return self._envelope.spectrum_count

    @property
    def n_spectra(self) -> int:
        return len(self._metadata)

    @property
    def software(self) -> Tuple[SoftwareInfo, ...]:
        return self._envelope.software

    @property
    def chromatograms(self) -> Tuple[ChromatogramInfo, ...]:
        return self._envelope.chromatograms

    @property
    def index_list_offset(self) -> Optional[int]:
        return self._envelope.index_list_offset

    @property
    def file_checksum(self) -> Optional[str]:
        return self._envelope.file_checksum

    def __len__(self) -> int:
        return len(self._metadata)

    def __contains__(self, scan_id: object) -> bool:
        return scan_id in self.scan_offsets

    def _check_open(self) -> None:
        if self._handle.closed:
            raise ValueError(f"Reader for {self.path} is closed")

    def iter_metadata(self) -> Iterator[ScanMetadata]:
        """Iterate over the metadata of every spectrum in file order."""
        return iter(self._metadata)

    def metadata(self, scan_id: str) -> ScanMetadata:
        """Return the metadata of one spectrum without any I/O."""
        scan = self._by_id.get(scan_id)
        if scan is not None:
            return scan
        raise UnknownIdError("Unknown spectrum id", element_id=scan_id)

    def _read_element(
        self,
        extractor: BoundedElementExtractor,
        offset: int,
        expected_tag: str,
        element_id: str,
    ):
        try:
            with open(self.path, mode="rb") as handle:
                return extractor.extract(handle, offset, expected_tag, element_id)
        except OSError as e:
            raise ReadError(
                f"Cannot read {self.path}: {e}", element_id=element_id, offset=offset
            ) from e

    def fetch(self, scan_id: str) -> ScanData:
        """
        Read one spectrum including its binary arrays.

        Args:
            scan_id: The spectrum's ``id`` attribute

        Returns:
            A new ScanData; results are not cached

        Raises:
            UnknownIdError: If ``scan_id`` has no offset in the index
            BoundaryNotFoundError: If ``</spectrum>`` is not found
            FormatError: If the fragment is malformed or is another spectrum
        """
        self._check_open()
        offset = self.scan_offsets.get(scan_id)
        if offset is None:
            reason = "Unknown spectrum id" if self.is_indexed else "File has no index"
            raise UnknownIdError(reason, element_id=scan_id)

        element = self._read_element(
            self._spectrum_extractor, offset, "spectrum", scan_id
        )
        scan = parse_scan_data(element, self._envelope.param_groups)
        if scan.id != scan_id:
            raise FormatError(
                f"Index points at spectrum {scan.id!r}",
                element_id=scan_id,
                offset=offset,
            )
        return scan

    def fetch_chromatogram(self, chromatogram_id: str) -> ChromatogramData:
        """Read one chromatogram including its binary arrays."""
        self._check_open()
        offset = self.chromatogram_offsets.get(chromatogram_id)
        if offset is None:
            raise UnknownIdError("Unknown chromatogram id", element_id=chromatogram_id)

        element = self._read_element(
            self._chromatogram_extractor, offset, "chromatogram", chromatogram_id
        )
        chromatogram = parse_chromatogram_data(element, self._envelope.param_groups)
        if chromatogram.id != chromatogram_id:
            raise FormatError(
                f"Index points at chromatogram {chromatogram.id!r}",
                element_id=chromatogram_id,
                offset=offset,
            )
        return chromatogram

    def iter_data(
        self, skip_errors: bool = False, progress: bool = False
    ) -> Iterator[ScanData]:
        """
        Fetch every spectrum in file order.

        Each iteration re-reads the file.

        Args:
            skip_errors: Log and skip spectra that cannot be read instead of
                raising
            progress: Show a progress bar

        Yields:
            ScanData for each spectrum
        """
        with tqdm(
            total=len(self._metadata),
            desc="Reading spectra",
            unit="spectrum",
            disable=not progress,
        ) as pbar:
            for result in self.iter_results():
                pbar.update(1)
                if result.ok:
                    yield result.data
                elif skip_errors:
                    logger.warning(
                        f"Error reading spectrum {result.scan_id}: {result.error}"
                    )
                else:
                    raise result.error

    def fetch_many(
        self, scan_ids: Iterable[str], max_workers: Optional[int] = None
    ) -> List[FetchResult]:
        """
        Fetch several spectra concurrently.

        Args:
            scan_ids: Ids to fetch
            max_workers: Thread pool size (None for the executor default)

        Returns:
            One FetchResult per id, in the order the ids were given
        """
        self._check_open()
        ids = list(scan_ids)

        def fetch_one(scan_id: str) -> FetchResult:
            try:
                return FetchResult(scan_id, data=self.fetch(scan_id))
            except LazyMzMLError as e:
                return FetchResult(scan_id, error=e)

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            return list(executor.map(fetch_one, ids))

    def verify_checksum(self) -> bool:
        """
        Compare the stored ``<fileChecksum>`` with the file's SHA-1.

        Raises:
            FormatError: If the file carries no checksum
        """
        self._check_open()
        if self.file_checksum is None:
            raise FormatError(f"{self.path} has no fileChecksum")
        actual = compute_file_checksum(self.path)
        if actual is None:
            raise FormatError(f"{self.path} has no <fileChecksum> tag")
        matches = actual == self.file_checksum.lower()
        if not matches:
            logger.warning(
                f"Checksum mismatch for {self.path}: stored {self.file_checksum}, "
                f"computed {actual}"
            )
        return matches

    def close(self) -> None:
        """Close the file handle owned by the reader."""
        if not self._handle.closed:
            self._handle.close()
            logger.debug(f"Closed {self.path}")


def open_mzml(data_path: Union[str, Path], **kwargs: Any) -> LazyMzML:
    """Open an mzML file for lazy access. See LazyMzML for arguments."""
    return LazyMzML(data_path, **kwargs)
