# lazymzml/readers/envelope.py
import logging
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Tuple

from lxml import etree

from ..exceptions import FormatError
from ..index.builder import IndexSection
from ..scans.types import ChromatogramInfo, CvRecords, ScanMetadata, SoftwareInfo
from .elements import (
    int_attribute,
    local_name,
    parse_index_section,
    parse_param_group,
    parse_scan_metadata,
)

logger = logging.getLogger(__name__)

INDEXED_ROOT = "indexedmzML"
PLAIN_ROOT = "mzML"


@dataclass
class Envelope:
    """Everything the single eager pass over a file collects."""

    indexed: bool
    spectra: Tuple[ScanMetadata, ...] = ()
    spectrum_count: Optional[int] = None
    index_sections: Tuple[IndexSection, ...] = ()
    param_groups: Dict[str, CvRecords] = field(default_factory=dict)
    software: Tuple[SoftwareInfo, ...] = ()
    chromatograms: Tuple[ChromatogramInfo, ...] = ()
    index_list_offset: Optional[int] = None
    file_checksum: Optional[str] = None


def _release(element) -> None:
    """Free an element that has been converted, with its earlier siblings."""
    element.clear()
    parent = element.getparent()
    if parent is None:
        return
    while element.getprevious() is not None:
        del parent[0]


class _EnvelopeCollector:
    def __init__(self):
        self.root_name: Optional[str] = None
        self.spectrum_count: Optional[int] = None
        self.spectra: List[ScanMetadata] = []
        self.sections: List[IndexSection] = []
        self.groups: Dict[str, CvRecords] = {}
        self.software: List[SoftwareInfo] = []
        self.chromatograms: List[ChromatogramInfo] = []
        self.index_list_offset: Optional[int] = None
        self.file_checksum: Optional[str] = None

    def start(self, element) -> None:
        name = local_name(element)
        if self.root_name is None:
            if name not in (INDEXED_ROOT, PLAIN_ROOT):
                raise FormatError(f"Unexpected root element <{name}>")
            self.root_name = name
        elif name == "spectrumList":
            self.spectrum_count = int_attribute(element, "count", required=False)

    def end(self, element) -> None:
        name = local_name(element)
        parent = element.getparent()
        parent_name = local_name(parent) if parent is not None else ""

        if name == "referenceableParamGroup":
            group_id, records = parse_param_group(element)
            self.groups[group_id] = records
        elif name == "software" and parent_name == "softwareList":
            self.software.append(
                SoftwareInfo(id=element.get("id", ""), version=element.get("version"))
            )
        elif name == "spectrum" and parent_name == "spectrumList":
            self.spectra.append(parse_scan_metadata(element, self.groups))
            _release(element)
        elif name == "chromatogram" and parent_name == "chromatogramList":
            chromatogram_id = element.get("id", "")
            self.chromatograms.append(
                ChromatogramInfo(
                    id=chromatogram_id,
                    index=int_attribute(element, "index", chromatogram_id),
                )
            )
            _release(element)
        elif name == "index" and parent_name in ("indexList", INDEXED_ROOT):
            self.sections.append(parse_index_section(element))
        elif name == "indexListOffset":
            text = (element.text or "").strip()
            try:
                self.index_list_offset = int(text)
            except ValueError as e:
                raise FormatError(f"Invalid indexListOffset {text!r}") from e
        elif name == "fileChecksum":
            self.file_checksum = (element.text or "").strip() or None

    def envelope(self) -> Envelope:
        if self.root_name is None:
            raise FormatError("Document has no root element")

        seen = set()
        for scan in self.spectra:
            if scan.id in seen:
                logger.warning(f"Spectrum id {scan.id!r} occurs more than once")
            seen.add(scan.id)

        if self.spectrum_count is not None and self.spectrum_count != len(
            self.spectra
        ):
            logger.warning(
                f"spectrumList declares {self.spectrum_count} spectra "
                f"but {len(self.spectra)} were found"
            )

        return Envelope(
            indexed=self.root_name == INDEXED_ROOT,
            spectra=tuple(self.spectra),
            spectrum_count=self.spectrum_count,
            index_sections=tuple(self.sections),
            param_groups=self.groups,
            software=tuple(self.software),
            chromatograms=tuple(self.chromatograms),
            index_list_offset=self.index_list_offset,
            file_checksum=self.file_checksum,
        )


def parse_envelope(handle: BinaryIO) -> Envelope:
    """
    Run the single eager pass over an mzML document.

    Spectrum elements are converted to ScanMetadata (binary arrays are not
    kept) and released as soon as they are complete.

    Args:
        handle: Binary file handle positioned at the start of the document

    Returns:
        Envelope with spectra metadata, index sections and header summaries

    Raises:
        FormatError: If the document is not well-formed mzML
    """
    collector = _EnvelopeCollector()
    try:
        for event, element in etree.iterparse(
            handle, events=("start", "end"), huge_tree=True, no_network=True
        ):
            if event == "start":
                collector.start(element)
            else:
                collector.end(element)
    except etree.XMLSyntaxError as e:
        raise FormatError(f"Malformed mzML document: {e}") from e

    return collector.envelope()
