# lazymzml/index/builder.py
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..exceptions import IndexMissingError

logger = logging.getLogger(__name__)

SPECTRUM_INDEX = "spectrum"
CHROMATOGRAM_INDEX = "chromatogram"


@dataclass(frozen=True)
class Offset:
    """Byte offset of the element whose id is ``reference_id``."""

    reference_id: str
    byte_offset: int = field(compare=False)


@dataclass(frozen=True)
class IndexSection:
    """One ``<index name="...">`` element and its offsets in file order."""

    category: str
    entries: Tuple[Offset, ...] = ()


@dataclass(frozen=True)
class OffsetMaps:
    scan_offsets: Mapping[str, int]
    chromatogram_offsets: Mapping[str, int]


IndexInput = Union[Sequence[IndexSection], IndexSection, None]


def _as_sections(index: IndexInput) -> List[IndexSection]:
    if index is None:
        return []
    if isinstance(index, IndexSection):
        return [index]
    return list(index)


def _find_section(
    sections: Iterable[IndexSection], category: str
) -> Optional[IndexSection]:
    for section in sections:
        if section.category == category:
            return section
    return None


def offsets_to_map(section: Optional[IndexSection]) -> Dict[str, int]:
    """
    Turn an index section into an id -> byte offset dictionary.

    When the same id occurs more than once, the entry parsed last wins.
    """
    mapping: Dict[str, int] = {}
    if section is None:
        return mapping
    for entry in section.entries:
        if entry.reference_id in mapping:
            logger.debug(
                f"Duplicate {section.category} offset for {entry.reference_id!r}, "
                f"keeping {entry.byte_offset}"
            )
        mapping[entry.reference_id] = entry.byte_offset
    return mapping


def build_offset_maps(index: IndexInput, indexed: bool = True) -> OffsetMaps:
    """
    Build the spectrum and chromatogram offset maps of a file.

    Args:
        index: A list of index sections, a single bare section, or None
        indexed: Whether the file declares itself indexed (``indexedmzML``)

    Returns:
        OffsetMaps with read-only mappings. Both are empty for a file that
        carries no index. Duplicate ids resolve to the last entry parsed.

    Raises:
        IndexMissingError: If an indexed file has no spectrum index
    """
    sections = _as_sections(index)

    spectrum_section = _find_section(sections, SPECTRUM_INDEX)
    if spectrum_section is None and indexed:
        found = ", ".join(repr(s.category) for s in sections) or "none"
        raise IndexMissingError(
            f"Indexed file has no spectrum index (index sections found: {found})"
        )

    chromatogram_section = _find_section(sections, CHROMATOGRAM_INDEX)
    if chromatogram_section is None and indexed:
        logger.debug("Indexed file has no chromatogram index")

    if not sections:
        logger.warning("File carries no offset index; lazy access is unavailable")

    return OffsetMaps(
        scan_offsets=MappingProxyType(offsets_to_map(spectrum_section)),
        chromatogram_offsets=MappingProxyType(offsets_to_map(chromatogram_section)),
    )
