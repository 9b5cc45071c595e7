# lazymzml/readers/elements.py
"""
Conversion of parsed mzML elements into the package's data model.

Tags are matched by local name, so elements with or without the mzML
namespace are handled alike.
"""
import logging
import re
from typing import Iterator, List, Mapping, Optional, Tuple

from lxml import etree

from ..core.cv import ControlledVocabularyRecord
from ..exceptions import FormatError
from ..index.builder import IndexSection, Offset
from ..scans.types import (
    AcquisitionEntry,
    BinaryArray,
    ChromatogramData,
    CvRecords,
    Precursor,
    ScanData,
    ScanMetadata,
)

logger = logging.getLogger(__name__)

ParamGroups = Mapping[str, CvRecords]

_NO_GROUPS: ParamGroups = {}

_DIGITS = re.compile(r"[0-9]+")


def local_name(element) -> str:
    """Return the tag of ``element`` without its namespace."""
    if not isinstance(element.tag, str):
        return ""
    return etree.QName(element).localname


def iter_children(element, name: str) -> Iterator:
    for child in element:
        if local_name(child) == name:
            yield child


def first_child(element, name: str):
    return next(iter_children(element, name), None)


def int_attribute(
    element,
    name: str,
    element_id: Optional[str] = None,
    required: bool = True,
) -> Optional[int]:
    """Read a non-negative integer attribute."""
    raw = element.get(name)
    if raw is None:
        if required:
            raise FormatError(
                f"<{local_name(element)}> is missing attribute {name!r}",
                element_id=element_id,
            )
        return None
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise FormatError(
            f"Attribute {name!r} of <{local_name(element)}> is not an integer: {raw!r}",
            element_id=element_id,
        ) from e
    if value < 0:
        raise FormatError(
            f"Attribute {name!r} of <{local_name(element)}> is negative: {raw!r}",
            element_id=element_id,
        )
    return value


def parse_cv_param(element) -> ControlledVocabularyRecord:
    return ControlledVocabularyRecord(
        name=element.get("name", ""),
        value=element.get("value", ""),
        unit=element.get("unitName"),
        accession=element.get("accession"),
    )


def cv_records_of(element, groups: ParamGroups = _NO_GROUPS) -> CvRecords:
    """
    Collect the cv records directly attached to ``element``.

    ``referenceableParamGroupRef`` children are expanded in place using
    ``groups``.
    """
    records: List[ControlledVocabularyRecord] = []
    for child in element:
        name = local_name(child)
        if name == "cvParam":
            records.append(parse_cv_param(child))
        elif name == "referenceableParamGroupRef":
            ref = child.get("ref")
            group = groups.get(ref)
            if group is None:
                logger.warning(f"Unknown referenceableParamGroup {ref!r}")
                continue
            records.extend(group)
    return tuple(records)


def parse_param_group(element) -> Tuple[str, CvRecords]:
    group_id = element.get("id")
    if not group_id:
        raise FormatError("<referenceableParamGroup> is missing attribute 'id'")
    return group_id, cv_records_of(element)


def parse_acquisition_entries(
    spectrum, groups: ParamGroups = _NO_GROUPS
) -> Tuple[AcquisitionEntry, ...]:
    scan_list = first_child(spectrum, "scanList")
    if scan_list is None:
        return ()
    return tuple(
        AcquisitionEntry(cv_records=cv_records_of(scan, groups))
        for scan in iter_children(scan_list, "scan")
    )


def parse_precursor(element, groups: ParamGroups = _NO_GROUPS) -> Precursor:
    window = first_child(element, "isolationWindow")
    selected_ions: Tuple[CvRecords, ...] = ()
    ion_list = first_child(element, "selectedIonList")
    if ion_list is not None:
        selected_ions = tuple(
            cv_records_of(ion, groups) for ion in iter_children(ion_list, "selectedIon")
        )
    return Precursor(
        spectrum_ref=element.get("spectrumRef"),
        isolation_window=cv_records_of(window, groups) if window is not None else (),
        selected_ions=selected_ions,
    )


def parse_precursors(
    spectrum, groups: ParamGroups = _NO_GROUPS
) -> Optional[Tuple[Precursor, ...]]:
    precursor_list = first_child(spectrum, "precursorList")
    if precursor_list is None:
        return None
    return tuple(
        parse_precursor(p, groups) for p in iter_children(precursor_list, "precursor")
    )


def parse_binary_arrays(
    element, element_id: str, groups: ParamGroups = _NO_GROUPS
) -> Tuple[BinaryArray, ...]:
    array_list = first_child(element, "binaryDataArrayList")
    if array_list is None:
        return ()

    arrays = []
    for array in iter_children(array_list, "binaryDataArray"):
        binary = first_child(array, "binary")
        text = binary.text if binary is not None and binary.text else ""
        arrays.append(
            BinaryArray(
                encoded_length=int_attribute(
                    array, "encodedLength", element_id, required=False
                ),
                cv_records=cv_records_of(array, groups),
                base64_text=text,
                array_length=int_attribute(
                    array, "arrayLength", element_id, required=False
                ),
            )
        )
    return tuple(arrays)


def parse_scan_metadata(spectrum, groups: ParamGroups = _NO_GROUPS) -> ScanMetadata:
    """Build a ScanMetadata from a ``<spectrum>`` element, ignoring its arrays."""
    scan_id = spectrum.get("id")
    if not scan_id:
        raise FormatError("<spectrum> is missing attribute 'id'")

    return ScanMetadata(
        index=int_attribute(spectrum, "index", scan_id),
        id=scan_id,
        default_array_length=int_attribute(spectrum, "defaultArrayLength", scan_id),
        cv_records=cv_records_of(spectrum, groups),
        precursors=parse_precursors(spectrum, groups),
        acquisition_entries=parse_acquisition_entries(spectrum, groups),
    )


def parse_scan_data(spectrum, groups: ParamGroups = _NO_GROUPS) -> ScanData:
    metadata = parse_scan_metadata(spectrum, groups)
    return ScanData(
        metadata=metadata,
        binary_arrays=parse_binary_arrays(spectrum, metadata.id, groups),
    )


def parse_chromatogram_data(
    chromatogram, groups: ParamGroups = _NO_GROUPS
) -> ChromatogramData:
    chromatogram_id = chromatogram.get("id")
    if not chromatogram_id:
        raise FormatError("<chromatogram> is missing attribute 'id'")

    return ChromatogramData(
        index=int_attribute(chromatogram, "index", chromatogram_id),
        id=chromatogram_id,
        default_array_length=int_attribute(
            chromatogram, "defaultArrayLength", chromatogram_id
        ),
        cv_records=cv_records_of(chromatogram, groups),
        binary_arrays=parse_binary_arrays(chromatogram, chromatogram_id, groups),
    )


def parse_index_section(element) -> IndexSection:
    """Build an IndexSection from an ``<index name="...">`` element."""
    category = element.get("name")
    if not category:
        raise FormatError("<index> is missing attribute 'name'")

    entries = []
    for offset in iter_children(element, "offset"):
        reference_id = offset.get("idRef")
        if reference_id is None:
            raise FormatError(f"<offset> in {category} index is missing 'idRef'")
        text = (offset.text or "").strip()
        if not _DIGITS.fullmatch(text):
            raise FormatError(
                f"Invalid byte offset {text!r} in {category} index",
                element_id=reference_id,
            )
        entries.append(Offset(reference_id=reference_id, byte_offset=int(text)))

    return IndexSection(category=category, entries=tuple(entries))
