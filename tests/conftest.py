"""
Common test fixtures for lazymzml tests.

The fixtures write small synthetic mzML documents whose byte-offset index
and SHA-1 checksum are computed while the document is assembled.
"""

import base64
import hashlib
import logging
import zlib
from types import SimpleNamespace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pytest

MZML_NS = "http://psi.hupo.org/ms/mzml"

# First m/z of each reference spectrum; all exactly representable as float32
REFERENCE_FIRST_MZS = [100.25, 200.5, 300.125, 400.0625, 500.03125]
REFERENCE_FIRST_MZ_SUM = 1500.96875


def encode_values(
    values: Sequence[float], precision: int = 64, compress: bool = False
) -> str:
    """Pack floats little-endian, optionally zlib compress, base64 encode."""
    dtype = "<f4" if precision == 32 else "<f8"
    payload = np.asarray(values, dtype=dtype).tobytes()
    if compress:
        payload = zlib.compress(payload)
    return base64.b64encode(payload).decode("ascii")


def binary_array_xml(
    values: Sequence[float],
    kind: str,
    precision: int = 64,
    compress: bool = False,
    param_group: Optional[str] = None,
    text: Optional[str] = None,
    extra_cv: Sequence[str] = (),
) -> str:
    encoded = text if text is not None else encode_values(values, precision, compress)
    if param_group is not None:
        params = f'<referenceableParamGroupRef ref="{param_group}"/>'
    else:
        compression = "zlib compression" if compress else "no compression"
        params = (
            f'<cvParam cvRef="MS" accession="MS:1000523" name="{precision}-bit float" value=""/>'
            f'<cvParam cvRef="MS" accession="MS:1000574" name="{compression}" value=""/>'
        )
    params += "".join(f'<cvParam cvRef="MS" name="{name}" value=""/>' for name in extra_cv)
    return (
        f'<binaryDataArray encodedLength="{len(encoded)}">'
        f"{params}"
        f'<cvParam cvRef="MS" accession="MS:1000514" name="{kind}" value=""/>'
        f"<binary>{encoded}</binary>"
        f"</binaryDataArray>"
    )


def spectrum_xml(
    index: int,
    scan_id: str,
    mzs: Sequence[float],
    intensities: Sequence[float],
    ms_level: Optional[int] = 1,
    rt: Optional[str] = "0.5",
    rt_unit: Optional[str] = "minute",
    precision: int = 64,
    compress: bool = False,
    precursor_ref: Optional[str] = None,
    param_group: Optional[str] = None,
    default_array_length: Optional[int] = None,
    arrays_xml: Optional[str] = None,
) -> str:
    """Build one ``<spectrum>`` element."""
    length = len(mzs) if default_array_length is None else default_array_length
    parts = [
        f'<spectrum index="{index}" id="{scan_id}" defaultArrayLength="{length}">',
    ]
    if ms_level is not None:
        parts.append(
            f'<cvParam cvRef="MS" accession="MS:1000511" name="ms level" value="{ms_level}"/>'
        )
    parts.append('<cvParam cvRef="MS" accession="MS:1000127" name="centroid spectrum" value=""/>')

    if rt is not None:
        unit = f' unitName="{rt_unit}"' if rt_unit is not None else ""
        parts.append(
            '<scanList count="1"><scan>'
            f'<cvParam cvRef="MS" accession="MS:1000016" name="scan start time" value="{rt}"{unit}/>'
            "</scan></scanList>"
        )
    else:
        parts.append('<scanList count="1"><scan/></scanList>')

    if precursor_ref is not None:
        parts.append(
            '<precursorList count="1">'
            f'<precursor spectrumRef="{precursor_ref}">'
            "<isolationWindow>"
            '<cvParam cvRef="MS" accession="MS:1000827" name="isolation window target m/z" value="445.3" unitName="m/z"/>'
            "</isolationWindow>"
            '<selectedIonList count="1"><selectedIon>'
            '<cvParam cvRef="MS" accession="MS:1000744" name="selected ion m/z" value="445.34" unitName="m/z"/>'
            "</selectedIon></selectedIonList>"
            "</precursor>"
            "</precursorList>"
        )

    if arrays_xml is None:
        arrays_xml = binary_array_xml(
            mzs, "m/z array", precision, compress, param_group
        ) + binary_array_xml(
            intensities, "intensity array", precision, compress, param_group
        )
    parts.append(f'<binaryDataArrayList count="2">{arrays_xml}</binaryDataArrayList>')
    parts.append("</spectrum>")
    return "\n".join(parts)


def chromatogram_xml(
    index: int, chromatogram_id: str, times: Sequence[float], intensities: Sequence[float]
) -> str:
    arrays = binary_array_xml(times, "time array") + binary_array_xml(
        intensities, "intensity array"
    )
    return (
        f'<chromatogram index="{index}" id="{chromatogram_id}" '
        f'defaultArrayLength="{len(times)}">'
        '<cvParam cvRef="MS" accession="MS:1000235" name="total ion current chromatogram" value=""/>'
        f'<binaryDataArrayList count="2">{arrays}</binaryDataArrayList>'
        "</chromatogram>"
    )


PARAM_GROUPS_XML = (
    '<referenceableParamGroupList count="1">'
    '<referenceableParamGroup id="zlib32">'
    '<cvParam cvRef="MS" accession="MS:1000521" name="32-bit float" value=""/>'
    '<cvParam cvRef="MS" accession="MS:1000574" name="zlib compression" value=""/>'
    "</referenceableParamGroup>"
    "</referenceableParamGroupList>"
)


def build_mzml(
    spectra: Sequence[Tuple[str, str]],
    chromatograms: Sequence[Tuple[str, str]] = (),
    indexed: bool = True,
    bare_index: bool = False,
    chromatogram_index: bool = True,
    spectrum_index: bool = True,
    declared_count: Optional[int] = None,
    offset_overrides: Optional[Dict[str, int]] = None,
    extra_offsets: Sequence[Tuple[str, int]] = (),
) -> bytes:
    """
    Assemble an mzML document.

    Args:
        spectra: (id, xml) pairs in file order
        chromatograms: (id, xml) pairs in file order
        indexed: Wrap in ``indexedmzML`` with an index, offset and checksum
        bare_index: Write a single ``<index>`` instead of an ``<indexList>``
        chromatogram_index: Include the chromatogram index section
        spectrum_index: Include the spectrum index section
        declared_count: ``count`` written on ``<spectrumList>``
        offset_overrides: Replace the computed offset for these ids
        extra_offsets: Appended to the spectrum index after the real entries
    """
    ns = f' xmlns="{MZML_NS}"'
    out = bytearray(b'<?xml version="1.0" encoding="utf-8"?>\n')
    if indexed:
        out += f"<indexedmzML{ns}>\n".encode()
    out += f'<mzML{ns} id="synthetic" version="1.1.0">\n'.encode()
    out += (
        '<cvList count="1"><cv id="MS" fullName="PSI-MS" version="4.1.0"/></cvList>\n'
    ).encode()
    out += (PARAM_GROUPS_XML + "\n").encode()
    out += (
        '<softwareList count="2">'
        '<software id="pwiz" version="3.0.1"/>'
        '<software id="writer"/>'
        "</softwareList>\n"
    ).encode()
    count = len(spectra) if declared_count is None else declared_count
    out += f'<run id="run1">\n<spectrumList count="{count}">\n'.encode()

    spectrum_offsets: List[Tuple[str, int]] = []
    for scan_id, xml in spectra:
        spectrum_offsets.append((scan_id, len(out)))
        out += (xml + "\n").encode()
    out += b"</spectrumList>\n"

    chromatogram_offsets: List[Tuple[str, int]] = []
    out += f'<chromatogramList count="{len(chromatograms)}">\n'.encode()
    for chromatogram_id, xml in chromatograms:
        chromatogram_offsets.append((chromatogram_id, len(out)))
        out += (xml + "\n").encode()
    out += b"</chromatogramList>\n</run>\n</mzML>\n"

    if not indexed:
        return bytes(out)

    overrides = offset_overrides or {}
    spectrum_offsets = [(i, overrides.get(i, o)) for i, o in spectrum_offsets]
    spectrum_offsets.extend(extra_offsets)

    def index_xml(name: str, offsets: Sequence[Tuple[str, int]]) -> str:
        entries = "".join(f'<offset idRef="{i}">{o}</offset>\n' for i, o in offsets)
        return f'<index name="{name}">\n{entries}</index>\n'

    sections = []
    if spectrum_index:
        sections.append(index_xml("spectrum", spectrum_offsets))
    if chromatogram_index:
        sections.append(index_xml("chromatogram", chromatogram_offsets))

    index_list_offset = len(out)
    if bare_index:
        out += "".join(sections[:1]).encode()
    else:
        out += f'<indexList count="{len(sections)}">\n'.encode()
        out += "".join(sections).encode()
        out += b"</indexList>\n"
    out += f"<indexListOffset>{index_list_offset}</indexListOffset>\n".encode()
    out += b"<fileChecksum>"
    digest = hashlib.sha1(bytes(out)).hexdigest()
    out += f"{digest}</fileChecksum>\n</indexedmzML>\n".encode()
    return bytes(out)


def reference_spectra() -> List[Dict]:
    """Describe the spectra of the reference file."""
    spectra = []
    for i, first_mz in enumerate(REFERENCE_FIRST_MZS):
        mzs = [first_mz + 0.5 * k for k in range(4)]
        intensities = [1000.0 * (i + 1) + k for k in range(4)]
        spectra.append(
            {
                "index": i,
                "id": f"controllerType=0 controllerNumber=1 scan={i + 1}",
                "mzs": mzs,
                "intensities": intensities,
                "ms_level": 1 if i % 2 == 0 else 2,
                "rt": f"{(i + 1) * 30.0}",
                "rt_unit": "second",
                "precision": 32 if i % 2 else 64,
                "compress": i >= 2,
            }
        )
    return spectra


def reference_spectrum_xml(spec: Dict) -> str:
    precursor_ref = None
    param_group = None
    if spec["ms_level"] == 2:
        precursor_ref = f"controllerType=0 controllerNumber=1 scan={spec['index']}"
    if spec["index"] == 3:
        # zlib32 group declares 32-bit float and zlib compression
        param_group = "zlib32"
    return spectrum_xml(
        spec["index"],
        spec["id"],
        spec["mzs"],
        spec["intensities"],
        ms_level=spec["ms_level"],
        rt=spec["rt"],
        rt_unit=spec["rt_unit"],
        precision=spec["precision"],
        compress=spec["compress"],
        precursor_ref=precursor_ref,
        param_group=param_group,
    )


@pytest.fixture
def reference_data():
    """Expected content of the reference file."""
    return reference_spectra()


@pytest.fixture
def mzml_writer(tmp_path):
    """Return a function writing mzML bytes to a file under tmp_path."""

    def write(content: bytes, name: str = "test.mzML"):
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return write


@pytest.fixture
def reference_mzml(mzml_writer):
    """
    Write the reference indexed mzML file.

    Five spectra mixing 32/64-bit floats and zlib compression, MS2 spectra
    with precursors, one spectrum using a referenceable param group and one
    TIC chromatogram.
    """
    spectra = [(s["id"], reference_spectrum_xml(s)) for s in reference_spectra()]
    chromatograms = [
        ("TIC", chromatogram_xml(0, "TIC", [0.5, 1.0, 1.5], [10.0, 20.0, 30.0]))
    ]
    return mzml_writer(build_mzml(spectra, chromatograms), "reference.mzML")


@pytest.fixture
def mzml_factory():
    """Builders for synthetic mzML content."""
    return SimpleNamespace(
        build=build_mzml,
        spectrum=spectrum_xml,
        chromatogram=chromatogram_xml,
        binary_array=binary_array_xml,
        encode=encode_values,
        first_mz_sum=REFERENCE_FIRST_MZ_SUM,
    )


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo logger changes made by setup_logging during a test."""
    logger = logging.getLogger("lazymzml")
    level = logger.level
    handlers = list(logger.handlers)
    yield
    logger.setLevel(level)
    logger.handlers[:] = handlers
