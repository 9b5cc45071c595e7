"""
Tests for converting mzML elements into the data model.
"""
import pytest
from lxml import etree

from lazymzml.core.cv import ControlledVocabularyRecord as CV
from lazymzml.exceptions import FormatError
from lazymzml.readers.elements import (
    cv_records_of,
    parse_chromatogram_data,
    parse_index_section,
    parse_scan_data,
    parse_scan_metadata,
)


def xml(text: str):
    return etree.fromstring(text.encode())


class TestParseSpectrum:
    """Test spectrum conversion."""

    def test_metadata_fields(self, mzml_factory):
        element = xml(
            mzml_factory.spectrum(
                3, "scan=4", [1.0, 2.0], [3.0, 4.0], ms_level=2, rt="12.5",
                rt_unit="second", precursor_ref="scan=3",
            )
        )

        scan = parse_scan_metadata(element)

        assert scan.index == 3
        assert scan.id == "scan=4"
        assert scan.default_array_length == 2
        assert scan.ms_level() == 2
        assert scan.retention_time() == pytest.approx(12.5 / 60)
        assert len(scan.acquisition_entries) == 1
        assert len(scan.precursors) == 1
        precursor = scan.precursors[0]
        assert precursor.spectrum_ref == "scan=3"
        assert precursor.isolation_window[0].name == "isolation window target m/z"
        assert precursor.selected_ion_mz() == pytest.approx(445.34)

    def test_spectrum_without_precursors(self, mzml_factory):
        element = xml(mzml_factory.spectrum(0, "scan=1", [1.0], [2.0]))
        assert parse_scan_metadata(element).precursors is None

    def test_namespaced_spectrum(self, mzml_factory):
        body = mzml_factory.spectrum(0, "scan=1", [1.0], [2.0])
        body = body.replace("<spectrum ", '<spectrum xmlns="http://psi.hupo.org/ms/mzml" ', 1)

        scan = parse_scan_data(xml(body))

        assert scan.ms_level() == 1
        assert len(scan.binary_arrays) == 2
        assert scan.peaks() == [(1.0, 2.0)]

    def test_scan_data_arrays(self, mzml_factory):
        element = xml(
            mzml_factory.spectrum(
                0, "scan=1", [10.5, 20.5], [100.0, 200.0], precision=32, compress=True
            )
        )

        scan = parse_scan_data(element)

        assert scan.id == "scan=1"
        assert scan.binary_arrays[0].has_kind("m/z array")
        assert scan.binary_arrays[0].encoded_length == len(
            scan.binary_arrays[0].base64_text
        )
        assert scan.peaks() == [(10.5, 100.0), (20.5, 200.0)]

    @pytest.mark.parametrize(
        "attributes",
        [
            'index="0" defaultArrayLength="1"',
            'id="s" defaultArrayLength="1"',
            'id="s" index="0"',
            'id="s" index="x" defaultArrayLength="1"',
            'id="s" index="-1" defaultArrayLength="1"',
        ],
    )
    def test_bad_attributes(self, attributes):
        with pytest.raises(FormatError):
            parse_scan_metadata(xml(f"<spectrum {attributes}/>"))


class TestParamGroups:
    """Test expansion of referenceableParamGroupRef."""

    def test_group_is_expanded_in_place(self):
        groups = {"g1": (CV("32-bit float"), CV("zlib compression"))}
        element = xml(
            "<binaryDataArray>"
            '<cvParam name="first"/>'
            '<referenceableParamGroupRef ref="g1"/>'
            '<cvParam name="m/z array" unitName="m/z" accession="MS:1000514"/>'
            "</binaryDataArray>"
        )

        records = cv_records_of(element, groups)

        assert [r.name for r in records] == [
            "first",
            "32-bit float",
            "zlib compression",
            "m/z array",
        ]
        assert records[-1] == CV("m/z array", "", "m/z", "MS:1000514")

    def test_unknown_group_is_skipped(self, caplog):
        element = xml('<scan><referenceableParamGroupRef ref="missing"/></scan>')
        assert cv_records_of(element, {}) == ()
        assert "missing" in caplog.text


class TestParseIndexSection:
    """Test index section conversion."""

    def test_offsets_in_file_order(self):
        section = parse_index_section(
            xml(
                '<index name="spectrum">'
                '<offset idRef="scan=1">120</offset>'
                '<offset idRef="scan=2"> 4500 </offset>'
                "</index>"
            )
        )
        assert section.category == "spectrum"
        assert [(o.reference_id, o.byte_offset) for o in section.entries] == [
            ("scan=1", 120),
            ("scan=2", 4500),
        ]

    @pytest.mark.parametrize("value", ["-5", "abc", "", "1.5"])
    def test_invalid_offset(self, value):
        with pytest.raises(FormatError):
            parse_index_section(
                xml(f'<index name="spectrum"><offset idRef="s">{value}</offset></index>')
            )

    def test_missing_name(self):
        with pytest.raises(FormatError):
            parse_index_section(xml("<index/>"))


def test_parse_chromatogram(mzml_factory):
    element = xml(mzml_factory.chromatogram(0, "TIC", [0.1, 0.2], [5.0, 6.0]))

    chromatogram = parse_chromatogram_data(element)

    assert chromatogram.id == "TIC"
    times, intensities = chromatogram.arrays()
    assert times.tolist() == [0.1, 0.2]
    assert intensities.tolist() == [5.0, 6.0]
