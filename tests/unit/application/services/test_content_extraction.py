"""Unit tests for content hashing and .mxl container extraction."""

import hashlib
import io
import zipfile

import pytest

from musicxml_samples import make_musicxml, make_mxl
from mushee.application.services.container_extractor import (
    ContainerExtractor,
    decode_xml_text,
    is_compressed_container,
)
from mushee.application.services.content_hasher import ContentHasher
from mushee.domain.exceptions import InvalidMusicXmlError


class TestContentHasher:
    """Fingerprints are MD5 over the full buffer."""

    def test_matches_md5_hex(self) -> None:
        data = b"<score-partwise/>"
        assert ContentHasher().hash(data).value == hashlib.md5(data).hexdigest()

    def test_is_deterministic(self) -> None:
        hasher = ContentHasher()
        assert hasher.hash(b"same bytes") == hasher.hash(b"same bytes")

    def test_single_byte_difference_changes_fingerprint(self) -> None:
        hasher = ContentHasher()
        assert hasher.hash(b"a" * 4096 + b"x") != hasher.hash(b"a" * 4096 + b"y")

    def test_empty_input(self) -> None:
        assert ContentHasher().hash(b"").value == "d41d8cd98f00b204e9800998ecf8427e"


class TestDecoding:
    def test_zip_magic_detection(self) -> None:
        assert is_compressed_container(b"PK\x03\x04rest")
        assert not is_compressed_container(b"<?xml")

    def test_bom_is_dropped(self) -> None:
        assert decode_xml_text(b"\xef\xbb\xbf<a/>") == "<a/>"

    def test_invalid_utf8_raises(self) -> None:
        with pytest.raises(InvalidMusicXmlError, match="UTF-8"):
            decode_xml_text(b"\xff\xfe\x00<")


class TestContainerExtractor:
    """Primary document resolution inside .mxl archives."""

    @pytest.fixture
    def extractor(self) -> ContainerExtractor:
        return ContainerExtractor()

    def test_plain_xml_passes_through(self, extractor: ContainerExtractor) -> None:
        xml = make_musicxml()
        assert extractor.extract_xml(xml.encode()) == xml

    def test_manifest_rootfile_is_used(self, extractor: ContainerExtractor) -> None:
        xml = make_musicxml(work_title="From Manifest")
        data = make_mxl(xml, entry_name="scores/main.musicxml", manifest_path="scores/main.musicxml")

        assert "From Manifest" in extractor.extract_xml(data)

    def test_manifest_wins_over_other_xml_entries(self, extractor: ContainerExtractor) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("aaa.xml", make_musicxml(work_title="Decoy"))
            archive.writestr(
                "META-INF/container.xml",
                '<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
                '<rootfiles><rootfile full-path="real.xml"/></rootfiles></container>',
            )
            archive.writestr("real.xml", make_musicxml(work_title="Real"))

        assert "Real" in extractor.extract_xml(buffer.getvalue())

    def test_fallback_to_first_xml_without_manifest(self, extractor: ContainerExtractor) -> None:
        data = make_mxl(make_musicxml(work_title="No Manifest"), manifest_path=None)
        assert "No Manifest" in extractor.extract_xml(data)

    def test_fallback_when_manifest_points_nowhere(self, extractor: ContainerExtractor) -> None:
        data = make_mxl(make_musicxml(work_title="Dangling"), manifest_path="missing.xml")
        assert "Dangling" in extractor.extract_xml(data)

    def test_fallback_skips_meta_inf(self, extractor: ContainerExtractor) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("META-INF/container.xml", "<broken")
            archive.writestr("score.xml", make_musicxml(work_title="Fallback"))

        assert "Fallback" in extractor.extract_xml(buffer.getvalue())

    def test_archive_without_xml_raises(self, extractor: ContainerExtractor) -> None:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("readme.txt", "hello")

        with pytest.raises(InvalidMusicXmlError, match="No usable MusicXML"):
            extractor.extract_xml(buffer.getvalue())

    def test_corrupt_archive_raises(self, extractor: ContainerExtractor) -> None:
        with pytest.raises(InvalidMusicXmlError):
            extractor.extract_xml(b"PK\x03\x04 this is not really a zip")

    def test_oversized_entry_raises(self) -> None:
        data = make_mxl(make_musicxml())
        with pytest.raises(InvalidMusicXmlError, match="too large"):
            ContainerExtractor(max_uncompressed_bytes=10).extract_xml(data)
