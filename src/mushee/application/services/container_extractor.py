"""Extract the primary MusicXML document from plain or compressed uploads.

Hey future me - compressed MusicXML (.mxl) is just a ZIP archive. The format says
META-INF/container.xml names the real score via <rootfile full-path="...">, but
plenty of exporters skip the manifest or point it at nothing. So resolution is
two-tier:

1. manifest rootfile full-path, if it names an entry that exists
2. first *.xml entry outside META-INF/

Anything that isn't a ZIP is decoded as UTF-8 text and returned as-is.
"""

import io
import logging
import zipfile
import zlib
from xml.etree import ElementTree as ET

from mushee.domain.exceptions import InvalidMusicXmlError

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK"
MANIFEST_PATH = "META-INF/container.xml"
MANIFEST_DIR = "META-INF/"
PLAIN_XML_SUFFIX = ".xml"

# Guard against ZIP bombs - a 10 MiB .mxl should never inflate past this
DEFAULT_MAX_UNCOMPRESSED_BYTES = 100 * 1024 * 1024


def is_compressed_container(data: bytes) -> bool:
    """True if data starts with the ZIP local-file-header magic."""
    return data[:2] == ZIP_MAGIC


def decode_xml_text(data: bytes) -> str:
    """Decode XML bytes as UTF-8, dropping a leading byte-order mark."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise InvalidMusicXmlError(
            "File is not valid UTF-8 encoded MusicXML"
        ) from e


class ContainerExtractor:
    """Resolves the XML payload of an upload."""

    def __init__(
        self, max_uncompressed_bytes: int = DEFAULT_MAX_UNCOMPRESSED_BYTES
    ) -> None:
        self.max_uncompressed_bytes = max_uncompressed_bytes

    def extract_xml(self, data: bytes) -> str:
        """Return the primary XML document as text.

        Raises:
            InvalidMusicXmlError: broken container or no usable document found
        """
        if not is_compressed_container(data):
            return decode_xml_text(data)

        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                entry_name = self._resolve_entry(archive)
                info = archive.getinfo(entry_name)
                if info.file_size > self.max_uncompressed_bytes:
                    raise InvalidMusicXmlError(
                        f"Container entry '{entry_name}' is too large to process"
                    )
                payload = archive.read(info)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError) as e:
            # NotImplementedError = unsupported compression method
            raise InvalidMusicXmlError(f"Invalid compressed MusicXML container: {e}") from e
        except (RuntimeError, EOFError, OSError, zlib.error) as e:
            # Encrypted entries raise RuntimeError, truncated streams EOFError/zlib errors
            raise InvalidMusicXmlError(f"Unable to read compressed MusicXML container: {e}") from e

        return decode_xml_text(payload)

    def _resolve_entry(self, archive: zipfile.ZipFile) -> str:
        names = [name for name in archive.namelist() if not name.endswith("/")]

        manifest_target = self._read_manifest_target(archive, names)
        if manifest_target is not None:
            logger.debug("Resolved container entry from manifest: %s", manifest_target)
            return manifest_target

        for name in names:
            if name.startswith(MANIFEST_DIR):
                continue
            if name.lower().endswith(PLAIN_XML_SUFFIX):
                logger.debug("Resolved container entry by fallback scan: %s", name)
                return name

        raise InvalidMusicXmlError("No usable MusicXML document found in container")

    def _read_manifest_target(
        self, archive: zipfile.ZipFile, names: list[str]
    ) -> str | None:
        if MANIFEST_PATH not in names:
            return None

        try:
            root = ET.fromstring(archive.read(MANIFEST_PATH))
        except ET.ParseError as e:
            logger.debug("Ignoring unparsable container manifest: %s", e)
            return None

        # container.xml is usually namespaced, so match on the local tag name
        for element in root.iter():
            if _local_name(element.tag) != "rootfile":
                continue
            full_path = (element.get("full-path") or "").strip().lstrip("/")
            if full_path in names and not full_path.startswith(MANIFEST_DIR):
                return full_path
            if full_path:
                logger.debug("Manifest rootfile %r does not resolve to an entry", full_path)
        return None


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
