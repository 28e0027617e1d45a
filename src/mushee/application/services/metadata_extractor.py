"""MusicXML metadata extraction (title, composer, subtitle).

Hey future me - the extraction chain is layered because real-world exports are messy:

- title:    <work><work-title>  ->  <movement-title>  ->  ""
- composer: <creator type="composer">  ->  first <creator>  ->  ""
- subtitle: <credit> with <credit-type>subtitle  ->  <movement-title> when the
            title came from <work-title>  ->  None

Empty title AND empty composer is a hard failure - such a file can't be shown
in anyone's library. Everything is whitespace-collapsed and cut to 200 chars
(the column width on the songs table).

Parsing runs in a worker thread under a deadline. The document is fed to the
parser in chunks and the worker checks the deadline between chunks, so a
timed-out parse stops on its own instead of running on in the executor.
"""

import asyncio
import logging
import re
import time
from xml.etree import ElementTree as ET

from mushee.domain.entities import MAX_METADATA_FIELD_LENGTH, ExtractedMetadata
from mushee.domain.exceptions import InvalidMusicXmlError

logger = logging.getLogger(__name__)

SCORE_ROOT_ELEMENTS = frozenset({"score-partwise", "score-timewise"})
DEFAULT_PARSE_TIMEOUT_SECONDS = 5.0
DEFAULT_PARSE_CHUNK_SIZE = 64 * 1024

_TIMEOUT_MESSAGE = "MusicXML parsing timed out. File may be too complex."

_SCORE_ROOT_PATTERN = re.compile(r"<score-(?:partwise|timewise)[\s>/]")
_METADATA_HINT_PATTERN = re.compile(r"<(?:work-title|movement-title|creator)[\s>/]")
_WHITESPACE_PATTERN = re.compile(r"\s+")

# Only cut at a word boundary if we keep at least 80% of the limit
_WORD_BOUNDARY_WINDOW = 0.2


def sanitize_and_truncate(value: str | None, max_length: int = MAX_METADATA_FIELD_LENGTH) -> str:
    """Collapse whitespace, trim, and cut to max_length characters.

    Prefers cutting at a space when that space lies within the trailing 20%
    of the limit, otherwise hard-truncates.
    """
    if not value:
        return ""
    cleaned = _WHITESPACE_PATTERN.sub(" ", value).strip()
    if len(cleaned) <= max_length:
        return cleaned

    # Cut lands exactly on a word boundary
    if cleaned[max_length] == " ":
        return cleaned[:max_length].rstrip()

    truncated = cleaned[:max_length]
    boundary = truncated.rfind(" ")
    if boundary > 0 and boundary >= max_length - int(max_length * _WORD_BOUNDARY_WINDOW):
        return truncated[:boundary].rstrip()
    return truncated


def has_score_structure(xml_string: str) -> bool:
    """Cheap structural probe run before any real parsing.

    The document must start with a prolog or a tag and contain a
    score-partwise/score-timewise element. Missing title/creator elements
    are only logged - the full parse decides whether metadata is usable.
    """
    stripped = xml_string.lstrip()
    if not stripped.startswith("<"):
        return False
    if not _SCORE_ROOT_PATTERN.search(stripped):
        return False
    if not _METADATA_HINT_PATTERN.search(stripped):
        logger.debug("MusicXML pre-check: no title or creator elements found")
    return True


def _local_name(tag: object) -> str:
    # Comments and processing instructions have non-string tags
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _iter_named(root: ET.Element, name: str):
    for element in root.iter():
        if _local_name(element.tag) == name:
            yield element


def _element_text(element: ET.Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def _first_text(root: ET.Element, name: str) -> str:
    for element in _iter_named(root, name):
        text = _element_text(element)
        if text:
            return text
    return ""


class MetadataExtractor:
    """Parses MusicXML and derives catalog metadata."""

    def __init__(
        self,
        parse_timeout_seconds: float = DEFAULT_PARSE_TIMEOUT_SECONDS,
        max_field_length: int = MAX_METADATA_FIELD_LENGTH,
        parse_chunk_size: int = DEFAULT_PARSE_CHUNK_SIZE,
    ) -> None:
        self.parse_timeout_seconds = parse_timeout_seconds
        self.max_field_length = max_field_length
        self.parse_chunk_size = parse_chunk_size

    async def extract(
        self, xml_string: str, timeout: float | None = None
    ) -> ExtractedMetadata:
        """Extract metadata under a deadline.

        Args:
            xml_string: The MusicXML document
            timeout: Override for the configured parse timeout (seconds)

        Raises:
            InvalidMusicXmlError: invalid document, timeout, or no usable metadata
        """
        budget = timeout if timeout is not None else self.parse_timeout_seconds
        deadline = time.monotonic() + budget
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.extract_sync, xml_string, deadline), timeout=budget
            )
        except TimeoutError as e:
            logger.warning("MusicXML parsing exceeded %.1fs deadline", budget)
            raise InvalidMusicXmlError(_TIMEOUT_MESSAGE) from e

    def extract_sync(self, xml_string: str, deadline: float | None = None) -> ExtractedMetadata:
        """Blocking extraction - call through extract() from async code.

        Args:
            xml_string: The MusicXML document
            deadline: time.monotonic() value after which parsing gives up
        """
        if not has_score_structure(xml_string):
            raise InvalidMusicXmlError(
                "Invalid MusicXML format. Please ensure the file is valid."
            )

        root = self._parse(xml_string, deadline)

        title, title_source = self._extract_title(root)
        composer = self._extract_composer(root)
        subtitle = self._extract_subtitle(root, title_source)

        title = sanitize_and_truncate(title, self.max_field_length)
        composer = sanitize_and_truncate(composer, self.max_field_length)
        subtitle = sanitize_and_truncate(subtitle, self.max_field_length) or None
        if subtitle is not None and subtitle == title:
            subtitle = None

        if not title and not composer:
            raise InvalidMusicXmlError(
                "MusicXML file must contain title or composer information"
            )

        return ExtractedMetadata(title=title, composer=composer, subtitle=subtitle)

    # Hey future me - asyncio.wait_for can only stop WAITING for the worker thread, it can't
    # stop the thread. So the parser checks the deadline itself between chunks and bails out,
    # otherwise every timed-out upload would keep burning a slot in the default executor.
    def _parse(self, xml_string: str, deadline: float | None) -> ET.Element:
        parser = ET.XMLPullParser(events=("start",))
        root: ET.Element | None = None
        try:
            for offset in range(0, len(xml_string), self.parse_chunk_size):
                if deadline is not None and time.monotonic() > deadline:
                    raise InvalidMusicXmlError(_TIMEOUT_MESSAGE)
                parser.feed(xml_string[offset : offset + self.parse_chunk_size])
                for _event, element in parser.read_events():
                    if root is None:
                        root = element
            parser.close()
        except ET.ParseError as e:
            raise InvalidMusicXmlError(f"Invalid MusicXML format: {e}") from e

        if root is None:
            raise InvalidMusicXmlError("Invalid MusicXML format: empty document")

        root_name = _local_name(root.tag)
        if root_name not in SCORE_ROOT_ELEMENTS:
            raise InvalidMusicXmlError(
                f"Invalid MusicXML format: unexpected root element <{root_name}>"
            )
        return root

    def _extract_title(self, root: ET.Element) -> tuple[str, str | None]:
        for work in _iter_named(root, "work"):
            work_title = _first_text(work, "work-title")
            if work_title:
                return work_title, "work-title"

        movement_title = _first_text(root, "movement-title")
        if movement_title:
            return movement_title, "movement-title"
        return "", None

    def _extract_composer(self, root: ET.Element) -> str:
        first_creator = ""
        for creator in _iter_named(root, "creator"):
            text = _element_text(creator)
            if not text:
                continue
            if (creator.get("type") or "").strip().lower() == "composer":
                return text
            if not first_creator:
                first_creator = text
        return first_creator

    def _extract_subtitle(self, root: ET.Element, title_source: str | None) -> str | None:
        for credit in _iter_named(root, "credit"):
            credit_types = {
                _element_text(element).lower()
                for element in _iter_named(credit, "credit-type")
            }
            if "subtitle" in credit_types:
                words = " ".join(
                    _element_text(element) for element in _iter_named(credit, "credit-words")
                ).strip()
                if words:
                    return words

        if title_source == "work-title":
            movement_title = _first_text(root, "movement-title")
            if movement_title:
                return movement_title
        return None
