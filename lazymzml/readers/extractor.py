# lazymzml/readers/extractor.py
import logging
from typing import BinaryIO, Optional

from lxml import etree

from ..exceptions import BoundaryNotFoundError, FormatError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 8192
DEFAULT_MAX_ELEMENT_BYTES = 256 * 1024 * 1024

SPECTRUM_CLOSING_TAG = b"</spectrum>"
CHROMATOGRAM_CLOSING_TAG = b"</chromatogram>"


def make_fragment_parser() -> etree.XMLParser:
    """Parser for single elements cut out of a larger document."""
    return etree.XMLParser(huge_tree=True, resolve_entities=False, no_network=True)


class BoundedElementExtractor:
    """
    Reads one element starting at a known byte offset.

    Chunks are read until the closing tag is found. The search after each
    chunk also covers the last ``len(closing_tag) - 1`` bytes already read,
    so a tag split across two chunks is still found. Reading stops with
    BoundaryNotFoundError once ``max_bytes`` have been read or the file ends.
    """

    def __init__(
        self,
        closing_tag: bytes = SPECTRUM_CLOSING_TAG,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        max_bytes: int = DEFAULT_MAX_ELEMENT_BYTES,
    ):
        if not closing_tag:
            raise ValueError("closing_tag must not be empty")
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if max_bytes < len(closing_tag):
            raise ValueError(
                f"max_bytes must be at least {len(closing_tag)}, got {max_bytes}"
            )
        self.closing_tag = closing_tag
        self.chunk_size = chunk_size
        self.max_bytes = max_bytes

    def read_fragment(
        self, handle: BinaryIO, offset: int, element_id: Optional[str] = None
    ) -> bytes:
        """
        Return the bytes from ``offset`` up to and including the closing tag.

        Args:
            handle: Binary file handle; its position is moved
            offset: Byte offset of the element's opening tag
            element_id: Id of the element, for error context

        Raises:
            BoundaryNotFoundError: If the closing tag is not found before the
                read ceiling or end of file
        """
        marker = self.closing_tag
        overlap = len(marker) - 1

        try:
            handle.seek(offset)
        except (OSError, ValueError) as e:
            raise BoundaryNotFoundError(
                f"Cannot seek to element: {e}", element_id=element_id, offset=offset
            ) from e

        buffer = bytearray()
        while len(buffer) < self.max_bytes:
            chunk = handle.read(min(self.chunk_size, self.max_bytes - len(buffer)))
            if not chunk:
                raise BoundaryNotFoundError(
                    f"Reached end of file before {marker.decode()}",
                    bytes_read=len(buffer),
                    element_id=element_id,
                    offset=offset,
                )

            search_from = max(0, len(buffer) - overlap)
            buffer.extend(chunk)
            end = buffer.find(marker, search_from)
            if end != -1:
                del buffer[end + len(marker) :]
                logger.debug(
                    f"Extracted {len(buffer)} bytes for {element_id} at offset {offset}"
                )
                return bytes(buffer)

        raise BoundaryNotFoundError(
            f"{marker.decode()} not found within {self.max_bytes} bytes",
            bytes_read=len(buffer),
            element_id=element_id,
            offset=offset,
        )

    def parse_fragment(
        self,
        fragment: bytes,
        expected_tag: str,
        element_id: Optional[str] = None,
        offset: Optional[int] = None,
    ):
        """Parse an extracted fragment and check that it is ``expected_tag``."""
        try:
            element = etree.fromstring(fragment, make_fragment_parser())
        except etree.XMLSyntaxError as e:
            raise FormatError(
                f"Malformed <{expected_tag}> fragment: {e}",
                element_id=element_id,
                offset=offset,
            ) from e

        if etree.QName(element).localname != expected_tag:
            raise FormatError(
                f"Offset points at <{etree.QName(element).localname}>, "
                f"expected <{expected_tag}>",
                element_id=element_id,
                offset=offset,
            )
        return element

    def extract(
        self,
        handle: BinaryIO,
        offset: int,
        expected_tag: str,
        element_id: Optional[str] = None,
    ):
        """Read and parse the element at ``offset``."""
        fragment = self.read_fragment(handle, offset, element_id)
        return self.parse_fragment(fragment, expected_tag, element_id, offset)
