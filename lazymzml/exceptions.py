# lazymzml/exceptions.py
"""
Error types raised while opening, indexing and decoding mzML files.

Structural problems found while opening a file abort construction of the
store. Problems specific to one spectrum are raised per call so that a caller
iterating over many spectra can skip the failing one and continue.
"""
from typing import Optional


class LazyMzMLError(Exception):
    """Base class for all lazymzml errors."""

    def __init__(
        self,
        message: str,
        element_id: Optional[str] = None,
        offset: Optional[int] = None,
        array_kind: Optional[str] = None,
    ):
        self.element_id = element_id
        self.offset = offset
        self.array_kind = array_kind
        self.message = message
        super().__init__(self._format(message))

    def _format(self, message: str) -> str:
        context = []
        if self.element_id is not None:
            context.append(f"id={self.element_id!r}")
        if self.offset is not None:
            context.append(f"offset={self.offset}")
        if self.array_kind is not None:
            context.append(f"array={self.array_kind!r}")
        if not context:
            return message
        return f"{message} ({', '.join(context)})"


class FormatError(LazyMzMLError, ValueError):
    """Malformed XML in the envelope or in an extracted fragment."""


class IndexMissingError(FormatError):
    """An indexed file does not carry the required index category."""


class BoundaryNotFoundError(FormatError):
    """The closing tag of an element was not found within the read ceiling."""

    def __init__(self, message: str, bytes_read: int = 0, **context):
        self.bytes_read = bytes_read
        super().__init__(message, **context)


class UnknownIdError(LazyMzMLError, LookupError):
    """An id was requested that is not in the offset index."""


class DecodeError(LazyMzMLError, ValueError):
    """Base class for binary array decoding failures."""


class Base64DecodeError(DecodeError):
    """The binary text is not valid base64."""


class CompressionError(DecodeError):
    """The compressed stream is malformed or uses an unsupported scheme."""


class UnsupportedPrecisionError(DecodeError):
    """The binary array declares a data type other than 32/64-bit float."""


class MissingArrayError(DecodeError):
    """A required binary array (m/z, intensity, time) is absent."""


class ArrayLengthMismatchError(DecodeError):
    """Decoded arrays disagree in length with each other or the declaration."""


class ReadError(LazyMzMLError):
    """The file could not be read while fetching an element."""
