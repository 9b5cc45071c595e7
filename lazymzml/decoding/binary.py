# lazymzml/decoding/binary.py
"""
Decoding of ``<binaryDataArray>`` payloads.

The payload is base64 text, optionally zlib compressed, holding a packed
sequence of little-endian IEEE-754 floats. Decoded values are always returned
as float64.
"""
import base64
import binascii
import logging
import re
import zlib
from typing import TYPE_CHECKING, Iterable, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ..core.cv import ControlledVocabularyRecord
from ..exceptions import (
    Base64DecodeError,
    CompressionError,
    UnsupportedPrecisionError,
)

if TYPE_CHECKING:
    from ..scans.types import BinaryArray

logger = logging.getLogger(__name__)

FLOAT_DTYPES = {
    32: np.dtype("<f4"),
    64: np.dtype("<f8"),
}

_PRECISION_PATTERN = re.compile(r"(\d+)-bit (float|integer)")


def detect_encoding(
    cv_records: Iterable[ControlledVocabularyRecord],
    element_id: Optional[str] = None,
    array_kind: Optional[str] = None,
) -> Tuple[bool, int]:
    """
    Inspect the cv records of a binary array.

    Args:
        cv_records: cv records of the ``<binaryDataArray>``
        element_id: Spectrum id, for error context
        array_kind: Array kind, for error context

    Returns:
        Tuple of (zlib compressed, float width in bits). The width defaults
        to 64 when no precision record is present.

    Raises:
        UnsupportedPrecisionError: On integer or non 32/64-bit types, or
            when both float widths are declared
        CompressionError: On compression schemes other than zlib
    """
    zlib_compressed = False
    widths = set()

    for record in cv_records:
        name = record.name
        if "zlib" in name:
            zlib_compressed = True
        if "Numpress" in name:
            raise CompressionError(
                f"Unsupported compression {name!r}",
                element_id=element_id,
                array_kind=array_kind,
            )
        match = _PRECISION_PATTERN.search(name)
        if match is None:
            continue
        width = int(match.group(1))
        if match.group(2) != "float" or width not in FLOAT_DTYPES:
            raise UnsupportedPrecisionError(
                f"Unsupported binary data type {name!r}",
                element_id=element_id,
                array_kind=array_kind,
            )
        widths.add(width)

    if len(widths) > 1:
        raise UnsupportedPrecisionError(
            "Conflicting precision records "
            + ", ".join(f"{w}-bit float" for w in sorted(widths)),
            element_id=element_id,
            array_kind=array_kind,
        )

    return zlib_compressed, widths.pop() if widths else 64


def decode_base64(
    text: str, element_id: Optional[str] = None, array_kind: Optional[str] = None
) -> bytes:
    """Decode standard-alphabet base64, ignoring embedded whitespace."""
    compact = "".join(text.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(
            f"Invalid base64 payload: {e}",
            element_id=element_id,
            array_kind=array_kind,
        ) from e


def inflate(
    payload: bytes, element_id: Optional[str] = None, array_kind: Optional[str] = None
) -> bytes:
    try:
        return zlib.decompress(payload)
    except zlib.error as e:
        raise CompressionError(
            f"Malformed zlib stream: {e}",
            element_id=element_id,
            array_kind=array_kind,
        ) from e


def bytes_to_floats(
    payload: bytes,
    width: int,
    element_id: Optional[str] = None,
    array_kind: Optional[str] = None,
) -> NDArray[np.float64]:
    """
    Reinterpret packed little-endian floats as a float64 array.

    Trailing bytes that do not make up a whole value are dropped.
    """
    dtype = FLOAT_DTYPES.get(width)
    if dtype is None:
        raise UnsupportedPrecisionError(
            f"Unsupported float width {width}",
            element_id=element_id,
            array_kind=array_kind,
        )

    remainder = len(payload) % dtype.itemsize
    if remainder:
        logger.warning(
            f"Dropping {remainder} trailing bytes of {array_kind or 'binary array'} "
            f"in {element_id or 'unknown element'}"
        )
        payload = payload[: len(payload) - remainder]

    return np.frombuffer(payload, dtype=dtype).astype(np.float64)


def decode_binary_array(
    array: "BinaryArray",
    element_id: Optional[str] = None,
    array_kind: Optional[str] = None,
) -> NDArray[np.float64]:
    """
    Decode one binary array into float64 values.

    Args:
        array: The binary array to decode
        element_id: Id of the owning spectrum or chromatogram, for error context
        array_kind: Array kind (e.g. "m/z array"), for error context

    Returns:
        NDArray[np.float64] of decoded values

    Raises:
        Base64DecodeError: If the text is not valid base64
        CompressionError: If the zlib stream is malformed
        UnsupportedPrecisionError: If the declared data type is not supported
    """
    if array.encoded_length is not None and array.encoded_length != len(
        array.base64_text
    ):
        logger.warning(
            f"encodedLength {array.encoded_length} does not match base64 text "
            f"length {len(array.base64_text)} in {element_id or 'unknown element'}"
        )

    zlib_compressed, width = detect_encoding(
        array.cv_records, element_id=element_id, array_kind=array_kind
    )
    payload = decode_base64(
        array.base64_text, element_id=element_id, array_kind=array_kind
    )
    if zlib_compressed:
        payload = inflate(payload, element_id=element_id, array_kind=array_kind)

    return bytes_to_floats(
        payload, width, element_id=element_id, array_kind=array_kind
    )
