# lazymzml/readers/checksum.py
import hashlib
from pathlib import Path
from typing import Optional, Union

CHECKSUM_MARKER = b"<fileChecksum>"


def compute_file_checksum(
    path: Union[str, Path], chunk_size: int = 1024 * 1024
) -> Optional[str]:
    """
    Compute the SHA-1 checksum of an indexed mzML file.

    The digest covers the file from its first byte through the opening
    ``<fileChecksum>`` tag.

    Returns:
        Lowercase hex digest, or None if the file has no ``<fileChecksum>``
    """
    hasher = hashlib.sha1()
    keep = len(CHECKSUM_MARKER) - 1
    tail = b""

    with open(path, "rb") as handle:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                return None
            data = tail + chunk
            found = data.find(CHECKSUM_MARKER)
            if found != -1:
                hasher.update(data[: found + len(CHECKSUM_MARKER)])
                return hasher.hexdigest()
            split = max(0, len(data) - keep)
            hasher.update(data[:split])
            tail = data[split:]
