# lazymzml/core/cv.py
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class ControlledVocabularyRecord:
    """A single ``cvParam``: name, value and optional unit."""

    name: str
    value: str = ""
    unit: Optional[str] = None
    accession: Optional[str] = None

    def as_float(self) -> Optional[float]:
        """Return the value as a float, or None if it is not numeric."""
        try:
            return float(self.value)
        except (TypeError, ValueError):
            return None


def find_by_name(
    records: Iterable[ControlledVocabularyRecord], name: str
) -> Optional[ControlledVocabularyRecord]:
    """Return the first record whose name equals ``name``."""
    for record in records:
        if record.name == name:
            return record
    return None


def find_containing(
    records: Iterable[ControlledVocabularyRecord], fragment: str
) -> Optional[ControlledVocabularyRecord]:
    """Return the first record whose name contains ``fragment``."""
    for record in records:
        if fragment in record.name:
            return record
    return None


def has_name_containing(
    records: Iterable[ControlledVocabularyRecord], fragment: str
) -> bool:
    return find_containing(records, fragment) is not None
