# lazymzml/core/base_scan.py
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .cv import ControlledVocabularyRecord, find_by_name, find_containing

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0


class MassScan(ABC):
    """
    Read-only access to the metadata of one spectrum.

    Implementations only need to provide the spectrum's own cv records and its
    acquisition entries; retention time, MS level and cv lookup are computed
    here for every implementation.
    """

    @abstractmethod
    def cvs(self) -> Tuple[ControlledVocabularyRecord, ...]:
        """Return the cv records attached directly to the spectrum element."""
        pass

    @abstractmethod
    def acquisition_cvs(self) -> Sequence[Tuple[ControlledVocabularyRecord, ...]]:
        """Return the cv records of each ``<scan>`` in the spectrum's scan list."""
        pass

    def find_cv(self, name: str) -> Optional[ControlledVocabularyRecord]:
        """Return the spectrum-level cv record named exactly ``name``."""
        return find_by_name(self.cvs(), name)

    def retention_time(self) -> Optional[float]:
        """
        Return the retention time in minutes.

        Reads the "scan start time" record of the first acquisition entry.
        Values in seconds are converted; any other or missing unit is taken
        as minutes.

        Returns:
            Retention time in minutes, or None if it is absent or not numeric.
        """
        entries = self.acquisition_cvs()
        if not entries:
            return None

        record = find_containing(entries[0], "scan start time")
        if record is None:
            return None

        value = record.as_float()
        if value is None:
            logger.warning(f"Unparsable scan start time {record.value!r}")
            return None

        if record.unit == "second":
            return value / SECONDS_PER_MINUTE
        return value

    def ms_level(self) -> Optional[int]:
        """Return the MS level, or None if absent or not a non-negative integer."""
        record = find_containing(self.cvs(), "ms level")
        if record is None:
            return None
        try:
            level = int(record.value.strip())
        except ValueError:
            return None
        if level < 0:
            return None
        return level


class MassSpectrumData(ABC):
    """Access to the decoded peak arrays of one spectrum."""

    @abstractmethod
    def arrays(self) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
        """
        Decode and return the m/z and intensity arrays.

        Raises:
            MissingArrayError: If either array is absent
            ArrayLengthMismatchError: If the decoded lengths disagree
        """
        pass

    def peaks(self) -> List[Tuple[float, float]]:
        """Return the spectrum as a list of (m/z, intensity) pairs."""
        mzs, intensities = self.arrays()
        return list(zip(mzs.tolist(), intensities.tolist()))
