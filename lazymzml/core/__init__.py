"""Controlled-vocabulary records and the capability interfaces of spectra."""
from .base_scan import MassScan, MassSpectrumData
from .cv import ControlledVocabularyRecord

__all__ = ["ControlledVocabularyRecord", "MassScan", "MassSpectrumData"]
