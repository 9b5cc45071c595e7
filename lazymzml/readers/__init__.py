from .extractor import BoundedElementExtractor
from .lazy_store import LazyMzML, open_mzml

__all__ = ["BoundedElementExtractor", "LazyMzML", "open_mzml"]
