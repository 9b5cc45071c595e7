from .builder import IndexSection, Offset, OffsetMaps, build_offset_maps

__all__ = ["IndexSection", "Offset", "OffsetMaps", "build_offset_maps"]
