from .binary import decode_binary_array, detect_encoding

__all__ = ["decode_binary_array", "detect_encoding"]
