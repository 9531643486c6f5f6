"""Protocol Buffers wire-format encoding and decoding: varints, codecs, messages and wrappers."""

__version__ = "0.1.0"
__all__ = ["composite", "errors", "message", "scalars", "wire", "wrappers"]