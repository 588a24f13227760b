from __future__ import annotations


class ConversionError(RuntimeError):
    code = "CONVERSION_FAILED"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class DecodeError(ConversionError):
    """Raised when the source buffer is not a readable raster image."""

    code = "DECODE_FAILED"


class EncodeError(ConversionError):
    """Raised when an encoder rejects the image or its parameters."""

    code = "ENCODE_FAILED"


class UnsupportedFormatError(EncodeError):
    code = "UNSUPPORTED_FORMAT"


class TraceError(ConversionError):
    """Raised when raster-to-vector tracing fails."""

    code = "TRACE_FAILED"


__all__ = [
    "ConversionError",
    "DecodeError",
    "EncodeError",
    "TraceError",
    "UnsupportedFormatError",
]
