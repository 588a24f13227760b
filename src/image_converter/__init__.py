"""Image conversion and size-targeted compression toolkit."""

from .config import AppConfig, load_config
from .core import ConversionService
from .engine import ConversionEngine, convert
from .errors import ConversionError, DecodeError, EncodeError, TraceError
from .models import BatchConversionResult, ConversionOptions, ConversionRequest, ConversionResult

__all__ = [
    "AppConfig",
    "load_config",
    "BatchConversionResult",
    "ConversionEngine",
    "ConversionError",
    "ConversionOptions",
    "ConversionRequest",
    "ConversionResult",
    "ConversionService",
    "DecodeError",
    "EncodeError",
    "TraceError",
    "convert",
]
