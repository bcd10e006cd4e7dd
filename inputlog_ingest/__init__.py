"""
Input Log Ingest Gate.

Untrusted bytes in, verified LogDocument (or one typed LoadError) out.
"""

from .decoders import DECODERS, decode_json, format_for_path, supported_extensions
from .errors import LoadError, LoadErrorCode, LogLoadException
from .validator import SUPPORTED_VERSIONS, build_document, parse, try_parse

__all__ = [
    "DECODERS",
    "LoadError",
    "LoadErrorCode",
    "LogLoadException",
    "SUPPORTED_VERSIONS",
    "build_document",
    "decode_json",
    "format_for_path",
    "parse",
    "supported_extensions",
    "try_parse",
]
