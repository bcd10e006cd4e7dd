"""
inputlog_ingest/decoders.py - Decode Front-Ends

A decoder turns raw bytes into the intermediate tree (plain dicts/lists)
consumed by the validator. Decoders check syntax only; every semantic rule
lives in validator.py so all formats share one gate.
"""
import json
import os
from typing import Any, Callable, Dict, Tuple

from .errors import LogLoadException, invalid_format


Decoder = Callable[[bytes], Dict[str, Any]]


def decode_json(data: bytes) -> Dict[str, Any]:
    """
    Decode a JSON input log into its intermediate tree.

    Raises:
        LogLoadException: INVALID_FORMAT for non-UTF-8 bytes, JSON syntax
        errors (with 1-based line/column), or a non-object top level.
    """
    if isinstance(data, str):
        text = data
    else:
        try:
            text = bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise LogLoadException(invalid_format(f"not UTF-8 text ({e.reason} at byte {e.start})"))

    try:
        tree = json.loads(text)
    except json.JSONDecodeError as e:
        raise LogLoadException(invalid_format(e.msg, line=e.lineno, column=e.colno))
    except RecursionError:
        raise LogLoadException(invalid_format("nesting too deep"))

    if not isinstance(tree, dict):
        raise LogLoadException(invalid_format(
            f"top level must be an object, got {type(tree).__name__}"
        ))
    return tree


# Registered front-ends. A binary decoder registers here and reuses the gate.
DECODERS: Dict[str, Decoder] = {
    "json": decode_json,
}

# File extension -> decoder name
EXTENSION_FORMATS: Dict[str, str] = {
    ".ilj": "json",
    ".json": "json",
}


def supported_extensions() -> Tuple[str, ...]:
    return tuple(ext for ext, fmt in EXTENSION_FORMATS.items() if fmt in DECODERS)


def get_decoder(fmt: str) -> Decoder:
    try:
        return DECODERS[fmt]
    except KeyError:
        raise ValueError(f"No decoder registered for format {fmt!r}")


def format_for_path(path: str) -> str:
    """
    Resolve the decoder name for a file path from its extension.

    Raises:
        KeyError: if the extension has no registered decoder.
    """
    ext = os.path.splitext(path)[1].lower()
    fmt = EXTENSION_FORMATS.get(ext)
    if fmt is None or fmt not in DECODERS:
        raise KeyError(ext)
    return fmt
