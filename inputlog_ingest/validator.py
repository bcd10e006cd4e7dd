"""
inputlog_ingest/validator.py - The Load Gate

Most critical module. Turns an untrusted input log into a LogDocument.

Pipeline (each stage short-circuits on its first failure):
1. Structural decode (decoders.py)
2. Version check
3. Required top-level fields
4. Mapping table
5. Frame order and count
6. Event references and variants
7. Axis value ranges
8. Frame rate

Output: LogDocument OR LogLoadException.
No partial success. Unknown fields are ignored.
"""
import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Tuple

from inputlog_core import (
    DEFAULT_KIND_COLORS,
    Axis1DEvent,
    Axis2DEvent,
    ButtonEvent,
    ButtonState,
    FrameSnapshot,
    InputEvent,
    InputKind,
    InputMappingDescriptor,
    LogDocument,
    LogMetadata,
)

from .decoders import get_decoder
from .errors import (
    LoadError,
    LogLoadException,
    invalid_format,
    unsupported_version,
    missing_field,
    duplicate_mapping_id,
    unknown_input_kind,
    invalid_color,
    frame_order_violation,
    frame_count_mismatch,
    unknown_mapping_id,
    kind_mismatch,
    duplicate_event,
    unknown_button_state,
    value_out_of_range,
    invalid_frame_rate,
)

logger = logging.getLogger(__name__)


# --- SCHEMA DEFINITION (v1) ---

SUPPORTED_VERSIONS: Tuple[int, int] = (1, 1)
DEFAULT_VERSION = 1

REQUIRED_TOP_LEVEL_FIELDS = [
    "frame_rate",
    "mappings",
    "frames",
]

AXIS_RANGE: Tuple[float, float] = (-1.0, 1.0)

# Payload keys carried by each event variant
PAYLOAD_FIELDS: Dict[InputKind, Tuple[str, ...]] = {
    InputKind.BUTTON: ("state",),
    InputKind.AXIS1D: ("value",),
    InputKind.AXIS2D: ("x", "y"),
}


@dataclass(frozen=True)
class _PendingEvent:
    """Event whose reference and variant are proven; numbers not yet range-checked."""
    mapping_id: int
    kind: InputKind
    path: str
    state: Optional[ButtonState] = None
    values: Tuple[Any, ...] = ()


def parse(data: bytes, fmt: str = "json") -> LogDocument:
    """
    Parse and validate raw log bytes into an immutable LogDocument.

    Same bytes always produce an equal document or the same error code.

    Parameters:
        data (bytes): Raw file contents (untrusted).
        fmt (str): Registered decoder name; "json" by default.

    Returns:
        LogDocument: A document for which every timeline invariant holds.

    Raises:
        LogLoadException: Carrying the LoadError of the first failing stage.
    """
    tree = get_decoder(fmt)(data)
    return build_document(tree)


def try_parse(data: bytes, fmt: str = "json") -> Tuple[Optional[LogDocument], Optional[LoadError]]:
    """
    Non-raising variant of parse().

    Returns:
        On success `(LogDocument, None)`; on failure `(None, LoadError)`.
    """
    try:
        return parse(data, fmt), None
    except LogLoadException as e:
        return None, e.error


def build_document(tree: Dict[str, Any]) -> LogDocument:
    """Run stages 2-8 over an already decoded intermediate tree."""
    if not isinstance(tree, dict):
        raise LogLoadException(invalid_format(
            f"top level must be an object, got {type(tree).__name__}"
        ))

    # 2. Version
    version = _validate_version(tree)

    # 3. Required fields
    _validate_required_fields(tree)

    # 4. Mapping table
    mappings = _validate_mappings(tree["mappings"])
    logger.debug("Validated %d mappings", len(mappings))

    # 5. Frame order
    raw_frames = _validate_frame_order(tree["frames"], tree.get("total_frames"))
    logger.debug("Validated order of %d frames", len(raw_frames))

    # 6. Event references and variants
    pending = _validate_events(raw_frames, mappings)

    # 7. Numeric ranges
    frames = _validate_ranges(pending)

    # 8. Frame rate
    frame_rate = _validate_frame_rate(tree["frame_rate"])

    # All invariants proven; construction cannot fail
    return LogDocument(
        frame_rate=frame_rate,
        mappings=mappings,
        frames=frames,
        metadata=_extract_metadata(tree, version),
    )


# --- Stage helpers ---

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _validate_version(tree: Dict[str, Any]) -> int:
    version = tree.get("version", DEFAULT_VERSION)
    low, high = SUPPORTED_VERSIONS
    if not _is_int(version) or not low <= version <= high:
        raise LogLoadException(unsupported_version(version, SUPPORTED_VERSIONS))
    return version


def _validate_required_fields(tree: Dict[str, Any]) -> None:
    for name in REQUIRED_TOP_LEVEL_FIELDS:
        if tree.get(name) is None:
            raise LogLoadException(missing_field(name))


def _parse_kind(raw: Any) -> InputKind:
    if isinstance(raw, str):
        try:
            return InputKind(raw.strip().lower())
        except ValueError:
            pass
    raise LogLoadException(unknown_input_kind(raw))


def _parse_button_state(raw: Any) -> ButtonState:
    if isinstance(raw, str):
        try:
            return ButtonState(raw.strip().lower())
        except ValueError:
            pass
    raise LogLoadException(unknown_button_state(raw))


def _parse_color(raw: Any) -> Tuple[int, int, int]:
    """Accept "#RRGGBB", "RRGGBB" or [r, g, b] with 0..255 components."""
    if isinstance(raw, str):
        hex_part = raw[1:] if raw.startswith("#") else raw
        if len(hex_part) == 6:
            try:
                return (
                    int(hex_part[0:2], 16),
                    int(hex_part[2:4], 16),
                    int(hex_part[4:6], 16),
                )
            except ValueError:
                pass
    elif isinstance(raw, list) and len(raw) == 3:
        if all(_is_int(c) and 0 <= c <= 255 for c in raw):
            return (raw[0], raw[1], raw[2])
    raise LogLoadException(invalid_color(raw))


def _validate_mappings(raw_mappings: Any) -> Dict[int, InputMappingDescriptor]:
    if not isinstance(raw_mappings, list):
        raise LogLoadException(invalid_format("mappings must be a list"))

    mappings: Dict[int, InputMappingDescriptor] = {}
    for i, raw in enumerate(raw_mappings):
        path = f"mappings[{i}]"
        if not isinstance(raw, dict):
            raise LogLoadException(invalid_format(f"{path} must be an object"))

        mapping_id = raw.get("id")
        if mapping_id is None:
            raise LogLoadException(missing_field(f"{path}.id"))
        if not _is_int(mapping_id):
            raise LogLoadException(invalid_format(f"{path}.id must be an integer"))
        if mapping_id in mappings:
            raise LogLoadException(duplicate_mapping_id(mapping_id))

        name = raw.get("name")
        if name is None or (isinstance(name, str) and not name.strip()):
            raise LogLoadException(missing_field(f"{path}.name"))
        if not isinstance(name, str):
            raise LogLoadException(invalid_format(f"{path}.name must be a string"))

        if raw.get("kind") is None:
            raise LogLoadException(missing_field(f"{path}.kind"))
        kind = _parse_kind(raw["kind"])

        raw_color = raw.get("color")
        color = DEFAULT_KIND_COLORS[kind] if raw_color is None else _parse_color(raw_color)

        mappings[mapping_id] = InputMappingDescriptor(
            id=mapping_id,
            name=name,
            kind=kind,
            display_color=color,
        )
    return mappings


def _validate_frame_order(raw_frames: Any, declared_total: Any) -> List[List[Any]]:
    """Check frame numbering; return each frame's raw event list by position."""
    if not isinstance(raw_frames, list):
        raise LogLoadException(invalid_format("frames must be a list"))

    events_by_frame: List[List[Any]] = []
    for position, raw in enumerate(raw_frames):
        path = f"frames[{position}]"
        if not isinstance(raw, dict):
            raise LogLoadException(invalid_format(f"{path} must be an object"))
        if raw.get("frame_number") is None:
            raise LogLoadException(missing_field(f"{path}.frame_number"))

        frame_number = raw["frame_number"]
        if not _is_int(frame_number) or frame_number != position:
            raise LogLoadException(frame_order_violation(position, frame_number))

        events = raw.get("events")
        if events is None:
            events = []
        elif not isinstance(events, list):
            raise LogLoadException(invalid_format(f"{path}.events must be a list"))
        events_by_frame.append(events)

    if declared_total is not None:
        if not _is_int(declared_total) or declared_total != len(events_by_frame):
            raise LogLoadException(frame_count_mismatch(declared_total, len(events_by_frame)))

    return events_by_frame


def _infer_event_kind(raw: Dict[str, Any], declared: InputKind) -> InputKind:
    if raw.get("kind") is not None:
        return _parse_kind(raw["kind"])
    if "state" in raw:
        return InputKind.BUTTON
    if "x" in raw or "y" in raw:
        return InputKind.AXIS2D
    if "value" in raw:
        return InputKind.AXIS1D
    # No payload at all; report the field the declared kind needs
    return declared


def _validate_events(
    events_by_frame: List[List[Any]],
    mappings: Dict[int, InputMappingDescriptor],
) -> List[List[_PendingEvent]]:
    pending_frames: List[List[_PendingEvent]] = []
    for frame_number, raw_events in enumerate(events_by_frame):
        seen = set()
        pending: List[_PendingEvent] = []
        for j, raw in enumerate(raw_events):
            path = f"frames[{frame_number}].events[{j}]"
            if not isinstance(raw, dict):
                raise LogLoadException(invalid_format(f"{path} must be an object"))
            if raw.get("mapping_id") is None:
                raise LogLoadException(missing_field(f"{path}.mapping_id"))

            mapping_id = raw["mapping_id"]
            if not _is_int(mapping_id) or mapping_id not in mappings:
                raise LogLoadException(unknown_mapping_id(mapping_id, frame_number))
            if mapping_id in seen:
                raise LogLoadException(duplicate_event(frame_number, mapping_id))
            seen.add(mapping_id)

            declared = mappings[mapping_id].kind
            found = _infer_event_kind(raw, declared)
            if found != declared:
                raise LogLoadException(kind_mismatch(
                    mapping_id, declared.value, found.value, frame_number
                ))

            for name in PAYLOAD_FIELDS[declared]:
                if raw.get(name) is None:
                    raise LogLoadException(missing_field(f"{path}.{name}"))

            if declared == InputKind.BUTTON:
                pending.append(_PendingEvent(
                    mapping_id=mapping_id,
                    kind=declared,
                    path=path,
                    state=_parse_button_state(raw["state"]),
                ))
            else:
                values = tuple(raw[name] for name in PAYLOAD_FIELDS[declared])
                for name, value in zip(PAYLOAD_FIELDS[declared], values):
                    if not _is_number(value):
                        raise LogLoadException(invalid_format(f"{path}.{name} must be a number"))
                pending.append(_PendingEvent(
                    mapping_id=mapping_id,
                    kind=declared,
                    path=path,
                    values=values,
                ))
        pending_frames.append(pending)
    return pending_frames


def _check_axis_value(field: str, value: Any) -> float:
    low, high = AXIS_RANGE
    # NaN fails both comparisons
    if not low <= value <= high:
        raise LogLoadException(value_out_of_range(field, value, AXIS_RANGE))
    return float(value)


def _validate_ranges(pending_frames: List[List[_PendingEvent]]) -> Tuple[FrameSnapshot, ...]:
    frames: List[FrameSnapshot] = []
    for frame_number, pending in enumerate(pending_frames):
        events: Dict[int, InputEvent] = {}
        for p in pending:
            if p.kind == InputKind.BUTTON:
                events[p.mapping_id] = ButtonEvent(p.state)
            elif p.kind == InputKind.AXIS1D:
                events[p.mapping_id] = Axis1DEvent(
                    _check_axis_value(f"{p.path}.value", p.values[0])
                )
            else:
                events[p.mapping_id] = Axis2DEvent(
                    _check_axis_value(f"{p.path}.x", p.values[0]),
                    _check_axis_value(f"{p.path}.y", p.values[1]),
                )
        frames.append(FrameSnapshot(frame_number, MappingProxyType(events)))
    return tuple(frames)


def _validate_frame_rate(raw: Any) -> float:
    if not _is_number(raw):
        raise LogLoadException(invalid_frame_rate(raw))
    try:
        rate = float(raw)
    except OverflowError:
        raise LogLoadException(invalid_frame_rate(raw))
    if not math.isfinite(rate) or rate <= 0:
        raise LogLoadException(invalid_frame_rate(raw))
    return rate


def _extract_metadata(tree: Dict[str, Any], version: int) -> LogMetadata:
    raw = tree.get("metadata")
    if not isinstance(raw, dict):
        return LogMetadata(version=version)
    created_at = raw.get("created_at")
    source = raw.get("source")
    return LogMetadata(
        version=version,
        created_at=created_at if isinstance(created_at, str) else None,
        source=source if isinstance(source, str) else None,
    )
