"""
inputlog_ingest/errors.py - Load Error Taxonomy (Machine-Enforced)

Errors are contracts, not strings. Every load failure carries a stable code
and structured details; the message is for humans only.
"""
from enum import Enum
from dataclasses import dataclass
from typing import Optional, Dict, Any, Tuple


class LoadErrorCode(str, Enum):
    # Parser stages, in pipeline order
    INVALID_FORMAT = "INVALID_FORMAT"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    MISSING_FIELD = "MISSING_FIELD"
    DUPLICATE_MAPPING_ID = "DUPLICATE_MAPPING_ID"
    UNKNOWN_INPUT_KIND = "UNKNOWN_INPUT_KIND"
    INVALID_COLOR = "INVALID_COLOR"
    FRAME_ORDER_VIOLATION = "FRAME_ORDER_VIOLATION"
    FRAME_COUNT_MISMATCH = "FRAME_COUNT_MISMATCH"
    UNKNOWN_MAPPING_ID = "UNKNOWN_MAPPING_ID"
    KIND_MISMATCH = "KIND_MISMATCH"
    DUPLICATE_EVENT = "DUPLICATE_EVENT"
    UNKNOWN_BUTTON_STATE = "UNKNOWN_BUTTON_STATE"
    VALUE_OUT_OF_RANGE = "VALUE_OUT_OF_RANGE"
    INVALID_FRAME_RATE = "INVALID_FRAME_RATE"

    # Playback engine
    EMPTY_DOCUMENT = "EMPTY_DOCUMENT"

    # File access (viewer session)
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_READ_ERROR = "FILE_READ_ERROR"
    UNSUPPORTED_FILE_TYPE = "UNSUPPORTED_FILE_TYPE"


# The user can fix the file system and try the same path again
RETRYABLE_CODES = frozenset({
    LoadErrorCode.FILE_NOT_FOUND,
    LoadErrorCode.FILE_READ_ERROR,
})


@dataclass(frozen=True)
class LoadError:
    """Immutable description of why a load failed."""
    error_code: LoadErrorCode
    message: str
    details: Optional[Dict[str, Any]] = None

    @property
    def is_retryable(self) -> bool:
        return self.error_code in RETRYABLE_CODES

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the LoadError into a plain dictionary suitable for external consumption.

        Returns:
            dict: Dictionary with keys:
                - error_code (str): string value of the error code.
                - message (str): human-readable error message.
                - details (dict): additional context; empty dict if no details were set.
                - retryable (bool): whether retrying the same path can succeed.
        """
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details or {},
            "retryable": self.is_retryable,
        }


class LogLoadException(Exception):
    """Raised when a log cannot become a LogDocument or cannot be played."""
    def __init__(self, error: LoadError):
        self.error = error
        super().__init__(error.message)

    @property
    def error_code(self) -> LoadErrorCode:
        return self.error.error_code


# Pre-defined error factories for consistency

def invalid_format(reason: str, line: Optional[int] = None, column: Optional[int] = None) -> LoadError:
    """
    Create a LoadError for input that cannot be decoded into the expected tree.

    Parameters:
        reason (str): What is wrong with the input.
        line (Optional[int]): 1-based line of a syntax error, when known.
        column (Optional[int]): 1-based column of a syntax error, when known.
    """
    details: Dict[str, Any] = {"reason": reason}
    if line is not None:
        details["line"] = line
    if column is not None:
        details["column"] = column
    return LoadError(
        error_code=LoadErrorCode.INVALID_FORMAT,
        message=f"Invalid log format: {reason}",
        details=details,
    )


def unsupported_version(found: Any, supported_range: Tuple[int, int]) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.UNSUPPORTED_VERSION,
        message=(
            f"Unsupported format version {found!r}: "
            f"supported {supported_range[0]}..{supported_range[1]}"
        ),
        details={"found": found, "supported_range": list(supported_range)},
    )


def missing_field(name: str) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.MISSING_FIELD,
        message=f"Missing required field: {name}",
        details={"field": name},
    )


def duplicate_mapping_id(mapping_id: int) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.DUPLICATE_MAPPING_ID,
        message=f"Mapping id {mapping_id} declared more than once",
        details={"id": mapping_id},
    )


def unknown_input_kind(raw: Any) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.UNKNOWN_INPUT_KIND,
        message=f"Unknown input kind {raw!r}: expected one of button, axis1d, axis2d",
        details={"raw": raw},
    )


def invalid_color(value: Any) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.INVALID_COLOR,
        message=f"Invalid color format {value!r}: expected hex color like #RRGGBB",
        details={"value": value},
    )


def frame_order_violation(expected: int, found: Any) -> LoadError:
    """
    Create a LoadError for a frame whose number does not match its position.

    Parameters:
        expected (int): The zero-based position of the frame in the file.
        found (Any): The frame_number actually recorded.
    """
    return LoadError(
        error_code=LoadErrorCode.FRAME_ORDER_VIOLATION,
        message=f"Expected frame {expected}, got {found!r}",
        details={"expected": expected, "found": found},
    )


def frame_count_mismatch(declared: Any, found: int) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.FRAME_COUNT_MISMATCH,
        message=f"total_frames declares {declared!r} frames but {found} are present",
        details={"declared": declared, "found": found},
    )


def unknown_mapping_id(mapping_id: Any, frame: Optional[int] = None) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.UNKNOWN_MAPPING_ID,
        message=f"Event references undeclared mapping id {mapping_id!r}",
        details={"id": mapping_id, "frame": frame},
    )


def kind_mismatch(mapping_id: int, expected: str, found: str, frame: Optional[int] = None) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.KIND_MISMATCH,
        message=f"Mapping {mapping_id} is declared {expected} but event is {found}",
        details={"id": mapping_id, "expected": expected, "found": found, "frame": frame},
    )


def duplicate_event(frame: int, mapping_id: int) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.DUPLICATE_EVENT,
        message=f"Mapping {mapping_id} has more than one event in frame {frame}",
        details={"frame": frame, "id": mapping_id},
    )


def unknown_button_state(raw: Any) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.UNKNOWN_BUTTON_STATE,
        message=f"Unknown button state {raw!r}: expected one of pressed, held, released",
        details={"raw": raw},
    )


def value_out_of_range(field: str, value: Any, expected_range: Tuple[float, float]) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.VALUE_OUT_OF_RANGE,
        message=f"{field}={value!r} outside [{expected_range[0]}, {expected_range[1]}]",
        details={"field": field, "value": value, "expected_range": list(expected_range)},
    )


def invalid_frame_rate(value: Any) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.INVALID_FRAME_RATE,
        message=f"frame_rate must be a finite number > 0, got {value!r}",
        details={"value": value},
    )


def empty_document() -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.EMPTY_DOCUMENT,
        message="Log contains no frames; nothing to play",
        details={},
    )


def file_not_found(path: str) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.FILE_NOT_FOUND,
        message=f"The file '{path}' could not be found.",
        details={"path": path},
    )


def file_read_error(path: str, reason: str) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.FILE_READ_ERROR,
        message=f"Could not read the file '{path}': {reason}",
        details={"path": path, "reason": reason},
    )


def unsupported_file_type(path: str, expected: Tuple[str, ...]) -> LoadError:
    return LoadError(
        error_code=LoadErrorCode.UNSUPPORTED_FILE_TYPE,
        message=f"Please use a file with one of these extensions: {', '.join(expected)}",
        details={"path": path, "expected": list(expected)},
    )
