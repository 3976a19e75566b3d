"""Error taxonomy for the scanning context.

Decode and rejection errors are ``ValidationError`` subclasses so they surface as
400s through Protean's FastAPI exception handlers. State errors are
``InvalidStateError`` (409). Carrier failures carry the carrier's own field
errors so the operator sees them verbatim.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import InvalidStateError, ValidationError


class DecodeError(ValidationError):
    """A barcode could not be decoded. Nothing has been recorded."""

    def __init__(self, reason: str, field: str | None = None, detail: str | None = None):
        self.reason = reason
        self.field = field
        key = field or "barcode"
        message = detail or (f"Invalid {field}" if field else "Invalid barcode length")
        super().__init__({key: [message]})


class RejectionReason(Enum):
    SESSION_NOT_FOUND = "session_not_found"
    ORDER_NOT_FOUND = "order_not_found"
    UNPLANNED_ITEM = "unplanned_item"
    UNPLANNED_SKID = "unplanned_skid"
    DUPLICATE_SCAN = "duplicate_scan"
    DUPLICATE_SERIAL = "duplicate_serial"
    PALLETIZATION_MISMATCH = "palletization_mismatch"
    ROUTE_MISMATCH = "route_mismatch"
    PART_NUMBER_MISMATCH = "part_number_mismatch"
    KANBAN_CODE_MISMATCH = "kanban_code_mismatch"
    ORDER_NOT_BUILD_COMPLETE = "order_not_build_complete"
    ORDER_ALREADY_SHIPPED = "order_already_shipped"
    INVALID_BOX_NUMBER = "invalid_box_number"


class ScanRejectedError(ValidationError):
    """The validator refused a scan. The session is unchanged."""

    def __init__(
        self,
        reason: RejectionReason,
        message: str,
        order_number: str | None = None,
        scanned_count: int = 0,
        total_count: int = 0,
    ):
        self.reason = reason
        self.message = message
        self.order_number = order_number
        self.scanned_count = scanned_count
        self.total_count = total_count
        super().__init__({"scan": [message], "reason": [reason.value]})


class SessionNotActiveError(InvalidStateError):
    """An operation targeted a session that is not open for changes."""

    def __init__(self, session_id: str, status: str):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session {session_id} is not active (status: {status})")


@dataclass(frozen=True)
class FieldError:
    """A single field-level error reported by the carrier."""

    field: str | None
    message: str
    key_object: str | None = None

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message, "keyObject": self.key_object}


class CarrierErrorKind(Enum):
    TIMEOUT = "timeout"
    NETWORK = "network"
    HTTP = "http"
    REJECTED = "rejected"
    AUTH = "auth"
    CONFIGURATION = "configuration"


class CarrierSubmissionError(Exception):
    """The carrier did not confirm a submission."""

    def __init__(
        self,
        kind: CarrierErrorKind,
        message: str,
        status_code: int | None = None,
        errors: list[FieldError] | None = None,
    ):
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.errors = list(errors or [])
        super().__init__(message)

    @property
    def is_timeout(self) -> bool:
        return self.kind is CarrierErrorKind.TIMEOUT

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "errors": [e.to_dict() for e in self.errors],
        }
