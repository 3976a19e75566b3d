"""Shipment exception ledger.

Operators annotate an order (or one of its skids) with coded exceptions. An
order may carry several codes at once; all of them go to the carrier, and the
most severe one overrides the dock monitor's time-based status.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from scanning.domain import scanning
from scanning.ledger.events import ExceptionRecorded

MAX_COMMENT_LENGTH = 500


class ExceptionLevel(Enum):
    ORDER = "order"
    TRAILER = "trailer"
    SKID = "skid"


class ExceptionCode(Enum):
    REVISED_QUANTITY = "10"
    MODIFIED_QUANTITY_PER_BOX = "11"
    SHORT_SHIPMENT = "12"
    NON_STANDARD_PACKAGING = "20"


ORDER_EXCEPTION_CODES = frozenset(code.value for code in ExceptionCode)
TRAILER_EXCEPTION_CODES = frozenset({"13", "17", "24", "99"})
SKID_EXCEPTION_CODES = frozenset({"14", "15", "18", "19", "21", "22"})

_CODES_BY_LEVEL = {
    ExceptionLevel.ORDER: ORDER_EXCEPTION_CODES,
    ExceptionLevel.TRAILER: TRAILER_EXCEPTION_CODES,
    ExceptionLevel.SKID: SKID_EXCEPTION_CODES,
}


class StatusOverride(Enum):
    SHORT_SHIPPED = "SHORT_SHIPPED"
    PROJECT_SHORT = "PROJECT_SHORT"


# Highest severity first.
_OVERRIDE_PRECEDENCE = (
    (frozenset({ExceptionCode.SHORT_SHIPMENT.value}), StatusOverride.SHORT_SHIPPED),
    (
        frozenset({ExceptionCode.REVISED_QUANTITY.value, ExceptionCode.MODIFIED_QUANTITY_PER_BOX.value}),
        StatusOverride.PROJECT_SHORT,
    ),
)


def level_for_code(code: str) -> ExceptionLevel:
    for level, codes in _CODES_BY_LEVEL.items():
        if code in codes:
            return level
    raise ValidationError({"code": [f"Unknown exception code '{code}'"]})


def severity_override(codes) -> StatusOverride | None:
    """Status forced by the most severe exception code present, if any."""
    present = set(codes)
    for trigger, override in _OVERRIDE_PRECEDENCE:
        if present & trigger:
            return override
    return None


@scanning.aggregate
class ShipmentException:
    order_id = Identifier(required=True)
    order_number = String(max_length=20)
    session_id = Identifier()
    code = String(required=True, max_length=10)
    level = String(required=True, choices=ExceptionLevel)
    related_skid_id = String(max_length=50)
    comments = String(max_length=MAX_COMMENT_LENGTH)
    created_by = String(max_length=100)
    created_at = DateTime()

    @classmethod
    def record(
        cls,
        order_id: str,
        code: str,
        created_by: str | None = None,
        order_number: str | None = None,
        session_id: str | None = None,
        related_skid_id: str | None = None,
        comments: str | None = None,
        exception_id: str | None = None,
    ):
        level = level_for_code(code)
        if level == ExceptionLevel.SKID and not related_skid_id:
            raise ValidationError({"related_skid_id": [f"Exception code {code} must reference a skid"]})

        now = datetime.now(UTC)
        identity = {"id": exception_id} if exception_id else {}
        exc = cls(
            **identity,
            order_id=order_id,
            order_number=order_number,
            session_id=session_id,
            code=code,
            level=level.value,
            related_skid_id=related_skid_id or None,
            comments=comments,
            created_by=created_by,
            created_at=now,
        )
        exc.raise_(
            ExceptionRecorded(
                exception_id=str(exc.id),
                order_id=order_id,
                session_id=session_id,
                code=code,
                level=level.value,
                related_skid_id=related_skid_id,
                recorded_at=now,
            )
        )
        return exc
