"""Interpret carrier responses.

The carrier answers in one of two shapes::

    {"confirmationNumber": ..., "status": ..., "message": ...,
     "errors": [{"field": ..., "message": ..., "keyObject": ...}]}

    {"code": 200, "confirmationNumber": ...,
     "messages": [{"keyObject": ..., "message": [...], "type": "Error"}]}

A submission is confirmed only for a 2xx status with no errors and a
confirmation number.
"""

from scanning.carrier.port import CarrierResponse
from scanning.errors import CarrierErrorKind, CarrierSubmissionError, FieldError


def _field_errors(body: dict) -> tuple[list[FieldError], list[FieldError]]:
    """Split the body's messages into (errors, warnings)."""
    errors: list[FieldError] = []
    warnings: list[FieldError] = []

    for entry in body.get("errors") or []:
        if isinstance(entry, dict):
            errors.append(
                FieldError(
                    field=entry.get("field"),
                    message=str(entry.get("message") or ""),
                    key_object=entry.get("keyObject"),
                )
            )
        else:
            errors.append(FieldError(field=None, message=str(entry)))

    for entry in body.get("messages") or []:
        if not isinstance(entry, dict):
            errors.append(FieldError(field=None, message=str(entry)))
            continue
        texts = entry.get("message") or [""]
        if isinstance(texts, str):
            texts = [texts]
        target = warnings if str(entry.get("type") or "Error").lower() == "warning" else errors
        for text in texts:
            target.append(FieldError(field=None, message=str(text), key_object=entry.get("keyObject")))

    return errors, warnings


def interpret_response(status_code: int, body) -> CarrierResponse:
    """Turn an HTTP status and parsed JSON body into a confirmed response.

    Raises:
        CarrierSubmissionError: on a non-2xx status, reported errors, or a
            missing confirmation number.
    """
    if not isinstance(body, dict):
        body = {}

    # The envelope code wins over the transport status when present.
    code = body.get("code")
    effective = code if isinstance(code, int) else status_code

    errors, warnings = _field_errors(body)
    message = body.get("message")

    if not 200 <= status_code < 300 or not 200 <= effective < 300:
        raise CarrierSubmissionError(
            CarrierErrorKind.HTTP,
            message or (errors[0].message if errors else f"Carrier returned HTTP {effective}"),
            status_code=effective,
            errors=errors,
        )

    if errors:
        raise CarrierSubmissionError(
            CarrierErrorKind.REJECTED,
            message or errors[0].message or "Carrier rejected the submission",
            status_code=effective,
            errors=errors,
        )

    confirmation = body.get("confirmationNumber")
    if not confirmation:
        raise CarrierSubmissionError(
            CarrierErrorKind.REJECTED,
            message or "Carrier response did not include a confirmation number",
            status_code=effective,
        )

    return CarrierResponse(
        confirmation_number=str(confirmation),
        status_code=effective,
        message=message,
        warnings=warnings,
        body=body,
    )
