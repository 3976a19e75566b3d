"""Fake carrier adapter — deterministic carrier for testing and development.

Generates confirmation numbers and records every submission. Can be configured
to reject with field errors or to time out.
"""

from uuid import uuid4

from scanning.carrier.port import CarrierPort, CarrierResponse
from scanning.errors import CarrierErrorKind, CarrierSubmissionError, FieldError


class FakeCarrier(CarrierPort):
    """Fake carrier that always confirms by default."""

    def __init__(self):
        self.calls: list[tuple[str, object]] = []
        self.configure()

    def configure(
        self,
        should_succeed: bool = True,
        errors: list[FieldError] | None = None,
        timeout: bool = False,
        confirmation_number: str | None = None,
        failure_reason: str = "Carrier rejected the submission",
    ):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.errors = list(errors or [])
        self.timeout = timeout
        self.confirmation_number = confirmation_number
        self.failure_reason = failure_reason

    def submit_skid_build(self, payload: list[dict]) -> CarrierResponse:
        return self._submit("skid", payload)

    def submit_trailer(self, payload: dict) -> CarrierResponse:
        return self._submit("trailer", payload)

    def _submit(self, resource: str, payload) -> CarrierResponse:
        self.calls.append((resource, payload))
        if self.timeout:
            raise CarrierSubmissionError(CarrierErrorKind.TIMEOUT, "Carrier did not respond within 30 seconds")
        if not self.should_succeed or self.errors:
            raise CarrierSubmissionError(
                CarrierErrorKind.REJECTED,
                self.failure_reason,
                status_code=400,
                errors=self.errors,
            )
        confirmation = self.confirmation_number or f"FAKE-{uuid4().hex[:10].upper()}"
        return CarrierResponse(confirmation_number=confirmation, body={"confirmationNumber": confirmation})
