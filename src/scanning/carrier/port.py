"""Carrier port — abstract interface for the carrier's shipment API.

The session engine programs against the port; adapters are swapped via
configuration. Both submissions either return a confirmed ``CarrierResponse``
or raise ``CarrierSubmissionError``. Adapters never retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from scanning.errors import FieldError


@dataclass(frozen=True)
class CarrierResponse:
    """Outcome of a confirmed carrier submission."""

    confirmation_number: str
    status_code: int = 200
    message: str | None = None
    warnings: list[FieldError] = field(default_factory=list)
    body: dict = field(default_factory=dict)


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def submit_skid_build(self, payload: list[dict]) -> CarrierResponse:
        """Report the skids built for an order.

        Raises:
            CarrierSubmissionError: the carrier did not confirm the build.
        """
        ...

    @abstractmethod
    def submit_trailer(self, payload: dict) -> CarrierResponse:
        """Report a loaded trailer with its orders and skids.

        Raises:
            CarrierSubmissionError: the carrier did not confirm the load.
        """
        ...
