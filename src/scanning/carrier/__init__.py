"""Carrier adapter abstraction — pluggable carrier shipment API integration."""

import os

_carrier_instance = None


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. Set the CARRIER_ADAPTER environment variable
    to ``http`` to talk to the real API with the domain's carrier settings.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = os.environ.get("CARRIER_ADAPTER", "fake")
        if adapter == "fake":
            from scanning.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "http":
            from scanning.carrier.http_adapter import HttpCarrier
            from scanning.domain import scanning
            from scanning.settings import CarrierSettings

            _carrier_instance = HttpCarrier(CarrierSettings.from_domain(scanning))
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier):
    """Install a specific adapter (tests and scripts)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
