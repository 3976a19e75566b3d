"""Immutable settings snapshots read from the domain's ``[custom]`` constants.

Validators and projectors receive a snapshot as an argument instead of reading
site settings themselves. Callers refresh the snapshot between requests.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum

BUILD_LEAD_TIME = timedelta(hours=2)
TOKEN_REFRESH_MARGIN = timedelta(minutes=5)
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600

DEFAULT_DUPLICATE_WINDOW_HOURS = 24
DEFAULT_BEHIND_MINUTES = 15
DEFAULT_CRITICAL_MINUTES = 30
DEFAULT_REFRESH_INTERVAL_MS = 300_000
DEFAULT_LOOKBACK_HOURS = 36
DEFAULT_CARRIER_TIMEOUT_SECONDS = 30


class DisplayMode(Enum):
    FULL = "FULL"
    SHIPMENT_ONLY = "SHIPMENT_ONLY"
    SKID_ONLY = "SKID_ONLY"
    COMPLETION_ONLY = "COMPLETION_ONLY"


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


@dataclass(frozen=True)
class ScanSettings:
    """Duplicate and consistency rules applied while recording scans."""

    allow_duplicates: bool = False
    duplicate_window_hours: int = DEFAULT_DUPLICATE_WINDOW_HOURS
    enforce_palletization: bool = True
    internal_kanban_exclusions: frozenset[str] = field(default_factory=frozenset)

    @property
    def duplicate_window(self) -> timedelta:
        return timedelta(hours=self.duplicate_window_hours)

    @classmethod
    def from_domain(cls, domain) -> "ScanSettings":
        exclusions = getattr(domain, "INTERNAL_KANBAN_EXCLUSIONS", None) or []
        return cls(
            allow_duplicates=_as_bool(getattr(domain, "KANBAN_ALLOW_DUPLICATES", False)),
            duplicate_window_hours=int(
                getattr(domain, "KANBAN_DUPLICATE_WINDOW_HOURS", DEFAULT_DUPLICATE_WINDOW_HOURS)
            ),
            enforce_palletization=_as_bool(getattr(domain, "ENFORCE_PALLETIZATION", True)),
            internal_kanban_exclusions=frozenset(p.replace("-", "").upper() for p in exclusions),
        )


@dataclass(frozen=True)
class DockMonitorSettings:
    """Thresholds and display options for the dock monitor."""

    behind_minutes: int = DEFAULT_BEHIND_MINUTES
    critical_minutes: int = DEFAULT_CRITICAL_MINUTES
    display_mode: DisplayMode = DisplayMode.FULL
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    lookback_hours: int = DEFAULT_LOOKBACK_HOURS

    def __post_init__(self):
        if self.behind_minutes < 0 or self.critical_minutes < 0:
            raise ValueError("Dock monitor thresholds must not be negative")
        if self.critical_minutes < self.behind_minutes:
            raise ValueError("Critical threshold must be greater than or equal to the behind threshold")

    @property
    def lookback(self) -> timedelta:
        return timedelta(hours=self.lookback_hours)

    @classmethod
    def from_domain(cls, domain) -> "DockMonitorSettings":
        return cls(
            behind_minutes=int(getattr(domain, "DOCK_BEHIND_MINUTES", DEFAULT_BEHIND_MINUTES)),
            critical_minutes=int(getattr(domain, "DOCK_CRITICAL_MINUTES", DEFAULT_CRITICAL_MINUTES)),
            display_mode=DisplayMode(getattr(domain, "DOCK_DISPLAY_MODE", DisplayMode.FULL.value)),
            refresh_interval_ms=int(getattr(domain, "DOCK_REFRESH_INTERVAL_MS", DEFAULT_REFRESH_INTERVAL_MS)),
            lookback_hours=int(getattr(domain, "DOCK_LOOKBACK_HOURS", DEFAULT_LOOKBACK_HOURS)),
        )


@dataclass(frozen=True)
class CarrierSettings:
    """Connection details for the carrier API."""

    token_url: str
    api_base_url: str
    client_id: str
    client_secret: str = field(repr=False)
    x_client_id: str = ""
    timeout_seconds: float = DEFAULT_CARRIER_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.token_url and self.api_base_url and self.client_id and self.client_secret)

    @classmethod
    def from_domain(cls, domain) -> "CarrierSettings":
        return cls(
            token_url=getattr(domain, "CARRIER_TOKEN_URL", "") or "",
            api_base_url=getattr(domain, "CARRIER_API_BASE_URL", "") or "",
            client_id=getattr(domain, "CARRIER_CLIENT_ID", "") or "",
            client_secret=getattr(domain, "CARRIER_CLIENT_SECRET", "") or "",
            x_client_id=getattr(domain, "CARRIER_X_CLIENT_ID", "") or "",
            timeout_seconds=float(getattr(domain, "CARRIER_TIMEOUT_SECONDS", DEFAULT_CARRIER_TIMEOUT_SECONDS)),
        )
