"""HTTP carrier adapter — talks to the carrier's shipment API with requests.

Each submission is a single POST with a bounded timeout. There are no
retries: a timeout is reported as a failure even though the carrier may have
processed the request, and the operator decides whether to resubmit.
"""

import structlog
import requests

from scanning.carrier.port import CarrierPort, CarrierResponse
from scanning.carrier.response import interpret_response
from scanning.carrier.token import TokenCache
from scanning.errors import CarrierErrorKind, CarrierSubmissionError
from scanning.settings import CarrierSettings

logger = structlog.get_logger(__name__)


class HttpCarrier(CarrierPort):
    def __init__(
        self,
        settings: CarrierSettings,
        session: requests.Session | None = None,
        token_cache: TokenCache | None = None,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.token_cache = token_cache or TokenCache(settings, session=self.session)

    def submit_skid_build(self, payload: list[dict]) -> CarrierResponse:
        return self._post("skid", payload)

    def submit_trailer(self, payload: dict) -> CarrierResponse:
        return self._post("trailer", payload)

    def _headers(self, token: str) -> dict:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.settings.x_client_id:
            headers["X-Client-Id"] = self.settings.x_client_id
        return headers

    def _post(self, resource: str, payload) -> CarrierResponse:
        if not self.settings.is_configured:
            raise CarrierSubmissionError(CarrierErrorKind.CONFIGURATION, "Carrier API is not configured")

        token = self.token_cache.get_token()
        url = f"{self.settings.api_base_url.rstrip('/')}/{resource}"
        logger.info("Submitting to carrier", url=url, resource=resource)

        try:
            response = self.session.post(
                url,
                json=payload,
                headers=self._headers(token),
                timeout=self.settings.timeout_seconds,
            )
        except requests.Timeout as exc:
            logger.warning("Carrier submission timed out", url=url, timeout=self.settings.timeout_seconds)
            raise CarrierSubmissionError(
                CarrierErrorKind.TIMEOUT,
                f"Carrier did not respond within {self.settings.timeout_seconds:g} seconds",
            ) from exc
        except requests.RequestException as exc:
            logger.warning("Carrier submission failed", url=url, error=str(exc))
            raise CarrierSubmissionError(CarrierErrorKind.NETWORK, f"Could not reach carrier: {exc}") from exc

        if response.status_code == 401:
            self.token_cache.invalidate()
            raise CarrierSubmissionError(
                CarrierErrorKind.AUTH, "Carrier rejected the access token", status_code=response.status_code
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        try:
            result = interpret_response(response.status_code, body)
        except CarrierSubmissionError as exc:
            logger.warning(
                "Carrier did not confirm submission",
                resource=resource,
                status_code=exc.status_code,
                kind=exc.kind.value,
                error_count=len(exc.errors),
            )
            raise

        logger.info("Carrier confirmed submission", resource=resource, confirmation_number=result.confirmation_number)
        return result
