"""HTTP mapping for carrier failures.

Protean's handlers cover domain errors. Carrier failures are not domain
errors: the session stays active and the operator may resubmit.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from scanning.errors import CarrierSubmissionError

logger = structlog.get_logger(__name__)


def register_carrier_error_handler(app: FastAPI) -> None:
    @app.exception_handler(CarrierSubmissionError)
    async def carrier_error_handler(request: Request, exc: CarrierSubmissionError) -> JSONResponse:
        logger.warning("Carrier submission error returned to client", path=request.url.path, kind=exc.kind.value)
        return JSONResponse(
            status_code=504 if exc.is_timeout else 502,
            content={"error": exc.to_dict()},
        )
