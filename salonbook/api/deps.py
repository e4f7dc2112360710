from fastapi import Request

from salonbook.models.api_models import WriteResponse
from salonbook.models.results import WriteOutcome, WriteResult
from salonbook.services.salon import Salon


def get_salon(request: Request) -> Salon:
    """The Salon built during application startup."""
    return request.app.state.salon


def write_response(result: WriteResult) -> WriteResponse:
    """
    Failed writes are raised (mapped to 503 by the app's handler).
    Local-only writes succeed but carry the storage error as a warning.
    """
    result.raise_for_failure()
    warning = None
    if result.outcome == WriteOutcome.LOCAL_ONLY and result.error:
        warning = f"Saved locally only: {result.error.message}"
    return WriteResponse(outcome=result.outcome, data=result.data, warning=warning)
