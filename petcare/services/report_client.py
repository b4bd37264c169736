import logging

import httpx
from pydantic import ValidationError

from petcare.exceptions import UpstreamError
from petcare.models.report import HealthReport, ReportDocument

logger = logging.getLogger(__name__)

REPORT_PATH = "/api/generate-health-report"
PDF_MAGIC_BYTES = b"%PDF-"
DEFAULT_ERROR_MESSAGE = "Failed to generate report"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return DEFAULT_ERROR_MESSAGE
    if isinstance(body, dict):
        message = body.get("error") or body.get("detail")
        if isinstance(message, str) and message:
            return message
    return DEFAULT_ERROR_MESSAGE


class ReportServiceClient:
    """Client for the external health-report service.

    The service answers either with a JSON ``HealthReport`` (canonical) or
    with a PDF body (legacy transport); the response is dispatched on its
    Content-Type, falling back to the PDF signature.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url, timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate_report(
        self, payload: dict, document_name: str
    ) -> HealthReport | ReportDocument:
        try:
            response = await self._client.post(REPORT_PATH, json=payload)
        except httpx.TimeoutException as exc:
            raise UpstreamError(
                "Report service timed out. Please try again."
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Report service unreachable: {exc}") from exc

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "Report service returned %s: %s", response.status_code, message
            )
            raise UpstreamError(message)

        content_type = (
            response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        )
        if content_type == "application/pdf" or response.content.startswith(
            PDF_MAGIC_BYTES
        ):
            return ReportDocument(content=response.content, filename=document_name)

        try:
            return HealthReport.model_validate_json(response.content)
        except ValidationError as exc:
            logger.warning("Malformed report from service: %s", exc)
            raise UpstreamError("Report service returned a malformed report") from exc
