import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, Response

from petcare.dependencies import (
    CurrentUser,
    Store,
    get_report_synthesizer,
    limiter,
)
from petcare.exceptions import NotFoundError
from petcare.models.report import (
    GenerateReportRequest,
    InlineReport,
    ReportDocument,
    ReportPending,
)
from petcare.services.files import sanitize_filename
from petcare.services.renderer import render_inline, render_pdf
from petcare.services.synthesizer import ReportSynthesizer

router = APIRouter(prefix="/pets/{pet_id}", tags=["reports"])


@router.post(
    "/health-report",
    response_model=InlineReport,
    responses={
        status.HTTP_202_ACCEPTED: {"model": ReportPending},
        status.HTTP_200_OK: {"content": {"application/pdf": {}}},
    },
)
@limiter.limit("10/minute")
async def generate_health_report(
    request: Request,
    pet_id: str,
    body: GenerateReportRequest,
    current_user: CurrentUser,
    synthesizer: Annotated[ReportSynthesizer, Depends(get_report_synthesizer)],
) -> InlineReport | Response:
    report = await synthesizer.generate(pet_id, current_user, body.location)
    if report is None:
        return JSONResponse(
            status_code=status.HTTP_202_ACCEPTED,
            content=ReportPending().model_dump(),
        )
    if isinstance(report, ReportDocument):
        return Response(
            content=report.content,
            media_type=report.media_type,
            headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
        )
    return render_inline(report)


@router.get("/health-report.pdf")
async def download_health_report(
    pet_id: str, current_user: CurrentUser, store: Store
) -> Response:
    pet = await asyncio.to_thread(store.get_pet, pet_id, current_user)
    if pet is None:
        raise NotFoundError("Pet not found")
    records, reminders, logs = await asyncio.gather(
        asyncio.to_thread(store.list_records, pet_id, current_user),
        asyncio.to_thread(store.list_reminders, pet_id, current_user),
        asyncio.to_thread(store.list_logs, pet_id, current_user),
    )
    pdf = await asyncio.to_thread(render_pdf, pet, records, reminders, logs)
    filename = f"{sanitize_filename(pet.name, 'pet')}-medical-report.pdf"
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
