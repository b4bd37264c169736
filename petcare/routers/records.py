from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request, UploadFile
from fastapi.responses import Response

from petcare.dependencies import (
    CurrentUser,
    Store,
    get_ingestion_controller,
    limiter,
)
from petcare.exceptions import NotFoundError, RecordNotFoundError
from petcare.models.records import RecordSummary, RecordUploadResponse
from petcare.services.export import export_records_archive
from petcare.services.ingestion import IngestionController, read_record_file
from petcare.services.files import sanitize_filename
from petcare.services.search import filter_records

router = APIRouter(prefix="/pets/{pet_id}/records", tags=["records"])


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.post("", response_model=RecordUploadResponse)
@limiter.limit("30/minute")
async def upload_record(
    request: Request,
    pet_id: str,
    file: UploadFile,
    current_user: CurrentUser,
    controller: Annotated[IngestionController, Depends(get_ingestion_controller)],
    title: Annotated[str | None, Form()] = None,
) -> RecordUploadResponse:
    content = await file.read()
    result = await controller.upload(
        pet_id=pet_id,
        owner_id=current_user,
        filename=file.filename,
        content=content,
        mime_type=file.content_type,
        title=title,
    )
    return RecordUploadResponse(
        record=RecordSummary.from_record(result.record),
        extraction_warning=result.warning,
        records=[RecordSummary.from_record(r) for r in result.records],
    )


@router.get("", response_model=list[RecordSummary])
def list_records(
    pet_id: str,
    current_user: CurrentUser,
    store: Store,
    q: str | None = None,
) -> list[RecordSummary]:
    records = filter_records(store.list_records(pet_id, current_user), q)
    return [RecordSummary.from_record(r) for r in records]


@router.get("/export")
def export_records(pet_id: str, current_user: CurrentUser, store: Store) -> Response:
    pet = store.get_pet(pet_id, current_user)
    if pet is None:
        raise NotFoundError("Pet not found")
    filename, archive = export_records_archive(
        pet.name, store.list_records(pet_id, current_user)
    )
    return Response(
        content=archive,
        media_type="application/zip",
        headers=_attachment(filename),
    )


@router.get("/{record_id}/files/{filename}")
def download_record_file(
    pet_id: str,
    record_id: str,
    filename: str,
    current_user: CurrentUser,
    store: Store,
) -> Response:
    record = store.get_record(record_id, current_user, pet_id=pet_id)
    if record is None:
        raise RecordNotFoundError("Medical record not found")
    content, mime_type = read_record_file(record, filename)
    return Response(
        content=content,
        media_type=mime_type,
        headers=_attachment(sanitize_filename(filename, "download")),
    )


@router.delete("/{record_id}", response_model=list[RecordSummary])
def delete_record(
    pet_id: str,
    record_id: str,
    current_user: CurrentUser,
    store: Store,
) -> list[RecordSummary]:
    store.delete_record(record_id, current_user, pet_id=pet_id)
    return [RecordSummary.from_record(r) for r in store.list_records(pet_id, current_user)]
