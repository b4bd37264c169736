import logging
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, status
from fastapi.responses import Response

from petcare.dependencies import CurrentUser, Store
from petcare.exceptions import NotFoundError
from petcare.models.records import Log, LogCreate
from petcare.services.export import export_logs_pdf
from petcare.services.search import filter_logs

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pets/{pet_id}/logs", tags=["logs"])


@router.post("", response_model=Log, status_code=status.HTTP_201_CREATED)
def create_log(
    pet_id: str, body: LogCreate, current_user: CurrentUser, store: Store
) -> Log:
    log = Log(
        id=uuid.uuid4().hex,
        pet_id=pet_id,
        owner_id=current_user,
        title=body.title,
        text=body.text,
        created_at=datetime.now(timezone.utc),
    )
    store.save_log(log)
    logger.info("Saved log %s for pet %s", log.id, pet_id)
    return log


@router.get("", response_model=list[Log])
def list_logs(
    pet_id: str, current_user: CurrentUser, store: Store, q: str | None = None
) -> list[Log]:
    return filter_logs(store.list_logs(pet_id, current_user), q)


@router.get("/export")
def export_logs(
    pet_id: str, current_user: CurrentUser, store: Store, q: str | None = None
) -> Response:
    pet = store.get_pet(pet_id, current_user)
    if pet is None:
        raise NotFoundError("Pet not found")
    filename, pdf = export_logs_pdf(
        pet.name,
        filter_logs(store.list_logs(pet_id, current_user), q),
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.delete("/{log_id}", response_model=list[Log])
def delete_log(
    pet_id: str, log_id: str, current_user: CurrentUser, store: Store
) -> list[Log]:
    store.delete_log(log_id, current_user, pet_id=pet_id)
    return store.list_logs(pet_id, current_user)
