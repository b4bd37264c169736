from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from slowapi import Limiter
from slowapi.util import get_remote_address

from petcare.config import Settings
from petcare.exceptions import PetCareError
from petcare.services.auth import decode_access_token
from petcare.services.firestore import FirestoreService
from petcare.services.ingestion import IngestionController
from petcare.services.synthesizer import ReportSynthesizer

# Tokens are issued by the identity service; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

limiter = Limiter(key_func=get_remote_address)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> str:
    """Owner id of the caller, taken from the token subject."""
    payload = decode_access_token(
        token, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload.sub


def get_store(request: Request) -> FirestoreService:
    store = getattr(request.app.state, "firestore_service", None)
    if store is None:
        raise PetCareError("Record storage unavailable", status_code=503)
    return store


def get_ingestion_controller(
    request: Request,
    store: Annotated[FirestoreService, Depends(get_store)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> IngestionController:
    return IngestionController(
        store,
        request.app.state.extraction_pool,
        request.app.state.upload_locks,
        max_file_size_kb=settings.max_file_size_kb,
    )


def get_report_synthesizer(
    request: Request,
    store: Annotated[FirestoreService, Depends(get_store)],
) -> ReportSynthesizer:
    client = getattr(request.app.state, "report_client", None)
    if client is None:
        raise PetCareError("Report service unavailable", status_code=503)
    return ReportSynthesizer(store, client, request.app.state.report_gate)


CurrentUser = Annotated[str, Depends(get_current_user)]
Store = Annotated[FirestoreService, Depends(get_store)]
