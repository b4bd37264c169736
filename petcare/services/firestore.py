import logging
from datetime import datetime, timezone
from typing import TypeVar

from google.cloud import firestore
from pydantic import BaseModel, ValidationError

from petcare.exceptions import PersistenceError, RecordNotFoundError
from petcare.models.pets import PetProfile, Reminder
from petcare.models.records import Log, MedicalRecord

RECORDS_COLLECTION = "medical_records"
LOGS_COLLECTION = "logs"
REMINDERS_COLLECTION = "reminders"
PETS_COLLECTION = "pets"

ModelT = TypeVar("ModelT", bound=BaseModel)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # Rows written by older clients carry naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _parse_row(model: type[ModelT], data: dict, label: str) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PersistenceError(f"Stored {label} is malformed: {exc}") from exc


def _parse_rows(model: type[ModelT], rows: list[dict], label: str) -> list[ModelT]:
    """Parse listed rows, skipping any that no longer fit the model."""
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping malformed %s row %s: %s", label, row.get("id"), exc
            )
    return parsed


class FirestoreService:
    """Per-entity collections; every row is keyed by (id, pet_id, user_id)."""

    def __init__(self, project_id: str, database: str = "(default)"):
        self._client = firestore.Client(project=project_id, database=database)

    # --- Medical records ---

    def save_record(self, record: MedicalRecord) -> str:
        """Insert a record. A single document write, so all-or-nothing."""
        self._insert(
            RECORDS_COLLECTION,
            record.id,
            record.model_dump(mode="json", by_alias=True),
            label="record",
        )
        return record.id

    def get_record(
        self, record_id: str, owner_id: str, pet_id: str | None = None
    ) -> MedicalRecord | None:
        data = self._get_owned(RECORDS_COLLECTION, record_id, owner_id, pet_id)
        return _parse_row(MedicalRecord, data, "record") if data else None

    def list_records(self, pet_id: str, owner_id: str) -> list[MedicalRecord]:
        """All records of one pet, newest first by (date, created_at)."""
        rows = self._select_by_pet(RECORDS_COLLECTION, pet_id, owner_id, "records")
        records = _parse_rows(MedicalRecord, rows, "record")
        records.sort(
            key=lambda r: (_as_utc(r.date), _as_utc(r.created_at)), reverse=True
        )
        return records

    def delete_record(
        self, record_id: str, owner_id: str, pet_id: str | None = None
    ) -> None:
        self._delete_owned(
            RECORDS_COLLECTION, record_id, owner_id, pet_id, label="Medical record"
        )

    # --- Logs ---

    def save_log(self, log: Log) -> str:
        self._insert(
            LOGS_COLLECTION,
            log.id,
            log.model_dump(mode="json", by_alias=True),
            label="log",
        )
        return log.id

    def list_logs(self, pet_id: str, owner_id: str) -> list[Log]:
        rows = self._select_by_pet(LOGS_COLLECTION, pet_id, owner_id, "logs")
        logs = _parse_rows(Log, rows, "log")
        logs.sort(key=lambda log: _as_utc(log.created_at), reverse=True)
        return logs

    def delete_log(self, log_id: str, owner_id: str, pet_id: str | None = None) -> None:
        self._delete_owned(LOGS_COLLECTION, log_id, owner_id, pet_id, label="Log")

    # --- Read-only collaborators ---

    def get_pet(self, pet_id: str, owner_id: str) -> PetProfile | None:
        data = self._get_owned(PETS_COLLECTION, pet_id, owner_id, pet_id=None)
        if data is None:
            return None
        data.setdefault("id", pet_id)
        return _parse_row(PetProfile, data, "pet")

    def list_reminders(self, pet_id: str, owner_id: str) -> list[Reminder]:
        """All reminders of a pet, including completed ones."""
        rows = self._select_by_pet(REMINDERS_COLLECTION, pet_id, owner_id, "reminders")
        reminders = _parse_rows(Reminder, rows, "reminder")
        reminders.sort(key=lambda r: r.due_date)
        return reminders

    # --- Helpers ---

    def _insert(self, collection: str, doc_id: str, data: dict, label: str) -> None:
        try:
            self._client.collection(collection).document(doc_id).set(data)
        except Exception as exc:
            raise PersistenceError(f"Failed to save {label}: {exc}") from exc

    def _select_by_pet(
        self, collection: str, pet_id: str, owner_id: str, label: str
    ) -> list[dict]:
        try:
            docs = (
                self._client.collection(collection)
                .where("pet_id", "==", pet_id)
                .where("user_id", "==", owner_id)
                .stream()
            )
            return [doc.to_dict() for doc in docs]
        except Exception as exc:
            raise PersistenceError(f"Failed to list {label}: {exc}") from exc

    def _get_owned(
        self, collection: str, doc_id: str, owner_id: str, pet_id: str | None
    ) -> dict | None:
        """Get a row, or None if missing or not owned by (owner_id, pet_id)."""
        try:
            doc = self._client.collection(collection).document(doc_id).get()
        except Exception as exc:
            raise PersistenceError(f"Failed to get {collection} row: {exc}") from exc
        if not doc.exists:
            return None
        data = doc.to_dict()
        if data.get("user_id") != owner_id:
            return None
        if pet_id is not None and data.get("pet_id") != pet_id:
            return None
        return data

    def _delete_owned(
        self,
        collection: str,
        doc_id: str,
        owner_id: str,
        pet_id: str | None,
        label: str,
    ) -> None:
        if self._get_owned(collection, doc_id, owner_id, pet_id) is None:
            raise RecordNotFoundError(f"{label} not found")
        try:
            self._client.collection(collection).document(doc_id).delete()
        except Exception as exc:
            raise PersistenceError(f"Failed to delete {label.lower()}: {exc}") from exc
