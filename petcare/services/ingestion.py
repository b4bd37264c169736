import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from petcare.concurrency import KeyedLocks
from petcare.exceptions import PetCareError, RecordNotFoundError
from petcare.models.records import MedicalRecord
from petcare.services.extraction import ExtractionPool
from petcare.services.files import (
    DEFAULT_MIME_TYPE,
    classify_mime,
    decode_data_uri,
    encode_data_uri,
    sanitize_filename,
    validate_upload,
)
from petcare.services.firestore import FirestoreService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    record: MedicalRecord
    warning: str | None
    # Fresh listing read back from the store after the write
    records: list[MedicalRecord]


class IngestionController:
    def __init__(
        self,
        store: FirestoreService,
        pool: ExtractionPool,
        locks: KeyedLocks,
        max_file_size_kb: int = 700,
    ):
        self._store = store
        self._pool = pool
        self._locks = locks
        self._max_file_size_kb = max_file_size_kb

    async def upload(
        self,
        pet_id: str,
        owner_id: str,
        filename: str | None,
        content: bytes,
        mime_type: str | None,
        title: str | None = None,
    ) -> IngestionResult:
        """Classify, extract and persist one uploaded file as a new record.

        Extraction failures are recorded as a warning on the result; the
        record is still stored with an empty description.

        Raises:
            FileValidationError: Missing filename, empty or oversized file.
            UnsupportedFileTypeError: MIME type is neither PDF nor image.
            PersistenceError: The store rejected the insert.
        """
        validate_upload(filename, content, self._max_file_size_kb)
        category = classify_mime(mime_type)
        media_type = (mime_type or DEFAULT_MIME_TYPE).split(";", 1)[0].strip()

        extraction = await self._pool.extract(content, category)

        now = datetime.now(timezone.utc)
        record = MedicalRecord(
            id=uuid.uuid4().hex,
            pet_id=pet_id,
            owner_id=owner_id,
            title=(title or "").strip() or filename,
            description=extraction.text,
            date=now,
            files={sanitize_filename(filename): encode_data_uri(content, media_type)},
            created_at=now,
            updated_at=now,
        )

        # Serialize writers per pet so the listing we hand back includes
        # this write and no half-applied interleaving.
        async with self._locks.hold((owner_id, pet_id)):
            await asyncio.to_thread(self._store.save_record, record)
            records = await asyncio.to_thread(
                self._store.list_records, pet_id, owner_id
            )

        logger.info(
            "Stored %s record %s for pet %s (%d chars extracted)",
            category,
            record.id,
            pet_id,
            len(extraction.text),
        )
        return IngestionResult(record=record, warning=extraction.warning, records=records)


def read_record_file(record: MedicalRecord, filename: str) -> tuple[bytes, str]:
    payload = record.files.get(filename)
    if payload is None:
        raise RecordNotFoundError(f"File {filename} not found in record")
    try:
        return decode_data_uri(payload)
    except ValueError as exc:
        raise PetCareError(f"Stored file {filename} is unreadable: {exc}") from exc
