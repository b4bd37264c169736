import asyncio
import logging

from petcare.concurrency import InFlightGate
from petcare.exceptions import LocationUnavailableError, PetNotFoundError
from petcare.models.pets import Location, PetProfile, Reminder
from petcare.models.records import Log, MedicalRecord
from petcare.models.report import HealthReport, ReportDocument
from petcare.services.files import sanitize_filename
from petcare.services.firestore import FirestoreService
from petcare.services.report_client import ReportServiceClient

logger = logging.getLogger(__name__)


def build_report_payload(
    pet: PetProfile,
    records: list[MedicalRecord],
    reminders: list[Reminder],
    logs: list[Log],
    location: Location,
) -> dict:
    return {
        "pet": pet.model_dump(mode="json", by_alias=True),
        "records": [r.model_dump(mode="json", by_alias=True) for r in records],
        "reminders": [r.model_dump(mode="json", by_alias=True) for r in reminders],
        "logs": [log.model_dump(mode="json", by_alias=True) for log in logs],
        "location": location.model_dump(mode="json"),
    }


class ReportSynthesizer:
    def __init__(
        self,
        store: FirestoreService,
        client: ReportServiceClient,
        gate: InFlightGate,
    ):
        self._store = store
        self._client = client
        self._gate = gate

    async def generate(
        self, pet_id: str, owner_id: str, location: Location | None
    ) -> HealthReport | ReportDocument | None:
        """Aggregate a pet's history and ask the report service for a report.

        Returns None without doing anything when a report for the same pet
        is already being generated.

        Raises:
            PetNotFoundError: No such pet for this owner. No request is sent.
            LocationUnavailableError: No location was provided. No request
                is sent.
            UpstreamError: The report service failed or timed out.
        """
        key = (owner_id, pet_id)
        if not self._gate.try_acquire(key):
            logger.info("Report for pet %s already in progress, ignoring", pet_id)
            return None

        try:
            if not pet_id:
                raise PetNotFoundError()
            # Always the stored profile, never a client-side copy
            pet = await asyncio.to_thread(self._store.get_pet, pet_id, owner_id)
            if pet is None:
                raise PetNotFoundError()
            if location is None:
                raise LocationUnavailableError()

            records, reminders, logs = await asyncio.gather(
                asyncio.to_thread(self._store.list_records, pet_id, owner_id),
                asyncio.to_thread(self._store.list_reminders, pet_id, owner_id),
                asyncio.to_thread(self._store.list_logs, pet_id, owner_id),
            )
            payload = build_report_payload(pet, records, reminders, logs, location)
            report = await self._client.generate_report(
                payload,
                document_name=f"{sanitize_filename(pet.name, 'pet')}-medical-report.pdf",
            )
        finally:
            self._gate.release(key)

        logger.info(
            "Generated %s report for pet %s from %d records, %d reminders, %d logs",
            "pdf" if isinstance(report, ReportDocument) else "json",
            pet_id,
            len(records),
            len(reminders),
            len(logs),
        )
        return report
