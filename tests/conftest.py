import asyncio
import io
import threading
import time
from datetime import date, datetime, timedelta, timezone

import fitz
import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image, ImageDraw

from petcare.config import Settings
from petcare.exceptions import PersistenceError, RecordNotFoundError
from petcare.main import create_app
from petcare.models.pets import PetProfile, Reminder
from petcare.models.records import Log, MedicalRecord
from petcare.services.auth import create_access_token
from petcare.services.files import encode_data_uri
from petcare.services.report_client import ReportServiceClient

OWNER_ID = "user-1"
OTHER_OWNER_ID = "user-2"
PET_ID = "pet-1"
REPORT_SERVICE_URL = "http://reports.test"

GOOD_REPORT = {
    "overallStatus": {
        "level": "good",
        "summary": "Luna is in good shape.",
        "icon": "PawPrint",
    },
    "potentialRisks": [
        {
            "title": "Ticks",
            "description": "High tick activity in your area.",
            "icon": "Bug",
        }
    ],
    "recommendations": [
        {
            "title": "Hydration",
            "description": "Keep fresh water available.",
            "icon": "Droplets",
        }
    ],
}


def make_pdf(text: str | None = None) -> bytes:
    """Single-page PDF; with ``text`` it carries a text layer."""
    doc = fitz.open()
    page = doc.new_page()
    if text:
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_image(fmt: str = "JPEG") -> bytes:
    img = Image.new("RGB", (320, 120), "white")
    ImageDraw.Draw(img).text((10, 40), "Heartworm test negative", fill="black")
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def make_record(
    record_id: str = "rec-1",
    pet_id: str = PET_ID,
    owner_id: str = OWNER_ID,
    title: str = "Checkup",
    description: str | None = "All good",
    files: dict[str, bytes] | None = None,
    when: datetime | None = None,
) -> MedicalRecord:
    when = when or datetime(2024, 1, 10, tzinfo=timezone.utc)
    files = {"checkup.pdf": b"%PDF-1.4 checkup"} if files is None else files
    return MedicalRecord(
        id=record_id,
        pet_id=pet_id,
        owner_id=owner_id,
        title=title,
        description=description,
        date=when,
        files={
            name: encode_data_uri(content, "application/pdf")
            for name, content in files.items()
        },
        created_at=when,
        updated_at=when,
    )


def make_log(
    log_id: str = "log-1",
    title: str = "Limping",
    text: str = "Slight limp on the left hind leg after the walk.",
    when: datetime | None = None,
    owner_id: str = OWNER_ID,
) -> Log:
    return Log(
        id=log_id,
        pet_id=PET_ID,
        owner_id=owner_id,
        title=title,
        text=text,
        created_at=when or datetime(2024, 2, 1, 9, 30, tzinfo=timezone.utc),
    )


def make_reminder(reminder_id: str, title: str, reminder_type: str, days: int) -> Reminder:
    return Reminder.model_validate({
        "id": reminder_id,
        "pet_id": PET_ID,
        "user_id": OWNER_ID,
        "title": title,
        "description": f"{title} due",
        "due_date": (date(2024, 3, 1) + timedelta(days=days)).isoformat(),
        "type": reminder_type,
        "recurrence_pattern": "none",
        "recurrence_end_date": "",
    })


class FakeStore:
    """In-memory stand-in for FirestoreService."""

    def __init__(self) -> None:
        self.records: dict[str, MedicalRecord] = {}
        self.logs: dict[str, Log] = {}
        self.pets: dict[str, PetProfile] = {}
        self.reminders: list[Reminder] = []
        self.fail_saves = False
        self.save_delay = 0.0
        self.max_concurrent_saves = 0
        self._active_saves = 0
        self._lock = threading.Lock()

    def save_record(self, record: MedicalRecord) -> str:
        with self._lock:
            self._active_saves += 1
            self.max_concurrent_saves = max(self.max_concurrent_saves, self._active_saves)
        try:
            if self.save_delay:
                time.sleep(self.save_delay)
            if self.fail_saves:
                raise PersistenceError("Failed to save record: backend unavailable")
            self.records[record.id] = record
            return record.id
        finally:
            with self._lock:
                self._active_saves -= 1

    def get_record(
        self, record_id: str, owner_id: str, pet_id: str | None = None
    ) -> MedicalRecord | None:
        record = self.records.get(record_id)
        if record is None or record.owner_id != owner_id:
            return None
        if pet_id is not None and record.pet_id != pet_id:
            return None
        return record

    def list_records(self, pet_id: str, owner_id: str) -> list[MedicalRecord]:
        rows = [
            r for r in self.records.values()
            if r.pet_id == pet_id and r.owner_id == owner_id
        ]
        return sorted(rows, key=lambda r: (r.date, r.created_at), reverse=True)

    def delete_record(
        self, record_id: str, owner_id: str, pet_id: str | None = None
    ) -> None:
        if self.get_record(record_id, owner_id, pet_id) is None:
            raise RecordNotFoundError("Medical record not found")
        del self.records[record_id]

    def save_log(self, log: Log) -> str:
        if self.fail_saves:
            raise PersistenceError("Failed to save log: backend unavailable")
        self.logs[log.id] = log
        return log.id

    def list_logs(self, pet_id: str, owner_id: str) -> list[Log]:
        rows = [
            log for log in self.logs.values()
            if log.pet_id == pet_id and log.owner_id == owner_id
        ]
        return sorted(rows, key=lambda log: log.created_at, reverse=True)

    def delete_log(self, log_id: str, owner_id: str, pet_id: str | None = None) -> None:
        log = self.logs.get(log_id)
        if log is None or log.owner_id != owner_id or (pet_id and log.pet_id != pet_id):
            raise RecordNotFoundError("Log not found")
        del self.logs[log_id]

    def get_pet(self, pet_id: str, owner_id: str) -> PetProfile | None:
        pet = self.pets.get(pet_id)
        return pet if pet is not None and pet.owner_id == owner_id else None

    def list_reminders(self, pet_id: str, owner_id: str) -> list[Reminder]:
        return [
            r for r in self.reminders
            if r.pet_id == pet_id and r.owner_id == owner_id
        ]


class FakeReportService:
    """Records report requests and answers with a configurable response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.response = httpx.Response(200, json=GOOD_REPORT)
        self.delay = 0.0
        self.error: Exception | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return httpx.Response(
            self.response.status_code,
            headers=self.response.headers,
            content=self.response.content,
        )


@pytest.fixture()
def store() -> FakeStore:
    fake = FakeStore()
    fake.pets[PET_ID] = PetProfile(
        id=PET_ID,
        owner_id=OWNER_ID,
        name="Luna",
        type="dog",
        breed="Golden Retriever",
    )
    return fake


@pytest.fixture()
def report_service() -> FakeReportService:
    return FakeReportService()


@pytest.fixture()
def report_client(report_service: FakeReportService) -> ReportServiceClient:
    return ReportServiceClient(
        REPORT_SERVICE_URL,
        timeout=5.0,
        transport=httpx.MockTransport(report_service.handler),
    )


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(
        jwt_secret_key="test-secret-key-for-testing-only",
        gcp_project_id="test-project",
        report_service_url=REPORT_SERVICE_URL,
        debug=True,
    )


@pytest.fixture()
def app(
    test_settings: Settings,
    store: FakeStore,
    report_client: ReportServiceClient,
) -> TestClient:
    application = create_app(settings=test_settings)

    # Replace backends with fakes to avoid real Firestore / HTTP calls
    application.state.firestore_service = store
    application.state.report_client = report_client

    return TestClient(application)


def _headers_for(owner_id: str, settings: Settings) -> dict[str, str]:
    token = create_access_token(
        owner_id, settings.jwt_secret_key, settings.jwt_algorithm
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(test_settings: Settings) -> dict[str, str]:
    return _headers_for(OWNER_ID, test_settings)


@pytest.fixture()
def other_auth_headers(test_settings: Settings) -> dict[str, str]:
    return _headers_for(OTHER_OWNER_ID, test_settings)
