from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MedicalRecord(BaseModel):
    """Stored medical record. Files are data-URIs keyed by filename."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    pet_id: str
    owner_id: str = Field(alias="user_id")
    title: str
    description: str | None = None
    date: datetime
    files: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime


class RecordSummary(BaseModel):
    """Record as listed to clients, without the inline file payloads."""

    id: str
    pet_id: str
    title: str
    description: str | None = None
    date: datetime
    file_names: list[str]
    created_at: datetime

    @classmethod
    def from_record(cls, record: MedicalRecord) -> "RecordSummary":
        return cls(
            id=record.id,
            pet_id=record.pet_id,
            title=record.title,
            description=record.description,
            date=record.date,
            file_names=list(record.files),
            created_at=record.created_at,
        )


class RecordUploadResponse(BaseModel):
    record: RecordSummary
    extraction_warning: str | None = None
    records: list[RecordSummary]


class Log(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    pet_id: str
    owner_id: str = Field(alias="user_id")
    title: str
    text: str = Field(alias="log_text")
    created_at: datetime


class LogCreate(BaseModel):
    title: str
    text: str

    @field_validator("title", "text")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Please provide a title and a note")
        return v.strip()
