import json
from datetime import date
from enum import StrEnum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class PetProfile(BaseModel):
    """Pet row as owned by the profile service; extra columns pass through."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    owner_id: str = Field(alias="user_id")
    name: str
    type: str | None = None
    breed: str | None = None


class ReminderType(StrEnum):
    VACCINATION = "vaccination"
    MEDICATION = "medication"
    CHECKUP = "checkup"
    GROOMING = "grooming"


class RecurrencePattern(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class CustomRecurrence(BaseModel):
    interval: int | None = None
    unit: str | None = None
    weekdays: list[str] = Field(default_factory=list)


class Reminder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    pet_id: str
    owner_id: str | None = Field(default=None, alias="user_id")
    title: str
    description: str | None = None
    due_date: date
    due_time: str | None = None
    type: ReminderType
    completed: bool = Field(
        default=False, validation_alias=AliasChoices("completed", "is_completed")
    )
    recurrence_pattern: RecurrencePattern = RecurrencePattern.NONE
    recurrence_end_date: date | None = None
    custom_recurrence: CustomRecurrence | None = None

    @model_validator(mode="before")
    @classmethod
    def unpack_custom_pattern(cls, data: object) -> object:
        # The reminder editor saves a custom schedule as a JSON object string
        # in recurrence_pattern instead of a separate column.
        if not isinstance(data, dict):
            return data
        pattern = data.get("recurrence_pattern")
        if isinstance(pattern, str) and pattern.lstrip().startswith("{"):
            try:
                schedule = json.loads(pattern)
            except ValueError:
                return data
            data = {**data, "recurrence_pattern": RecurrencePattern.CUSTOM}
            if isinstance(schedule, dict) and not data.get("custom_recurrence"):
                data["custom_recurrence"] = schedule
        return data

    @field_validator("recurrence_pattern", mode="before")
    @classmethod
    def default_pattern(cls, v: object) -> object:
        return v or RecurrencePattern.NONE

    @field_validator("recurrence_end_date", "custom_recurrence", mode="before")
    @classmethod
    def empty_as_none(cls, v: object) -> object:
        # The reminder editor stores "" and {} for unset fields
        return v or None


class Location(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
