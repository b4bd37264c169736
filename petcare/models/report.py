from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from petcare.models.pets import Location


class SeverityLevel(StrEnum):
    """Overall health levels, declared in order of increasing severity."""

    GOOD = "good"
    FAIR = "fair"
    CAUTION = "caution"
    POOR = "poor"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return list(SeverityLevel).index(self)


class ReportItem(BaseModel):
    title: str
    description: str = ""
    icon: str | None = None


class OverallStatus(BaseModel):
    # Kept as a plain string: unknown levels are rendered with the neutral
    # color rather than rejected.
    level: str
    summary: str = ""
    icon: str | None = None


class HealthReport(BaseModel):
    """Structured report returned by the report service. Never persisted."""

    model_config = ConfigDict(populate_by_name=True)

    overall_status: OverallStatus = Field(alias="overallStatus")
    potential_risks: list[ReportItem] = Field(
        default_factory=list, alias="potentialRisks"
    )
    recommendations: list[ReportItem] = Field(default_factory=list)


@dataclass(frozen=True)
class ReportDocument:
    """PDF returned directly by the report service (legacy transport)."""

    content: bytes
    filename: str
    media_type: str = "application/pdf"


class GenerateReportRequest(BaseModel):
    location: Location | None = None


class InlineItem(BaseModel):
    title: str
    description: str
    icon: str
    color: str


class InlineSection(BaseModel):
    title: str
    color: str
    items: list[InlineItem]


class StatusBanner(BaseModel):
    level: str
    title: str
    summary: str
    icon: str
    color: str


class InlineReport(BaseModel):
    status: StatusBanner
    sections: list[InlineSection]


class ReportPending(BaseModel):
    detail: str = "Report generation already in progress"
