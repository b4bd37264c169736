import io
from datetime import datetime, timezone
from enum import StrEnum
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import (
    LongTable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    TableStyle,
)

from petcare.models.pets import PetProfile, RecurrencePattern, Reminder
from petcare.models.records import Log, MedicalRecord
from petcare.models.report import (
    HealthReport,
    InlineItem,
    InlineReport,
    InlineSection,
    ReportItem,
    SeverityLevel,
    StatusBanner,
)


class Icon(StrEnum):
    """Icons the client knows how to draw."""

    SPARKLES = "Sparkles"
    SHIELD_QUESTION = "ShieldQuestion"
    SHIELD_CHECK = "ShieldCheck"
    SHIELD_ALERT = "ShieldAlert"
    SHIELD_X = "ShieldX"
    HELP_CIRCLE = "HelpCircle"
    WIND = "Wind"
    SUN = "Sun"
    BUG = "Bug"
    ALERT_TRIANGLE = "AlertTriangle"
    BONE = "Bone"
    ACTIVITY = "Activity"
    HOME = "Home"
    HEART = "Heart"
    THERMOMETER = "Thermometer"
    DROPLETS = "Droplets"
    SYRINGE = "Syringe"
    PILL = "Pill"
    STETHOSCOPE = "Stethoscope"
    UTENSILS = "Utensils"
    SCALE = "Scale"
    SMILE = "Smile"


FALLBACK_ICON = Icon.HELP_CIRCLE
STATUS_FALLBACK_ICON = Icon.SHIELD_QUESTION

SEVERITY_COLORS: dict[SeverityLevel, str] = {
    SeverityLevel.GOOD: "#10B981",
    SeverityLevel.FAIR: "#F59E0B",
    SeverityLevel.CAUTION: "#F97316",
    SeverityLevel.POOR: "#EF4444",
    SeverityLevel.URGENT: "#DC2626",
}
NEUTRAL_COLOR = "#6B7280"
UNKNOWN_LEVEL = "unknown"
RISKS_COLOR = "#EF4444"
RECOMMENDATIONS_COLOR = "#10B981"


def _fold(key: str) -> str:
    return "".join(ch for ch in key.lower() if ch.isalnum())


_ICONS_BY_FOLDED_NAME = {_fold(icon.value): icon for icon in Icon}


def resolve_icon(key: str | None, fallback: Icon = FALLBACK_ICON) -> Icon:
    """Map an icon key from the report service to a known icon.

    Matching ignores case and separators ("alert-triangle" is
    AlertTriangle). Unknown or empty keys give ``fallback``.
    """
    if not key:
        return fallback
    return _ICONS_BY_FOLDED_NAME.get(_fold(key), fallback)


def resolve_color(level: str | None) -> str:
    try:
        return SEVERITY_COLORS[SeverityLevel((level or "").strip().lower())]
    except ValueError:
        return NEUTRAL_COLOR


def _inline_section(title: str, items: list[ReportItem], color: str) -> InlineSection:
    return InlineSection(
        title=title,
        color=color,
        items=[
            InlineItem(
                title=item.title,
                description=item.description,
                icon=resolve_icon(item.icon).value,
                color=color,
            )
            for item in items
        ],
    )


def render_inline(report: HealthReport) -> InlineReport:
    status = report.overall_status
    level = status.level.strip() or UNKNOWN_LEVEL
    return InlineReport(
        status=StatusBanner(
            level=level.lower(),
            title=f"{level.capitalize()} Health",
            summary=status.summary,
            icon=resolve_icon(status.icon, STATUS_FALLBACK_ICON).value,
            color=resolve_color(level),
        ),
        sections=[
            _inline_section("Potential Risks", report.potential_risks, RISKS_COLOR),
            _inline_section(
                "Recommendations", report.recommendations, RECOMMENDATIONS_COLOR
            ),
        ],
    )


# --- PDF rendering ---

TABLE_COLUMNS = ("Date", "Title", "Note")
HEADER_COLOR = colors.HexColor("#8B5CF6")

_styles = getSampleStyleSheet()


def _cell(text: str | None) -> Paragraph:
    markup = escape(text or "").replace("\n", "<br/>")
    return Paragraph(markup, _styles["BodyText"])


def _table(rows: list[tuple[str, str, str | None]], width: float) -> LongTable:
    data: list[list] = [list(TABLE_COLUMNS)]
    data.extend([_cell(d), _cell(t), _cell(n)] for d, t, n in rows)
    table = LongTable(
        data,
        colWidths=[35 * mm, 50 * mm, width - 85 * mm],
        repeatRows=1,
    )
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F9FAFB")]),
        ])
    )
    return table


def _draw_page_number(canvas, doc) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.drawRightString(
        doc.pagesize[0] - doc.rightMargin, 10 * mm, f"Page {doc.page}"
    )
    canvas.restoreState()


def _build_pdf(
    title: str,
    subtitle: str,
    sections: list[tuple[str, list[tuple[str, str, str | None]]]],
) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=title,
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=20 * mm,
    )
    story: list = [
        Paragraph(escape(title), _styles["Title"]),
        Paragraph(escape(subtitle), _styles["Normal"]),
        Spacer(1, 6 * mm),
    ]
    rendered = 0
    for heading, rows in sections:
        if not rows:
            continue
        if heading:
            story.append(Paragraph(escape(heading), _styles["Heading2"]))
        story.append(_table(rows, doc.width))
        story.append(Spacer(1, 6 * mm))
        rendered += 1
    if rendered == 0:
        story.append(Paragraph("Nothing on file yet.", _styles["Normal"]))
    doc.build(story, onFirstPage=_draw_page_number, onLaterPages=_draw_page_number)
    return buffer.getvalue()


def _generated_on() -> str:
    return f"Generated {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC"


def _reminder_note(reminder: Reminder) -> str:
    note = reminder.description or ""
    if reminder.recurrence_pattern is not RecurrencePattern.NONE:
        note = f"{note} (repeats {reminder.recurrence_pattern})".strip()
    if reminder.completed:
        note = f"{note} [completed]".strip()
    return note


def render_pdf(
    pet: PetProfile,
    records: list[MedicalRecord],
    reminders: list[Reminder],
    logs: list[Log],
) -> bytes:
    """Tabular report of a pet's history, independent of the AI report."""
    details = ", ".join(part for part in (pet.type, pet.breed) if part)
    subtitle = f"{details}. {_generated_on()}" if details else _generated_on()
    reminder_rows = [
        (
            f"{r.due_date.isoformat()} {r.due_time or ''}".strip(),
            f"{r.title} ({r.type})",
            _reminder_note(r),
        )
        for r in reminders
    ]
    return _build_pdf(
        f"Medical Report for {pet.name}",
        subtitle,
        [
            (
                "Medical Records",
                [(r.date.strftime("%Y-%m-%d"), r.title, r.description) for r in records],
            ),
            ("Reminders", reminder_rows),
            ("Logs", _log_rows(logs)),
        ],
    )


def _log_rows(logs: list[Log]) -> list[tuple[str, str, str | None]]:
    return [(log.created_at.strftime("%Y-%m-%d %H:%M"), log.title, log.text) for log in logs]


def render_log_pdf(pet_name: str, logs: list[Log]) -> bytes:
    return _build_pdf(f"Log History for {pet_name}", _generated_on(), [("", _log_rows(logs))])
