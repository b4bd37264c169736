import io
import logging
import zipfile
from pathlib import PurePosixPath

from petcare.exceptions import EmptyExportError
from petcare.models.records import Log, MedicalRecord
from petcare.services.files import decode_data_uri, sanitize_filename
from petcare.services.renderer import render_log_pdf

logger = logging.getLogger(__name__)


def _unique_name(name: str, used: set[str]) -> str:
    """Return ``name``, or ``stem (n).ext`` when it is already taken."""
    if name not in used:
        return name
    path = PurePosixPath(name)
    n = 2
    while f"{path.stem} ({n}){path.suffix}" in used:
        n += 1
    return f"{path.stem} ({n}){path.suffix}"


def export_records_archive(
    pet_name: str, records: list[MedicalRecord]
) -> tuple[str, bytes]:
    """Bundle every stored file of every record into one ZIP archive.

    Files with the same name in different records are kept side by side
    as ``scan.pdf``, ``scan (2).pdf`` and so on.

    Returns:
        Tuple of (archive_filename, archive_bytes).

    Raises:
        EmptyExportError: There are no records, or none holds a file.
    """
    if not records:
        raise EmptyExportError("No records to download.")

    buffer = io.BytesIO()
    used: set[str] = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for record in records:
            for filename, payload in record.files.items():
                try:
                    content, _mime = decode_data_uri(payload)
                except ValueError as exc:
                    logger.warning(
                        "Skipping unreadable file %s of record %s: %s",
                        filename,
                        record.id,
                        exc,
                    )
                    continue
                name = _unique_name(sanitize_filename(filename), used)
                used.add(name)
                archive.writestr(name, content)

    if not used:
        raise EmptyExportError("No stored files to download.")

    logger.info("Exported %d files from %d records", len(used), len(records))
    return f"{sanitize_filename(pet_name, 'pet')}-medical-records.zip", buffer.getvalue()


def export_logs_pdf(pet_name: str, logs: list[Log]) -> tuple[str, bytes]:
    if not logs:
        raise EmptyExportError("No logs to export.")
    return f"{sanitize_filename(pet_name, 'pet')}-logs.pdf", render_log_pdf(pet_name, logs)
