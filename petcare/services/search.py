from petcare.models.records import Log, MedicalRecord


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def filter_records(records: list[MedicalRecord], query: str | None) -> list[MedicalRecord]:
    """Case-insensitive match on title or extracted text, order preserved."""
    needle = (query or "").strip().lower()
    if not needle:
        return records
    return [
        r for r in records if _contains(r.title, needle) or _contains(r.description, needle)
    ]


def filter_logs(logs: list[Log], query: str | None) -> list[Log]:
    needle = (query or "").strip().lower()
    if not needle:
        return logs
    return [log for log in logs if _contains(log.title, needle) or _contains(log.text, needle)]
