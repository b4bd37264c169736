import base64
import binascii
import re
from enum import StrEnum

from petcare.exceptions import FileValidationError, UnsupportedFileTypeError

MAX_FILENAME_LENGTH = 200
SAFE_FILENAME_RE = re.compile(r"[^a-zA-Z0-9._-]")
DEFAULT_MIME_TYPE = "application/octet-stream"


class FileCategory(StrEnum):
    PDF = "pdf"
    IMAGE = "image"


def classify_mime(mime_type: str | None) -> FileCategory:
    mime = (mime_type or "").split(";", 1)[0].strip().lower()
    if mime == "application/pdf":
        return FileCategory.PDF
    if mime.startswith("image/"):
        return FileCategory.IMAGE
    raise UnsupportedFileTypeError(
        f"Invalid file type: {mime_type}. Only PDF and image files are accepted."
    )


def sanitize_filename(filename: str, default: str = "upload") -> str:
    # Strip path components (e.g. ../../evil.pdf -> evil.pdf)
    name = filename.rsplit("/", 1)[-1].rsplit("\\", 1)[-1]
    name = SAFE_FILENAME_RE.sub("_", name)
    name = name.lstrip(".")[:MAX_FILENAME_LENGTH]
    return name or default


def validate_upload(filename: str | None, content: bytes, max_size_kb: int) -> None:
    if not filename:
        raise FileValidationError("Uploaded file has no filename")
    if not content:
        raise FileValidationError("Uploaded file is empty")
    if len(content) > max_size_kb * 1024:
        raise FileValidationError(f"File exceeds maximum size of {max_size_kb}KB")


def encode_data_uri(content: bytes, mime_type: str) -> str:
    payload = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{payload}"


def decode_data_uri(payload: str) -> tuple[bytes, str]:
    """Decode a stored file payload.

    Accepts ``data:<mime>;base64,<data>`` as written by the uploader, and a
    bare base64 string for rows imported without the data-URI header.

    Returns:
        Tuple of (content, mime_type).

    Raises:
        ValueError: If the payload is not valid base64.
    """
    mime_type = DEFAULT_MIME_TYPE
    data = payload
    if payload.startswith("data:"):
        header, sep, data = payload.partition(",")
        if not sep:
            raise ValueError("Malformed data URI: missing payload separator")
        mime_type = header[len("data:"):].split(";", 1)[0] or DEFAULT_MIME_TYPE
    try:
        return base64.b64decode(data, validate=True), mime_type
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc
