from fastapi import Request
from fastapi.responses import JSONResponse


class PetCareError(Exception):
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InputValidationError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=422)


class FileValidationError(InputValidationError):
    pass


class UnsupportedFileTypeError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=415)


class ExtractionError(PetCareError):
    """Raised inside an extractor; never escapes the ingestion pipeline."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=500)


class PersistenceError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=502)


class UpstreamError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=502)


class LocationUnavailableError(PetCareError):
    def __init__(
        self,
        message: str = (
            "Could not determine your location. Location access is required "
            "for environmental analysis."
        ),
    ):
        super().__init__(message=message, status_code=428)


class NotFoundError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=404)


class PetNotFoundError(NotFoundError):
    def __init__(self, message: str = "An active pet is required to generate a report."):
        super().__init__(message)


class RecordNotFoundError(NotFoundError):
    pass


class EmptyExportError(PetCareError):
    def __init__(self, message: str):
        super().__init__(message=message, status_code=422)


async def petcare_error_handler(request: Request, exc: PetCareError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )
