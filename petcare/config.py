from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # JWT (tokens are issued by the identity provider, we only verify them)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    # Firestore
    gcp_project_id: str
    firestore_database: str = "(default)"

    # Report service
    report_service_url: str = "http://localhost:3000"
    report_timeout_seconds: float = 60.0

    # Extraction
    ocr_language: str = "eng"
    extraction_concurrency: int = 2

    # App
    debug: bool = False
    cors_origins: list[str] = ["http://localhost:3000"]
    # Files are stored inline as base64 and a Firestore document is capped
    # at 1 MiB, so the raw upload must stay well below that.
    max_file_size_kb: int = 700

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }
