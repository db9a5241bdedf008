"""Configuration management for UploadGate."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from uploadgate.core.exceptions import ConfigurationError
from uploadgate.validation import ValidationPolicy

DEFAULT_ALLOWED_MIME_TYPES = (
    "image/jpeg,image/png,image/gif,image/webp,application/pdf,text/plain,text/csv"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    ENV: str = "production"
    SERVICE_NAME: str = "uploadgate"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "s3", "gcs" or "local"
    PUBLIC_BASE_URL: str = ""  # e.g. CloudFront distribution URL

    # S3 Configuration
    AWS_REGION: str = ""
    S3_ACCESS_KEY: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    BUCKET_NAME: str = ""

    # GCS Configuration
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""

    # Local Configuration
    LOCAL_STORAGE_PATH: str = "data"

    # Upload Constraints
    MAX_UPLOAD_MB: int = 10
    MAX_FILES_PER_REQUEST: int = 10
    ALLOWED_UPLOAD_MIME_TYPES: str = DEFAULT_ALLOWED_MIME_TYPES  # Comma-separated
    COMPENSATE_PARTIAL_UPLOADS: bool = True

    @property
    def is_development(self) -> bool:
        """Whether internal error details may be returned to callers."""
        return self.ENV.lower() in ("local", "development", "dev")

    @property
    def allowed_mime_types(self) -> frozenset[str]:
        """Parse ALLOWED_UPLOAD_MIME_TYPES into a set."""
        return frozenset(
            mt.strip() for mt in self.ALLOWED_UPLOAD_MIME_TYPES.split(",") if mt.strip()
        )

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def server_policy(self) -> ValidationPolicy:
        """Fixed server-side validation policy."""
        return ValidationPolicy(
            max_file_size_bytes=self.max_upload_bytes,
            max_file_count=self.MAX_FILES_PER_REQUEST,
            allowed_mime_types=self.allowed_mime_types,
        )

    def missing_settings(self) -> list[str]:
        """List required variables that are unset for the selected backend."""
        required = ["PUBLIC_BASE_URL"]
        backend = self.STORAGE_BACKEND.lower()
        if backend == "s3":
            required += ["AWS_REGION", "S3_ACCESS_KEY", "S3_SECRET_ACCESS_KEY", "BUCKET_NAME"]
        elif backend == "gcs":
            required += ["GCS_BUCKET_NAME"]
        elif backend == "local":
            required += ["LOCAL_STORAGE_PATH"]
        return [name for name in required if not getattr(self, name)]

    def validate_required(self) -> None:
        """Fail fast when the service cannot run with this configuration.

        Raises:
            ConfigurationError: If the backend is unknown or settings are missing
        """
        if self.STORAGE_BACKEND.lower() not in ("s3", "gcs", "local"):
            raise ConfigurationError(f"Unknown STORAGE_BACKEND: {self.STORAGE_BACKEND}")
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}"
            )


# Singleton settings instance
settings = Settings()
