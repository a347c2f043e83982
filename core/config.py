"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings
from typing import Optional

from schemas.etl import ApiPolicy


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Senado Federal (LEGIS dados abertos)
    SENADO_API_BASE_URL: str = "https://legis.senado.leg.br/dadosabertos"
    SENADO_API_TIMEOUT: float = 30.0
    SENADO_RETRY_ATTEMPTS: int = 3
    SENADO_RETRY_DELAY: float = 2.0
    SENADO_REQUEST_PAUSE: float = 0.15  # LEGIS caps at 10 req/s

    # Camara dos Deputados (API v2)
    CAMARA_API_BASE_URL: str = "https://dadosabertos.camara.leg.br/api/v2"
    CAMARA_API_TIMEOUT: float = 30.0
    CAMARA_RETRY_ATTEMPTS: int = 3
    CAMARA_RETRY_DELAY: float = 1.0
    CAMARA_REQUEST_PAUSE: float = 0.5

    # Extraction
    PAGE_SIZE: int = 100
    MAX_PAGES_FULL: int = 100
    MAX_PAGES_INCREMENTAL: int = 20
    INCREMENTAL_WINDOW_DAYS: int = 60
    EXTRACTION_WINDOW_DAYS: int = 360
    DEFAULT_CONCURRENCY: int = 3
    CHUNK_PAUSE: float = 1.0

    # Batched writes
    BATCH_MAX_OPERATIONS: int = 250
    BATCH_MAX_DOCUMENT_BYTES: int = int(1024 * 1024 * 0.95)
    BATCH_COMMIT_TIMEOUT: float = 30.0

    # Document store
    FIRESTORE_PROJECT_ID: str = "legis-etl"
    FIRESTORE_DATABASE: str = "(default)"
    FIRESTORE_ACCESS_TOKEN: Optional[str] = None
    FIRESTORE_EMULATOR_HOST: Optional[str] = None
    FIRESTORE_API_URL: str = "https://firestore.googleapis.com"
    LOCAL_EXPORT_DIR: str = "data/export"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    def api_policy(self, family: str) -> ApiPolicy:
        """Build the request policy for one API family ("senado" or "camara")"""
        if family == "senado":
            return ApiPolicy(
                family="senado",
                base_url=self.SENADO_API_BASE_URL,
                timeout=self.SENADO_API_TIMEOUT,
                retry_attempts=self.SENADO_RETRY_ATTEMPTS,
                retry_delay=self.SENADO_RETRY_DELAY,
                request_pause=self.SENADO_REQUEST_PAUSE,
                suffix=".json",
            )
        if family == "camara":
            return ApiPolicy(
                family="camara",
                base_url=self.CAMARA_API_BASE_URL,
                timeout=self.CAMARA_API_TIMEOUT,
                retry_attempts=self.CAMARA_RETRY_ATTEMPTS,
                retry_delay=self.CAMARA_RETRY_DELAY,
                request_pause=self.CAMARA_REQUEST_PAUSE,
            )
        raise ValueError(f"Unknown API family: {family}")

    @property
    def emulator_url(self) -> str:
        host = self.FIRESTORE_EMULATOR_HOST or "127.0.0.1:8000"
        return host if host.startswith("http") else f"http://{host}"


settings = Settings()
