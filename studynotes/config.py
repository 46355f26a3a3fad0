from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite:///./studynotes.db"

    # JWT
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:3000"

    # Vertex AI (Gemini) for explanations and class-note OCR.
    # Empty vertex_project_id = AI generator disabled (explain returns the fallback text).
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC
    gemini_model: str = "gemini-2.0-flash"
    generator_timeout_seconds: float = 30.0
    generator_max_output_tokens: int = 1024

    # Upload limit for class-note images
    max_image_bytes: int = 10 * 1024 * 1024  # 10 MB

    log_level: str = "INFO"

    class Config:
        env_file = ".env"

    @property
    def generator_configured(self) -> bool:
        return bool(self.vertex_project_id.strip())


@lru_cache
def get_settings() -> Settings:
    return Settings()
