from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./evaluations.db"
    frontend_url: str = "http://localhost:5173"
    environment: str = "development"  # development | production
    log_level: str = "INFO"

    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    ai_timeout_seconds: float = 60.0
    ai_temperature: float = 0.2

    ocr_language: str = "eng"
    max_upload_bytes: int = 10 * 1024 * 1024

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

settings = Settings()
