from enum import Enum

from pydantic_settings import BaseSettings


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class Config(BaseSettings):
    env: Env = Env.local
    db_url: str = "sqlite+aiosqlite:///chef.db"
    core_model: str = "gpt-4o-mini"
    transcription_model: str = "whisper-1"
    serpapi_api_key: str | None = None
    search_engine: str = "google"
    ocr_language: str = "eng"
    http_timeout: float = 20
    log_level: str = "INFO"
    max_upload_size: int = 10 * 1024 * 1024
