from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./stravach.db"
    log_level: str = "INFO"

    public_url: str = "http://localhost:8000"

    telegram_bot_token: str = ""
    telegram_timeout_seconds: float = 30.0

    strava_client_id: str = ""
    strava_client_secret: str = ""
    strava_verify_token: str = ""
    strava_timeout_seconds: float = 20.0
    strava_max_pages: int = 1

    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 30.0

    activity_queue_size: int = 100
    enqueue_timeout_seconds: float = 2.0
    max_name_options: int = 9
    default_language: str = "English"
    rename_worker_enabled: bool = True

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
