from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "Page Builder"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"

    # Logging settings
    log_level: str = "INFO"
    json_logs: bool = False
    log_file: str | None = None

    # Plugin lifecycle settings
    plugin_init_timeout: float = 10.0  # seconds per capability
    plugins_config_file: str = "data/plugins_config.json"

    # Live preview settings
    preview_debounce_seconds: float = 0.8
    preview_title: str = "Preview"
    preview_lang: str = "en"

    # SSE settings
    sse_keepalive_interval: int = 15
    sse_max_queue_size: int = 100

    # CORS settings
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:8000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


settings = Settings()
